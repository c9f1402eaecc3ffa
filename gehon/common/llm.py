"""
LiteLLM-powered chat completion helper used for story text and description rewrites.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Sequence

from litellm import completion

ChatMessage = Mapping[str, Any]


@dataclass
class ChatResult:
    """
    Structured response returned from an LLM chat completion.
    """

    text: str
    raw: Any


CompletionCallable = Callable[..., ChatResult]


def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    json_mode: bool = False,
    timeout: float | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Invoke LiteLLM's `completion` API and return the consolidated text.

    ``json_mode`` asks the provider for a JSON-only response where supported.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }

    if temperature is not None:
        payload["temperature"] = temperature

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if api_key is not None:
        payload["api_key"] = api_key

    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    if timeout is not None:
        payload["timeout"] = timeout

    payload.update(extra_kwargs)

    response = completion(**payload)

    try:
        choices = response["choices"]
        message = choices[0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Unexpected LiteLLM response format.") from exc

    return ChatResult(text=_join_content(message).strip(), raw=response)


def _join_content(content: Any) -> str:
    # Some providers return a list of typed parts instead of a single string.
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, Sequence):
        texts: list[str] = []
        for part in content:
            if isinstance(part, Mapping):
                text = part.get("text")
                if isinstance(text, str) and text.strip():
                    texts.append(text)
            elif isinstance(part, str) and part.strip():
                texts.append(part)
        return "\n".join(texts)
    return str(content)
