"""Tests for story generation with retries and the description rewriter."""

import pytest

from gehon.common import ChatResult
from gehon.config import GehonSettings
from gehon.exceptions import StoryStructureError
from gehon.story_generation import (
    ImageDescriptionRewriter,
    StoryBrief,
    StoryStructureGenerator,
    build_story_prompt,
)
from gehon.story_generation.sanitize import FALLBACK_IMAGE_DESCRIPTION

from .test_story_parser import story_payload


class ScriptedCompletion:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return ChatResult(text=response, raw={})


@pytest.fixture()
def brief():
    return StoryBrief(child_name="たろう", story_id="momotaro", honorific="kun")


class TestStoryStructureGenerator:
    def test_first_valid_response_is_used(self, brief):
        completion = ScriptedCompletion(story_payload())
        generator = StoryStructureGenerator(api_key="k", completion_fn=completion)

        pages = generator.generate_pages(brief)

        assert len(pages) == 10
        assert len(completion.calls) == 1
        call = completion.calls[0]
        assert call["json_mode"] is True
        assert call["api_key"] == "k"
        assert call["model"] == "gemini/gemini-2.5-flash"
        assert "桃太郎" in call["messages"][1]["content"]

    def test_short_response_triggers_one_retry(self, brief):
        completion = ScriptedCompletion(story_payload(count=9), "```json\n" + story_payload() + "\n```")

        pages = StoryStructureGenerator(api_key="k", completion_fn=completion).generate_pages(brief)

        assert len(pages) == 10
        assert len(completion.calls) == 2

    def test_gives_up_after_two_attempts_with_raw_text(self, brief):
        completion = ScriptedCompletion("not json", "still not json")

        with pytest.raises(StoryStructureError) as excinfo:
            StoryStructureGenerator(api_key="k", completion_fn=completion).generate_pages(brief)

        assert excinfo.value.raw_text == "still not json"
        assert excinfo.value.attempts == 2
        assert len(completion.calls) == 2

    def test_overflowing_index_is_retried_then_reported(self, brief):
        broken = story_payload().replace('"idx": 1,', '"idx": 1e999,', 1)
        completion = ScriptedCompletion(broken, broken)

        with pytest.raises(StoryStructureError) as excinfo:
            StoryStructureGenerator(api_key="k", completion_fn=completion).generate_pages(brief)

        assert len(completion.calls) == 2
        assert excinfo.value.raw_text == broken

    def test_overflowing_index_then_valid_response(self, brief):
        broken = story_payload().replace('"idx": 1,', '"idx": Infinity,', 1)
        completion = ScriptedCompletion(broken, story_payload())

        pages = StoryStructureGenerator(api_key="k", completion_fn=completion).generate_pages(brief)

        assert len(pages) == 10

    def test_completion_error_counts_as_attempt(self, brief):
        completion = ScriptedCompletion(RuntimeError("upstream 500"), story_payload())

        pages = StoryStructureGenerator(api_key="k", completion_fn=completion).generate_pages(brief)

        assert len(pages) == 10

    def test_model_falls_back_to_environment(self, monkeypatch):
        monkeypatch.setenv("LITELLM_MODEL", "gemini/other")

        assert StoryStructureGenerator(completion_fn=ScriptedCompletion()).model == "gemini/other"

    def test_explicit_settings_supply_model_and_key(self, brief, monkeypatch):
        monkeypatch.setenv("LITELLM_MODEL", "gemini/ignored")
        completion = ScriptedCompletion(story_payload())
        settings = GehonSettings(gemini_api_key="settings-key", story_model="gemini/custom")

        generator = StoryStructureGenerator(settings=settings, completion_fn=completion)
        generator.generate_pages(brief)

        assert generator.model == "gemini/custom"
        assert completion.calls[0]["api_key"] == "settings-key"
        assert completion.calls[0]["model"] == "gemini/custom"

    def test_rejects_non_positive_attempts(self):
        with pytest.raises(ValueError):
            StoryStructureGenerator(max_attempts=0)


def test_story_prompt_mentions_custom_outline():
    custom = StoryBrief(child_name="はな", story_id="custom", custom_story="月へ旅する話")

    prompt = build_story_prompt(custom)

    assert "月へ旅する話" in prompt.user
    assert '"pages"' in prompt.system
    assert "length 10" in prompt.system


class TestImageDescriptionRewriter:
    def test_without_api_key_uses_sanitizer(self):
        completion = ScriptedCompletion()
        rewriter = ImageDescriptionRewriter(completion_fn=completion)

        assert rewriter.rewrite("桃太郎", "たろうくん", "カメラを持つ子ども") == "を持つ子ども"
        assert completion.calls == []

    def test_uses_model_output(self):
        completion = ScriptedCompletion("  川で桃をひろうおばあさん。 ")
        rewriter = ImageDescriptionRewriter(api_key="k", completion_fn=completion)

        assert rewriter.rewrite("桃太郎", "たろうくん", "old woman") == "川で桃をひろうおばあさん。"
        assert "たろうくん" in completion.calls[0]["messages"][1]["content"]

    def test_failure_falls_back_to_sanitizer(self):
        completion = ScriptedCompletion(RuntimeError("boom"))
        rewriter = ImageDescriptionRewriter(api_key="k", completion_fn=completion)

        assert rewriter.rewrite("桃太郎", "たろうくん", "ABC123") == FALLBACK_IMAGE_DESCRIPTION

    def test_settings_key_enables_model_rewrite(self):
        completion = ScriptedCompletion("山の道をあるく子ども。")
        settings = GehonSettings(story_api_key="story-key", story_model="gemini/rewrite")
        rewriter = ImageDescriptionRewriter(settings=settings, completion_fn=completion)

        assert rewriter.rewrite("桃太郎", "たろうくん", "山の道") == "山の道をあるく子ども。"
        assert completion.calls[0]["api_key"] == "story-key"
        assert completion.calls[0]["model"] == "gemini/rewrite"

    def test_empty_output_falls_back_to_sanitizer(self):
        rewriter = ImageDescriptionRewriter(api_key="k", completion_fn=ScriptedCompletion(""))

        assert rewriter.rewrite("桃太郎", "たろうくん", "山の道") == "山の道"
