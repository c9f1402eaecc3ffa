"""
Structured representation of a picture-book request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

Honorific = Literal["kun", "chan", "none"]

CUSTOM_STORY_ID = "custom"
CUSTOM_STORY_TITLE = "オリジナル"
DEFAULT_STORY_TITLE = "昔話"


@dataclass(frozen=True)
class FolktaleDefinition:
    title: str
    summary: str


STORY_LIBRARY: dict[str, FolktaleDefinition] = {
    "north_wind_and_sun": FolktaleDefinition(
        title="北風と太陽",
        summary=(
            "The North Wind and the Sun compete to make a traveller take off his coat. "
            "Warmth, not force, wins in the end."
        ),
    ),
    "golden_axe": FolktaleDefinition(
        title="金の斧",
        summary=(
            "An honest woodcutter's sincerity is tested and he is rewarded with golden and "
            "silver axes. A fable about honesty and good deeds."
        ),
    ),
    "hare_and_tortoise": FolktaleDefinition(
        title="うさぎとかめ",
        summary=(
            "A boastful hare races a steady tortoise. Keeping going to the very end is what counts."
        ),
    ),
    "momotaro": FolktaleDefinition(
        title="桃太郎",
        summary=(
            "Momotaro, born from a peach, sets out with a dog, a monkey and a pheasant to face "
            "the ogres and bring the treasure home. Courage and friendship."
        ),
    ),
    "urashima_taro": FolktaleDefinition(
        title="浦島太郎",
        summary=(
            "Urashima Taro rescues a turtle, is welcomed at the Dragon Palace and receives a "
            "mysterious box. A tale about time and choices."
        ),
    ),
    "kaguyahime": FolktaleDefinition(
        title="かぐや姫",
        summary=(
            "Princess Kaguya, found inside a bamboo stalk, brings happiness to the couple who "
            "raise her before returning to the moon. Kindness and farewell."
        ),
    ),
    "issun_boshi": FolktaleDefinition(
        title="一寸法師",
        summary=(
            "Tiny Issun-boshi travels to the capital, defeats an ogre with wit and courage and "
            "grows into a fine samurai. Effort and growing up."
        ),
    ),
}

_HONORIFIC_SUFFIXES: dict[str, str] = {"kun": "くん", "chan": "ちゃん", "none": ""}


def display_name_with_honorific(name: str, honorific: str) -> str:
    """
    Append the Japanese honorific (くん/ちゃん) used when addressing the child.
    """
    if not name:
        return name
    return f"{name}{_HONORIFIC_SUFFIXES.get(honorific, '')}"


def _normalize_honorific(value: Any) -> Honorific:
    text = str(value).strip().lower() if value is not None else ""
    if text in _HONORIFIC_SUFFIXES:
        return text  # type: ignore[return-value]
    return "none"


def _coerce_optional_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class StoryBrief:
    """
    Canonical representation of the picture-book request.

    Attributes
    ----------
    child_name:
        Name of the child who becomes the protagonist (required).
    story_id:
        Key into ``STORY_LIBRARY`` or ``"custom"``.
    honorific:
        ``"kun"``, ``"chan"`` or ``"none"``; controls how the child is addressed.
    custom_story:
        Free-form story outline, required when ``story_id`` is ``"custom"``.
    """

    child_name: str
    story_id: str
    honorific: Honorific = "none"
    custom_story: str = ""

    def __post_init__(self) -> None:
        if not self.child_name or not self.child_name.strip():
            raise ValueError("child_name must be a non-empty string.")
        if not self.story_id:
            raise ValueError("story_id must be provided.")
        if self.story_id == CUSTOM_STORY_ID:
            if not self.custom_story.strip():
                raise ValueError("custom_story is required when story_id is 'custom'.")
        elif self.story_id not in STORY_LIBRARY:
            supported = ", ".join(sorted([*STORY_LIBRARY, CUSTOM_STORY_ID]))
            raise ValueError(
                f"Unsupported story_id '{self.story_id}'. Supported stories: {supported}."
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StoryBrief":
        """
        Build a brief from a dict-like object (e.g., parsed JSON/YAML or form fields).
        """
        return cls(
            child_name=_coerce_optional_str(data.get("child_name") or data.get("name")),
            story_id=_coerce_optional_str(data.get("story_id") or data.get("storyId")),
            honorific=_normalize_honorific(data.get("honorific")),
            custom_story=_coerce_optional_str(
                data.get("custom_story") or data.get("customStory")
            ),
        )

    @property
    def display_name(self) -> str:
        return display_name_with_honorific(self.child_name, self.honorific)

    @property
    def story_title(self) -> str:
        """Title used as the subject of the illustrations."""
        if self.story_id == CUSTOM_STORY_ID:
            return CUSTOM_STORY_TITLE
        definition = STORY_LIBRARY.get(self.story_id)
        return definition.title if definition else DEFAULT_STORY_TITLE

    def story_instruction(self) -> str:
        if self.story_id == CUSTOM_STORY_ID:
            return f"Original story outline requested by the user:\n{self.custom_story.strip()}"
        definition = STORY_LIBRARY[self.story_id]
        return f"Source folktale title: {definition.title}\nSynopsis: {definition.summary}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "child_name": self.child_name,
            "honorific": self.honorific,
            "story_id": self.story_id,
            "custom_story": self.custom_story,
        }
