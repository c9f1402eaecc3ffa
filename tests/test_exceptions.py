"""Tests for Gehon exception types."""

import pytest

from gehon.exceptions import GehonError, PipelineCancelled, ProviderError, StoryStructureError


@pytest.mark.parametrize("exc_class", [ProviderError, StoryStructureError, PipelineCancelled])
def test_inherits_gehon_error(exc_class):
    assert issubclass(exc_class, GehonError)


def test_provider_error_prefixes_provider():
    err = ProviderError("vertex", "quota exceeded")

    assert str(err) == "[vertex] quota exceeded"
    assert err.provider == "vertex"


def test_story_structure_error_keeps_raw_text():
    err = StoryStructureError("unusable", raw_text="{broken", attempts=2)

    assert err.raw_text == "{broken"
    assert err.attempts == 2


def test_pipeline_cancelled_mentions_page():
    assert "page 3" in str(PipelineCancelled(3))
    assert PipelineCancelled().page_index is None
