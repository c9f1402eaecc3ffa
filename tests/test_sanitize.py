"""Tests for narrative and image-description scrubbing."""

from gehon.story_generation import sanitize_image_description, sanitize_page_text
from gehon.story_generation.sanitize import FALLBACK_IMAGE_DESCRIPTION


class TestSanitizeImageDescription:
    def test_removes_camera_terms_and_codes(self):
        cleaned = sanitize_image_description("レンズ越しの写真 XR-200 に写る桃")

        assert "レンズ" not in cleaned
        assert "写真" not in cleaned
        assert "XR-200" not in cleaned
        assert "桃" in cleaned

    def test_empty_result_uses_fallback(self):
        assert sanitize_image_description("") == FALLBACK_IMAGE_DESCRIPTION
        assert sanitize_image_description("スマホ PC") == FALLBACK_IMAGE_DESCRIPTION


class TestSanitizePageText:
    def test_strips_gadgets_and_trademarks(self):
        cleaned = sanitize_page_text("たろうは  テレビ™ を みました 、 そして ねました。")

        assert "テレビ" not in cleaned
        assert "™" not in cleaned
        assert "  " not in cleaned
        assert "、" in cleaned
        assert " 、" not in cleaned

    def test_keeps_plain_japanese(self):
        assert sanitize_page_text("むかしむかし、あるところに。") == "むかしむかし、あるところに。"
