"""
Tests for upload validation rules per asset class.
"""
import pytest

from src.sushflix.core.errors import ValidationError
from src.sushflix.schemas.enums import AssetClass, MediaType
from src.sushflix.utils.validation import (
    MB,
    RejectionReason,
    check_file,
    validate_file,
)


class TestCheckFile:
    """Tests for check_file()."""

    def test_accepts_small_image_for_profile_picture(self):
        assert check_file("image/png", 200_000, MediaType.IMAGE, AssetClass.PROFILE_PICTURE) is None

    def test_rejects_10mb_profile_picture(self):
        rejection = check_file("image/jpeg", 10 * MB, MediaType.IMAGE, AssetClass.PROFILE_PICTURE)

        assert rejection.reason == RejectionReason.TOO_LARGE
        assert "5MB" in rejection.message

    def test_accepts_10mb_cover_photo(self):
        assert check_file("image/jpeg", 10 * MB, MediaType.IMAGE, AssetClass.COVER_PHOTO) is None

    def test_rejects_cover_photo_over_10mb(self):
        rejection = check_file("image/jpeg", 10 * MB + 1, MediaType.IMAGE, AssetClass.COVER_PHOTO)

        assert rejection.reason == RejectionReason.TOO_LARGE

    def test_rejects_pdf_for_any_image_slot(self):
        for asset_class in (AssetClass.PROFILE_PICTURE, AssetClass.COVER_PHOTO, AssetClass.THUMBNAIL):
            rejection = check_file("application/pdf", 1000, MediaType.IMAGE, asset_class)
            assert rejection.reason == RejectionReason.UNSUPPORTED_TYPE

    def test_rejects_video_declared_for_profile_picture(self):
        rejection = check_file("video/mp4", 1000, MediaType.VIDEO, AssetClass.PROFILE_PICTURE)

        assert rejection.reason == RejectionReason.KIND_NOT_ALLOWED

    def test_rejects_mime_type_that_disagrees_with_declared_kind(self):
        rejection = check_file("image/png", 1000, MediaType.VIDEO, AssetClass.CONTENT_MEDIA)

        assert rejection.reason == RejectionReason.UNSUPPORTED_TYPE

    def test_accepts_video_content_media_up_to_100mb(self):
        assert check_file("video/mp4", 100 * MB, MediaType.VIDEO, AssetClass.CONTENT_MEDIA) is None
        rejection = check_file("video/mp4", 100 * MB + 1, MediaType.VIDEO, AssetClass.CONTENT_MEDIA)
        assert rejection.reason == RejectionReason.TOO_LARGE

    def test_rejects_empty_file(self):
        rejection = check_file("image/png", 0, MediaType.IMAGE, AssetClass.THUMBNAIL)

        assert rejection.reason == RejectionReason.EMPTY_FILE

    def test_unknown_size_is_left_to_streaming_check(self):
        assert check_file("image/gif", None, MediaType.IMAGE, AssetClass.THUMBNAIL) is None

    def test_mime_type_is_case_insensitive(self):
        assert check_file("IMAGE/JPEG", 10, MediaType.IMAGE, AssetClass.PROFILE_PICTURE) is None

    def test_missing_mime_type_is_rejected(self):
        rejection = check_file(None, 10, MediaType.IMAGE, AssetClass.PROFILE_PICTURE)

        assert rejection.reason == RejectionReason.UNSUPPORTED_TYPE


class TestValidateFile:
    def test_raises_validation_error_with_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_file("image/jpeg", 10 * MB, MediaType.IMAGE, AssetClass.PROFILE_PICTURE)

        assert exc_info.value.status_code == 400
        assert "5MB" in exc_info.value.detail

    def test_passes_valid_file(self):
        validate_file("video/webm", 5 * MB, MediaType.VIDEO, AssetClass.CONTENT_MEDIA)
