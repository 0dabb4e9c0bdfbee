"""
Upload validation.

Pure checks of an incoming file's declared media type and size against the
policy of the asset class it is uploaded as. Nothing here touches the
network or the filesystem, so it always runs before any storage call.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.sushflix.core.errors import ValidationError
from src.sushflix.schemas.enums import AssetClass, MediaType

MB = 1024 * 1024

IMAGE_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
})
VIDEO_MIME_TYPES = frozenset({
    "video/mp4",
    "video/webm",
})
ALLOWED_MIME_TYPES = {
    MediaType.IMAGE: IMAGE_MIME_TYPES,
    MediaType.VIDEO: VIDEO_MIME_TYPES,
}

# Canonical extension used when the original filename carries none
MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
}


@dataclass(frozen=True)
class UploadPolicy:
    """Allowed media kinds and size ceiling for one asset class."""
    max_size_bytes: int
    allowed_kinds: frozenset


UPLOAD_POLICIES = {
    AssetClass.PROFILE_PICTURE: UploadPolicy(5 * MB, frozenset({MediaType.IMAGE})),
    AssetClass.COVER_PHOTO: UploadPolicy(10 * MB, frozenset({MediaType.IMAGE})),
    AssetClass.THUMBNAIL: UploadPolicy(5 * MB, frozenset({MediaType.IMAGE})),
    AssetClass.CONTENT_MEDIA: UploadPolicy(100 * MB, frozenset({MediaType.IMAGE, MediaType.VIDEO})),
}


class RejectionReason(str, Enum):
    KIND_NOT_ALLOWED = "kind_not_allowed"
    UNSUPPORTED_TYPE = "unsupported_type"
    EMPTY_FILE = "empty_file"
    TOO_LARGE = "too_large"


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    message: str


def get_policy(asset_class: AssetClass) -> UploadPolicy:
    return UPLOAD_POLICIES[AssetClass(asset_class)]


def check_file(
    mime_type: Optional[str],
    size_bytes: Optional[int],
    declared_kind: MediaType,
    asset_class: AssetClass,
) -> Optional[Rejection]:
    """
    Check a file against the policy of its asset class.

    Args:
        mime_type: Content type declared by the client
        size_bytes: Declared size, or None when the client did not send one
            (the storage gateway re-checks the real byte count while streaming)
        declared_kind: Media kind the caller says the file is
        asset_class: Slot the file is uploaded into

    Returns:
        A Rejection describing the first failed rule, or None if the file passes
    """
    policy = get_policy(asset_class)
    kind = MediaType(declared_kind)

    if kind not in policy.allowed_kinds:
        return Rejection(
            RejectionReason.KIND_NOT_ALLOWED,
            f"{kind.value.capitalize()} files are not allowed for {AssetClass(asset_class).value}",
        )

    allowed = ALLOWED_MIME_TYPES[kind]
    if (mime_type or "").lower() not in allowed:
        return Rejection(
            RejectionReason.UNSUPPORTED_TYPE,
            f"File type {mime_type} not allowed. Allowed types: {', '.join(sorted(allowed))}",
        )

    if size_bytes is not None:
        if size_bytes <= 0:
            return Rejection(RejectionReason.EMPTY_FILE, "File is empty")
        if size_bytes > policy.max_size_bytes:
            return Rejection(
                RejectionReason.TOO_LARGE,
                f"File size exceeds the {policy.max_size_bytes // MB}MB limit",
            )

    return None


def validate_file(
    mime_type: Optional[str],
    size_bytes: Optional[int],
    declared_kind: MediaType,
    asset_class: AssetClass,
) -> None:
    """Raise ValidationError if the file is rejected by its asset class policy."""
    rejection = check_file(mime_type, size_bytes, declared_kind, asset_class)
    if rejection is not None:
        raise ValidationError(rejection.message)
