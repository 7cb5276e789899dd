from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Final

from loguru import logger

from connekt.core.config import settings
from connekt.core.constants import USER_PROFILES
from connekt.core.security import redact_id
from connekt.models.profile import ProfileMedia, dump_document
from connekt.services.blob_store import BlobStore, ProgressCallback, blob_store
from connekt.services.document_store import STORE_ERRORS
from connekt.services.profile.store import ProfileStore, profile_store
from connekt.shared.ids import file_extension, time_based_id

VALID_IMAGE_TYPES: Final[tuple[str, ...]] = ("image/jpeg", "image/png", "image/gif", "image/webp")
VALID_VIDEO_TYPES: Final[tuple[str, ...]] = ("video/mp4", "video/webm", "video/quicktime")

_SIZE_UNITS: Final[tuple[str, ...]] = ("Bytes", "KB", "MB", "GB")


@dataclass(frozen=True)
class MediaUpload:
    """A file handed over by the caller for upload."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return file_extension(self.filename)

    @property
    def media_type(self) -> str:
        return "video" if self.content_type.startswith("video/") else "image"


def validate_file_type(content_type: str) -> bool:
    return content_type in VALID_IMAGE_TYPES or content_type in VALID_VIDEO_TYPES


def validate_file_size(size: int, max_size_mb: int | None = None) -> bool:
    max_size_mb = max_size_mb if max_size_mb is not None else settings.MAX_MEDIA_SIZE_MB
    return size <= max_size_mb * 1024 * 1024


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. ``2.5 MB``."""
    if size == 0:
        return "0 Bytes"
    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size / 1024**exponent, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {_SIZE_UNITS[exponent]}"


def ensure_valid_upload(upload: MediaUpload) -> None:
    """
    Raises:
        ValueError: for unsupported MIME types or files over the size limit
    """
    if not validate_file_type(upload.content_type):
        raise ValueError(f"Unsupported media type: {upload.content_type}")
    if not validate_file_size(upload.size):
        raise ValueError(f"File too large: {format_file_size(upload.size)}")


class ProfileMediaService:
    """Uploads profile media to the blob store and links it into the profile record."""

    def __init__(self, blobs: BlobStore | None = None, profiles: ProfileStore | None = None):
        self.blobs = blobs or blob_store
        self.profiles = profiles or profile_store

    @staticmethod
    def _base_path(uid: str) -> str:
        return f"profiles/users/{uid}"

    def _media_record(self, media_id: str, url: str, upload: MediaUpload, **extra) -> ProfileMedia:
        return ProfileMedia(
            id=media_id,
            type=upload.media_type,
            url=url,
            size=upload.size,
            mimeType=upload.content_type,
            uploadedAt=datetime.now(timezone.utc),
            **extra,
        )

    async def _discard_blob(self, path: str) -> None:
        try:
            await self.blobs.delete(path)
        except STORE_ERRORS as exc:
            logger.warning(f"Failed to discard orphaned upload {path}: {exc}")

    async def _upload_profile_field(
        self, uid: str, path: str, field: str, upload: MediaUpload, on_progress: ProgressCallback | None = None
    ) -> str | None:
        ensure_valid_upload(upload)
        try:
            url = await self.blobs.put(path, upload.data, upload.content_type, on_progress)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to upload {field} for {redact_id(uid)}: {exc}")
            return None
        if not await self.profiles.upsert_profile(uid, {field: url}):
            return None
        return url

    async def upload_profile_picture(self, uid: str, upload: MediaUpload) -> str | None:
        path = f"{self._base_path(uid)}/profile-picture.{upload.extension}"
        return await self._upload_profile_field(uid, path, "photoURL", upload)

    async def upload_cover_image(self, uid: str, upload: MediaUpload) -> str | None:
        path = f"{self._base_path(uid)}/cover-image.{upload.extension}"
        return await self._upload_profile_field(uid, path, "coverImage", upload)

    async def upload_video_intro(
        self, uid: str, upload: MediaUpload, on_progress: ProgressCallback | None = None
    ) -> str | None:
        """Upload the intro video, reporting transfer progress as a percentage."""
        path = f"{self._base_path(uid)}/videos/intro.{upload.extension}"
        return await self._upload_profile_field(uid, path, "videoIntro", upload, on_progress)

    async def add_portfolio_media(
        self,
        uid: str,
        upload: MediaUpload,
        title: str | None = None,
        description: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ProfileMedia | None:
        """Upload a portfolio item and append it to the profile's portfolio."""
        ensure_valid_upload(upload)
        media_id = time_based_id("media")
        path = f"{self._base_path(uid)}/portfolio/{media_id}.{upload.extension}"
        url = None
        try:
            url = await self.blobs.put(path, upload.data, upload.content_type, on_progress)
            media = self._media_record(media_id, url, upload, title=title, description=description)
            raw = await self.profiles.store.get(USER_PROFILES, uid)
            if raw is None:
                await self._discard_blob(path)
                return None
            portfolio = list(raw.get("portfolio") or [])
            portfolio.append(dump_document(media))
            await self.profiles.store.update(
                USER_PROFILES, uid, {"portfolio": portfolio, "updatedAt": datetime.now(timezone.utc)}
            )
            return media
        except STORE_ERRORS as exc:
            logger.error(f"Failed to add portfolio media for {redact_id(uid)}: {exc}")
            if url is not None:
                await self._discard_blob(path)
            return None

    async def upload_experience_media(
        self,
        uid: str,
        experience_id: str,
        upload: MediaUpload,
        on_progress: ProgressCallback | None = None,
    ) -> ProfileMedia | None:
        """Upload media for one experience entry and attach it to that entry."""
        ensure_valid_upload(upload)
        media_id = time_based_id("media")
        path = f"{self._base_path(uid)}/experience/{experience_id}/{media_id}.{upload.extension}"
        try:
            profile = await self.profiles.get_profile(uid)
            entry = next((exp for exp in profile.experience if exp.id == experience_id), None) if profile else None
            if entry is None:
                return None
            url = await self.blobs.put(path, upload.data, upload.content_type, on_progress)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to upload experience media for {redact_id(uid)}: {exc}")
            return None

        media = self._media_record(media_id, url, upload)
        attached = [dump_document(item) for item in entry.media] + [dump_document(media)]
        if not await self.profiles.update_experience(uid, experience_id, {"media": attached}):
            await self._discard_blob(path)
            return None
        return media

    async def delete_media(self, url: str) -> bool:
        """Delete a stored object given the download URL issued for it."""
        path = self.blobs.path_from_url(url)
        if path is None:
            logger.warning(f"Refusing to delete media outside the media store: {url}")
            return False
        try:
            return await self.blobs.delete(path)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to delete media {path}: {exc}")
            return False


profile_media_service = ProfileMediaService()
