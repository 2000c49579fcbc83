"""Blob storage for uploaded images.

Images are written below ``settings.upload_root`` and referenced by the
public path they are served from (``/uploads/<folder>/<file>``). The
references are stored verbatim on users and events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

import ulid

from app.domain.exceptions import ValidationError
from app.settings import settings

LOGGER = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
EVENT_IMAGES_FOLDER = "event-images"
PROFILE_IMAGES_FOLDER = "profile-images"

ALLOWED_MIME_TYPES = ("image/png", "image/jpeg")
_EXTENSIONS = {
	"image/png": ".png",
	"image/jpeg": ".jpg",
}


@dataclass(slots=True)
class UploadedImage:
	"""An uploaded file held in memory until it is validated and stored."""

	filename: str
	content_type: str
	data: bytes


class BlobStorage(Protocol):
	async def save(self, data: bytes, *, folder: str, owner_id: str, content_type: str) -> str:
		...

	async def delete(self, reference: str) -> None:
		...


class LocalBlobStorage:
	"""Stores blobs on the local filesystem."""

	def __init__(self, root: str | Path | None = None, *, public_prefix: str = PUBLIC_PREFIX) -> None:
		self.root = Path(root if root is not None else settings.upload_root).resolve()
		self.public_prefix = public_prefix.rstrip("/")

	async def save(self, data: bytes, *, folder: str, owner_id: str, content_type: str) -> str:
		ext = _EXTENSIONS.get(content_type.lower(), ".png")
		filename = f"{owner_id}-{ulid.new().str}{ext}"
		target_dir = self.root / folder
		target_dir.mkdir(parents=True, exist_ok=True)
		(target_dir / filename).write_bytes(data)
		return f"{self.public_prefix}/{folder}/{filename}"

	async def delete(self, reference: str) -> None:
		path = self.resolve(reference)
		if path is None:
			LOGGER.warning("blob_delete_skipped", extra={"reference": reference})
			return
		try:
			path.unlink(missing_ok=True)
		except OSError:
			LOGGER.warning("blob_delete_failed", extra={"reference": reference}, exc_info=True)

	def resolve(self, reference: str) -> Optional[Path]:
		"""Map a public reference back to a path below the storage root."""
		prefix = f"{self.public_prefix}/"
		if not reference.startswith(prefix):
			return None
		target = (self.root / reference[len(prefix):]).resolve()
		# Prevent path traversal
		if target == self.root or self.root not in target.parents:
			return None
		return target


def validate_images(images: Sequence[UploadedImage], *, max_count: int | None = None) -> None:
	"""Reject uploads that are not PNG/JPEG, too large, or too many."""
	if max_count is not None and len(images) > max_count:
		raise ValidationError("too_many_images")
	for image in images:
		if (image.content_type or "").lower() not in ALLOWED_MIME_TYPES:
			raise ValidationError("invalid_image_type")
		if len(image.data) > settings.upload_max_bytes:
			raise ValidationError("image_too_large")


async def delete_all(storage: BlobStorage, references: Iterable[str]) -> None:
	for reference in references:
		await storage.delete(reference)


class StagedUploads:
	"""Scoped ownership of freshly stored uploads.

	Blobs staged inside the ``async with`` block are deleted when the block
	exits with an exception or without ``commit()`` having been called.
	"""

	def __init__(self, storage: BlobStorage, *, folder: str, owner_id: str) -> None:
		self._storage = storage
		self._folder = folder
		self._owner_id = owner_id
		self._references: list[str] = []
		self._committed = False

	@property
	def references(self) -> list[str]:
		return list(self._references)

	async def stage(self, images: Iterable[UploadedImage]) -> list[str]:
		staged: list[str] = []
		for image in images:
			reference = await self._storage.save(
				image.data,
				folder=self._folder,
				owner_id=self._owner_id,
				content_type=image.content_type,
			)
			self._references.append(reference)
			staged.append(reference)
		return staged

	def commit(self) -> list[str]:
		self._committed = True
		return list(self._references)

	async def __aenter__(self) -> "StagedUploads":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> bool:
		if not self._committed and self._references:
			await delete_all(self._storage, self._references)
			self._references.clear()
		return False
