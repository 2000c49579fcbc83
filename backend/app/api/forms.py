"""Multipart form helpers shared by the event and profile routers."""

from __future__ import annotations

from typing import Any

from starlette.datastructures import FormData, UploadFile

from app.infra.storage import UploadedImage
from app.settings import settings


async def read_upload(upload: UploadFile) -> UploadedImage:
	# One byte past the limit is enough to reject oversized files
	data = await upload.read(settings.upload_max_bytes + 1)
	await upload.close()
	return UploadedImage(
		filename=upload.filename or "upload",
		content_type=(upload.content_type or "").lower(),
		data=data,
	)


async def read_uploads(form: FormData, field: str) -> list[UploadedImage]:
	images: list[UploadedImage] = []
	for item in form.getlist(field):
		if isinstance(item, UploadFile):
			if not item.filename:
				continue
			images.append(await read_upload(item))
	return images


def text_fields(form: FormData, *, multi: tuple[str, ...] = ()) -> dict[str, Any]:
	"""Collect the non-file form values; fields named in ``multi`` keep every value."""
	values: dict[str, Any] = {}
	for key in form.keys():
		entries = [value for value in form.getlist(key) if isinstance(value, str)]
		if not entries:
			continue
		values[key] = entries if key in multi else entries[-1]
	return values
