from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

from starlette.datastructures import UploadFile

from camper.core.config import settings
from camper.services.http_client import UpstreamHttpClient

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


@dataclass(frozen=True)
class StoredImage:
    url: str
    # store-assigned key; what delete() takes
    filename: str


class ImageStoreError(Exception):
    pass


class ImageStore(Protocol):
    async def upload(self, file: UploadFile) -> StoredImage: ...

    async def delete(self, filename: str) -> None: ...


def _extension(file: UploadFile) -> str:
    ext = PurePosixPath(file.filename or "").suffix.lower()
    return ext if ext in ALLOWED_EXTENSIONS else ".jpg"


class LocalImageStore:
    """Development store: files under base_dir, served from url_prefix."""

    def __init__(self, base_dir: str, *, folder: str, url_prefix: str = "/media"):
        self.base = Path(base_dir)
        self.base.mkdir(parents=True, exist_ok=True)
        self.folder = folder
        self.url_prefix = url_prefix.rstrip("/")

    def resolve_path(self, filename: str) -> Path:
        path = (self.base / filename).resolve()
        if self.base.resolve() not in path.parents:
            raise ImageStoreError(f"Refusing path outside store: {filename}")
        return path

    async def upload(self, file: UploadFile) -> StoredImage:
        data = await file.read()
        key = f"{self.folder}/{uuid.uuid4().hex}{_extension(file)}"
        path = self.resolve_path(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        return StoredImage(url=f"{self.url_prefix}/{key}", filename=key)

    async def delete(self, filename: str) -> None:
        path = self.resolve_path(filename)
        await asyncio.to_thread(path.unlink, True)


def cloudinary_signature(params: dict[str, str], api_secret: str) -> str:
    payload = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1((payload + api_secret).encode("utf-8")).hexdigest()


class CloudinaryImageStore:
    """Signed uploads/destroys against the Cloudinary REST API."""

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        http: UpstreamHttpClient,
        base_url: str = "https://api.cloudinary.com/v1_1",
    ):
        self._endpoint = f"{base_url.rstrip('/')}/{cloud_name}/image"
        self._api_key = api_key
        self._api_secret = api_secret
        self._folder = folder
        self._http = http

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {**params, "api_key": self._api_key, "signature": cloudinary_signature(params, self._api_secret)}

    async def upload(self, file: UploadFile) -> StoredImage:
        data = await file.read()
        res = await self._http.post_form(
            url=f"{self._endpoint}/upload",
            data=self._signed({"folder": self._folder}),
            files={"file": (file.filename or "upload", data, file.content_type or "application/octet-stream")},
        )
        if not res.ok:
            log.warning("image upload failed code=%s msg=%s", res.error_code, res.error_message)
            raise ImageStoreError(res.error_code or "upload failed")

        url = res.detail.get("secure_url") or res.detail.get("url")
        public_id = res.detail.get("public_id")
        if not url or not public_id:
            raise ImageStoreError("upload response missing url/public_id")
        return StoredImage(url=url, filename=public_id)

    async def delete(self, filename: str) -> None:
        res = await self._http.post_form(
            url=f"{self._endpoint}/destroy",
            data=self._signed({"public_id": filename}),
        )
        if not res.ok:
            raise ImageStoreError(res.error_code or "destroy failed")
        result = res.detail.get("result")
        if result not in ("ok", "not found"):
            raise ImageStoreError(f"unexpected destroy result: {result}")


_image_store: ImageStore | None = None


def get_image_store() -> ImageStore:
    global _image_store
    if _image_store is None:
        if settings.cloudinary_enabled:
            _image_store = CloudinaryImageStore(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret.get_secret_value(),
                folder=settings.cloudinary_folder,
                http=UpstreamHttpClient(timeout_seconds=60.0),
            )
        else:
            _image_store = LocalImageStore(settings.media_dir, folder=settings.cloudinary_folder)
    return _image_store
