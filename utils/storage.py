"""Image storage clients: Cloudinary upload API, or local disk for development"""
import asyncio
import hashlib
import logging
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import aiofiles
import aiofiles.os
import aiohttp
from starlette.datastructures import UploadFile

from models import Image

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class StorageError(Exception):
    """The external image storage rejected or failed a request"""


class ImageStorage(ABC):
    """Streams image files to object storage and destroys them by storage key"""

    @abstractmethod
    async def upload(self, file: UploadFile) -> Image:
        ...

    @abstractmethod
    async def destroy(self, filename: str) -> None:
        ...

    async def close(self):
        """Release client resources"""


def sign_params(params: Dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature: sha1 of the sorted params followed by the secret"""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryStorage(ImageStorage):
    """Signed uploads to the Cloudinary REST API"""

    API_URL = "https://api.cloudinary.com/v1_1"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "YelpCamp",
                 session: Optional[aiohttp.ClientSession] = None, api_url: str = API_URL):
        self.api_url = api_url.rstrip("/")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self._session = session
        self._session_lock = asyncio.Lock()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            async with self._session_lock:
                # Double-check after acquiring lock
                if self._session is None:
                    self._session = aiohttp.ClientSession(
                        connector=aiohttp.TCPConnector(limit=100, limit_per_host=20),
                        timeout=aiohttp.ClientTimeout(total=60, connect=10)
                    )
        return self._session

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    def _signed(self, params: Dict[str, str]) -> Dict[str, str]:
        params = dict(params, timestamp=str(int(time.time())))
        return dict(params, api_key=self.api_key, signature=sign_params(params, self.api_secret))

    async def _post(self, action: str, data) -> dict:
        session = await self._ensure_session()
        url = f"{self.api_url}/{self.cloud_name}/image/{action}"
        try:
            async with session.post(url, data=data) as resp:
                payload = await resp.json(content_type=None)
                if resp.status != 200:
                    message = (payload or {}).get("error", {}).get("message", f"HTTP {resp.status}")
                    raise StorageError(f"Cloudinary {action} failed: {message}")
                return payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise StorageError(f"Cloudinary {action} failed: {e}") from e

    async def upload(self, file: UploadFile) -> Image:
        data = aiohttp.FormData()
        for key, value in self._signed({"folder": self.folder}).items():
            data.add_field(key, value)
        data.add_field("file", file.file, filename=file.filename,
                       content_type=file.content_type or "application/octet-stream")

        payload = await self._post("upload", data)
        logger.info(f"Uploaded {file.filename} as {payload['public_id']}")
        return Image(url=payload["secure_url"], filename=payload["public_id"])

    async def destroy(self, filename: str) -> None:
        payload = await self._post("destroy", self._signed({"public_id": filename}))
        if payload.get("result") not in ("ok", "not found"):
            raise StorageError(f"Cloudinary destroy failed: {payload}")


class LocalImageStorage(ImageStorage):
    """Writes images under a directory served as static files"""

    def __init__(self, root: Path, base_url: str = "/uploads"):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    async def upload(self, file: UploadFile) -> Image:
        filename = f"{uuid.uuid4().hex}{Path(file.filename or '').suffix.lower() or '.jpg'}"
        path = self.root / filename
        try:
            async with aiofiles.open(path, 'wb') as f:
                while chunk := await file.read(CHUNK_SIZE):
                    await f.write(chunk)
        except OSError as e:
            # a half-written file is not tracked anywhere else
            path.unlink(missing_ok=True)
            raise StorageError(f"Could not store {file.filename}: {e}") from e
        return Image(url=f"{self.base_url}/{filename}", filename=filename)

    async def destroy(self, filename: str) -> None:
        path = self.root / Path(filename).name
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning(f"Image {filename} already gone")
        except OSError as e:
            raise StorageError(f"Could not remove {filename}: {e}") from e
