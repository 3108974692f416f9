# cardshop/services/blob_storage.py
import random
import string
import time
from dataclasses import dataclass
from enum import Enum

import requests
from requests import RequestException

from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.utils.retry import http_retry
from cardshop.utils.settings import (
    STORE_URL,
    STORE_ANON_KEY,
    MEDIA_BUCKET,
    STORE_HTTP_TIMEOUT,
)
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)


class MediaPrefix(str, Enum):
    CARD_FRONT = "cards/front"
    CARD_BACK = "cards/back"
    SERVICE = "services"
    WANT_TO_BUY = "want-to-buy"


@dataclass
class MediaUpload:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


_ALPHABET = string.digits + string.ascii_lowercase


def blob_path(prefix: MediaPrefix | str, filename: str, now: float | None = None) -> str:
    """`{prefix}/{epoch millis}-{random base36}.{ext}`"""
    prefix = prefix.value if isinstance(prefix, MediaPrefix) else prefix
    ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(random.choices(_ALPHABET, k=11))
    return f"{prefix.rstrip('/')}/{millis}-{suffix}.{ext.lower()}"


def _error_for_status(status: int) -> ErrorKind:
    if status in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 409:
        return ErrorKind.CONFLICT
    if status >= 500:
        return ErrorKind.UNAVAILABLE
    return ErrorKind.INVALID


class BlobStorage:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        bucket: str | None = None,
        timeout: int | None = None,
        http=None,
    ):
        self.base_url = (base_url or STORE_URL).rstrip("/")
        self.api_key = STORE_ANON_KEY if api_key is None else api_key
        self.bucket = bucket or MEDIA_BUCKET
        self.timeout = timeout or STORE_HTTP_TIMEOUT
        self.http = http or requests.Session()

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    @http_retry()
    def _post(self, path: str, data: bytes, content_type: str):
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{path}"
        logger.info(f"BlobStorage POST {url}")

        resp = self.http.post(
            url,
            data=data,
            headers={
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": content_type,
                "cache-control": "max-age=3600",
                "x-upsert": "false",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Upload bytes under `path` and return the object's public URL."""
        try:
            self._post(path, data, content_type)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else 500
            raise StoreError(_error_for_status(status), f"upload {path} failed: {e}") from e
        except RequestException as e:
            raise StoreError(ErrorKind.UNAVAILABLE, f"upload {path} failed: {e}") from e
        return self.public_url(path)

    def upload_media(self, prefix: MediaPrefix, media: MediaUpload) -> str:
        return self.upload(blob_path(prefix, media.filename), media.content, media.content_type)
