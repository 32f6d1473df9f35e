import logging
from pathlib import Path

import requests

from byte_cache import ByteCache

logger = logging.getLogger(__name__)

LOCAL_IMAGE_CACHE_SIZE = 50
DEFAULT_TIMEOUT = 30.0


class ImageLoadError(Exception):
    """Raised when an image reference cannot be turned into bytes."""


def is_remote(ref: str) -> bool:
    return ref.startswith("http://") or ref.startswith("https://")


class ImageLoader:
    """Loads background/auxiliary images from URLs, absolute paths or the uploads dir."""

    def __init__(
        self,
        uploads_dir,
        timeout: float = DEFAULT_TIMEOUT,
        cache: ByteCache | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.timeout = timeout
        self.cache = cache if cache is not None else ByteCache(capacity=LOCAL_IMAGE_CACHE_SIZE)
        # Without a session each fetch goes through requests.get.
        self.session = session

    def resolve_path(self, ref: str) -> Path:
        clean = ref
        if clean.startswith("/uploads/"):
            clean = clean[len("/uploads/"):]
        elif clean.startswith("uploads/"):
            clean = clean[len("uploads/"):]
        path = Path(clean)
        if not path.is_absolute():
            path = self.uploads_dir / path
        return path.resolve()

    def fetch(self, url: str) -> bytes:
        try:
            getter = self.session.get if self.session is not None else requests.get
            response = getter(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ImageLoadError(f"Failed to fetch image {url}: {exc}") from exc
        return response.content

    def read_local(self, ref: str) -> bytes:
        path = self.resolve_path(ref)
        key = str(path)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ImageLoadError(f"Failed to load image {ref}: {exc}") from exc
        if not self.cache.put(key, data):
            logger.debug("Image cache full (%d entries); not caching %s", len(self.cache), key)
        return data

    def load(self, ref) -> bytes:
        if not isinstance(ref, str) or not ref.strip():
            raise ImageLoadError(f"Invalid image reference: {ref!r}")
        ref = ref.strip()
        if is_remote(ref):
            return self.fetch(ref)
        return self.read_local(ref)
