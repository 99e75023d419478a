"""Fetching media and narration assets produced by the generation pipeline."""

import hashlib
import logging
import threading
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

import requests

from ..config import config

logger = logging.getLogger(__name__)


class AssetError(RuntimeError):
    """Raised when an asset cannot be fetched or decoded."""

    def __init__(self, ref: str, reason: str) -> None:
        super().__init__(f"Asset {ref!r} unavailable: {reason}")
        self.ref = ref
        self.reason = reason


class AssetFetcher:
    """Resolves asset references to local files.

    Local paths and ``file://`` URIs are used in place. HTTP(S) URLs are
    downloaded once into the cache directory and reused afterwards.
    """

    CHUNK_SIZE = 1 << 16

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            cache_dir: Directory for downloaded files. Defaults to the
                configured asset cache.
            timeout: Request timeout in seconds.
            session: HTTP session to reuse across downloads.
        """
        self.cache_dir = cache_dir or config.resolve_cache_dir()
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._session = session or requests.Session()
        self._resolved: Dict[str, Path] = {}
        self._lock = threading.Lock()

    def resolve(self, ref: str) -> Path:
        """Return a local path for ``ref``.

        Raises:
            AssetError: If the file is missing or the download fails.
        """
        with self._lock:
            cached = self._resolved.get(ref)
        if cached is not None:
            return cached

        parsed = urlparse(ref)
        if parsed.scheme in ("http", "https"):
            path = self._download(ref, parsed.path)
        elif parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        else:
            path = Path(ref)

        if not path.exists():
            raise AssetError(ref, f"file not found: {path}")

        with self._lock:
            self._resolved[ref] = path
        return path

    def cache_path(self, url: str, url_path: str = "") -> Path:
        """Location a downloaded URL is stored at."""
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"{digest}{Path(url_path).suffix.lower()}"

    def _download(self, url: str, url_path: str) -> Path:
        target = self.cache_path(url, url_path)
        if target.exists():
            logger.debug(f"Using cached asset {target} for {url}")
            return target

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        logger.info(f"Downloading asset {url}")

        try:
            with self._session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            partial.unlink(missing_ok=True)
            raise AssetError(url, str(e)) from e

        partial.replace(target)
        return target
