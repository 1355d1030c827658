from __future__ import annotations

import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable
from urllib.parse import quote, urlencode

from hikma_export.errors import StorageFailure

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``key``, replacing any existing object."""
        pass

    @abstractmethod
    def signed_url(self, key: str, ttl_seconds: int) -> str:
        """Return a credential-free URL granting read access for ``ttl_seconds``."""
        pass


class LocalObjectStore(ObjectStore):
    """Object store on the local filesystem with HMAC-signed download URLs.

    Objects live under ``root``; the key's directory structure is kept as is.
    URLs point at ``{base_url}/files/{key}`` and carry ``expires`` (unix
    seconds) and ``signature`` query parameters that :meth:`verify` checks.
    """

    def __init__(
        self,
        root: str | Path,
        signing_key: str,
        base_url: str = "http://127.0.0.1:8000",
        clock: Callable[[], float] = time.time,
    ):
        if not signing_key:
            raise ValueError("LocalObjectStore requires a signing key")
        self.root = Path(root)
        self.signing_key = signing_key.encode("utf-8")
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    def _path(self, key: str) -> Path:
        root = self.root.resolve()
        resolved = (root / key).resolve()
        if resolved == root or root not in resolved.parents:
            raise StorageFailure(f"Invalid storage key: {key!r}")
        return resolved

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageFailure(f"Upload of {key} failed: {exc}") from exc
        logger.debug("Stored %d bytes (%s) at %s", len(data), content_type, key)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageFailure(f"Object {key} not found") from exc

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def _signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self.signing_key, message, hashlib.sha256).hexdigest()

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        self._path(key)
        expires = int(self.clock()) + int(ttl_seconds)
        query = urlencode({"expires": expires, "signature": self._signature(key, expires)})
        return f"{self.base_url}/files/{quote(key)}?{query}"

    def verify(self, key: str, expires: int, signature: str) -> bool:
        if int(expires) < self.clock():
            return False
        expected = self._signature(key, int(expires))
        return hmac.compare_digest(expected, signature or "")
