import hashlib
import logging
import os
import posixpath
import tempfile
from functools import lru_cache
from typing import BinaryIO, Optional, Protocol

from filelock import FileLock, Timeout

from product_api.config import settings

log = logging.getLogger("product_api.blob_store")


class BlobStoreError(Exception):
    """Unexpected failure talking to the blob backend."""
    pass


class BlobNotFoundError(BlobStoreError):
    pass


class InvalidBlobPathError(BlobStoreError):
    """Raised when a path would resolve outside the store root."""
    pass


class BlobStore(Protocol):
    """
    Byte storage keyed by a relative path.

    Implementations must keep every object under their own root and must treat
    delete of a missing object as success.
    """

    def store(self, data: bytes, path: str) -> str:
        """Write `data` at `path` (overwriting) and return the normalized stored path."""
        ...

    def fetch(self, path: str) -> BinaryIO:
        """Open the object for reading. Caller closes the stream."""
        ...

    def delete(self, path: str) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...

    def url_for(self, path: str) -> str:
        """Public reference for `path`; the object does not have to exist."""
        ...

    def path_for_url(self, reference: str) -> Optional[str]:
        """
        Inverse of url_for. None when `reference` was not issued by this store,
        including references that would resolve outside its root.
        """
        ...

    def ping(self) -> bool:
        ...


class LocalBlobStore:
    def __init__(self, base_path: str, base_url: str, lock_timeout: float = 10):
        self.root = os.path.realpath(os.path.abspath(base_path))
        os.makedirs(self.root, exist_ok=True)
        self.base_url = base_url.rstrip("/")
        self.lock_timeout = lock_timeout
        self._locks_dir = os.path.join(tempfile.gettempdir(), "product_api_blob_locks")
        os.makedirs(self._locks_dir, exist_ok=True)

    # --- path handling ---

    def _normalize(self, path: str) -> str:
        if not path or not path.strip():
            raise InvalidBlobPathError("empty blob path")
        rel = path.replace("\\", "/")
        if rel.startswith("/") or "\x00" in rel:
            raise InvalidBlobPathError(f"invalid blob path: {path}")
        rel = posixpath.normpath(rel)
        if rel in (".", "") or rel == ".." or rel.startswith("../"):
            raise InvalidBlobPathError(f"invalid blob path: {path}")
        return rel

    def _resolve(self, path: str) -> tuple:
        """Return (relative_path, absolute_path), rejecting anything outside the root."""
        rel = self._normalize(path)
        full = os.path.realpath(os.path.join(self.root, *rel.split("/")))
        if os.path.commonpath([self.root, full]) != self.root or full == self.root:
            raise InvalidBlobPathError(f"invalid blob path: {path}")
        return rel, full

    def _lock_for(self, full: str) -> FileLock:
        digest = hashlib.sha1(full.encode("utf-8")).hexdigest()
        return FileLock(os.path.join(self._locks_dir, f"{digest}.lock"))

    # --- operations ---

    def store(self, data: bytes, path: str) -> str:
        rel, full = self._resolve(path)
        directory = os.path.dirname(full)
        try:
            os.makedirs(directory, exist_ok=True)
            with self._lock_for(full).acquire(timeout=self.lock_timeout):
                fd, tmp = tempfile.mkstemp(dir=directory, prefix=".upload-")
                try:
                    with os.fdopen(fd, "wb") as fh:
                        fh.write(data)
                    os.replace(tmp, full)
                except BaseException:
                    if os.path.exists(tmp):
                        os.remove(tmp)
                    raise
        except Timeout:
            raise BlobStoreError(f"timed out waiting for write lock on {rel}")
        except OSError as e:
            raise BlobStoreError(f"failed to write {rel}: {e}") from e
        log.debug("stored %d bytes at %s", len(data), rel)
        return rel

    def fetch(self, path: str) -> BinaryIO:
        rel, full = self._resolve(path)
        try:
            return open(full, "rb")
        except (FileNotFoundError, IsADirectoryError):
            raise BlobNotFoundError(f"file not found: {rel}")
        except OSError as e:
            raise BlobStoreError(f"failed to open {rel}: {e}") from e

    def delete(self, path: str) -> None:
        rel, full = self._resolve(path)
        try:
            os.remove(full)
        except FileNotFoundError:
            return
        except OSError as e:
            raise BlobStoreError(f"failed to delete {rel}: {e}") from e
        log.debug("deleted %s", rel)

    def exists(self, path: str) -> bool:
        _, full = self._resolve(path)
        return os.path.isfile(full)

    def url_for(self, path: str) -> str:
        rel = self._normalize(path)
        return f"{self.base_url}/{rel}"

    def path_for_url(self, reference: str) -> Optional[str]:
        if not reference:
            return None
        prefix = self.base_url + "/"
        if not reference.startswith(prefix):
            return None
        try:
            rel, _ = self._resolve(reference[len(prefix):])
        except InvalidBlobPathError:
            log.warning("ignoring image reference outside the store root: %s", reference)
            return None
        return rel

    def ping(self) -> bool:
        return os.path.isdir(self.root) and os.access(self.root, os.W_OK)


@lru_cache()
def get_blob_store() -> BlobStore:
    """Build the configured backend once per process. Only `local` exists for now."""
    if settings.STORAGE_TYPE == "local":
        return LocalBlobStore(
            settings.STORAGE_BASE_PATH,
            settings.STORAGE_BASE_URL,
            lock_timeout=settings.BLOB_LOCK_TIMEOUT_SECONDS,
        )
    raise RuntimeError(f"Unsupported storage type: {settings.STORAGE_TYPE!r}")
