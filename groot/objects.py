"""Object storage for blobs and commits (simple file-per-object store)"""
import hashlib
import logging
import re
from pathlib import Path

from .errors import CorruptError, NotFoundError, StorageError
from .fsutil import atomic_write
from .refs import GROOT_DIR

logger = logging.getLogger(__name__)

_DIGEST_RE = re.compile(r'^[0-9a-f]{64}$')


def is_digest(value: str) -> bool:
    return isinstance(value, str) and _DIGEST_RE.fullmatch(value) is not None


class ObjectStore:
    """Write-once store: every object lives in ``objects/<sha256>``.

    Blobs and commit records share the namespace. There is no update or
    delete; putting the same bytes twice is a no-op.
    """

    def __init__(self, repo_path: Path, fsync: bool = True):
        self.repo_path = repo_path
        self.objects_dir = repo_path / GROOT_DIR / 'objects'
        self.fsync = fsync

    @staticmethod
    def hash(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    def _path(self, digest: str) -> Path:
        if not is_digest(digest):
            raise NotFoundError(f'no object {digest!r}')
        return self.objects_dir / digest

    def contains(self, digest: str) -> bool:
        return is_digest(digest) and (self.objects_dir / digest).is_file()

    def put(self, content: bytes) -> str:
        oid = self.hash(content)
        p = self.objects_dir / oid
        if p.exists():
            logger.debug('object %s already stored', oid)
            return oid
        try:
            atomic_write(p, content, fsync=self.fsync)
        except OSError as exc:
            raise StorageError(f'cannot write object {oid}: {exc}') from exc
        logger.debug('stored object %s (%d bytes)', oid, len(content))
        return oid

    def get(self, digest: str) -> bytes:
        p = self._path(digest)
        try:
            data = p.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f'no object {digest}') from None
        except OSError as exc:
            raise StorageError(f'cannot read object {digest}: {exc}') from exc
        if self.hash(data) != digest:
            raise CorruptError(f'object {digest} does not match its digest')
        return data
