"""Staging index: ordered (path, digest) entries kept as a JSON list
"""
import json
import logging
from pathlib import Path
from typing import List, NamedTuple

from .errors import CorruptError, StorageError
from .fsutil import atomic_write
from .refs import GROOT_DIR

logger = logging.getLogger(__name__)


class StagingEntry(NamedTuple):
    path: str
    digest: str


class Index:
    """Persisted staging area.

    The file is re-read on every call so that a caller holding the repository
    lock always modifies the current on-disk state. Staging a path that is
    already present replaces its digest but keeps its position.
    """

    def __init__(self, repo_path: Path, fsync: bool = True):
        self.repo_path = repo_path
        self.index_file = repo_path / GROOT_DIR / 'index'
        self.fsync = fsync

    def _load(self) -> List[StagingEntry]:
        try:
            text = self.index_file.read_text()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f'cannot read index: {exc}') from exc
        if not text.strip():
            return []
        try:
            raw = json.loads(text)
            return [StagingEntry(e['path'], e['digest']) for e in raw]
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise CorruptError(f'index is unreadable: {exc}') from exc

    def _save(self, entries: List[StagingEntry]):
        data = json.dumps([{'path': e.path, 'digest': e.digest} for e in entries], indent=2)
        try:
            atomic_write(self.index_file, data.encode(), fsync=self.fsync)
        except OSError as exc:
            raise StorageError(f'cannot write index: {exc}') from exc

    def stage(self, path: str, digest: str):
        entries = self._load()
        for i, e in enumerate(entries):
            if e.path == path:
                entries[i] = StagingEntry(path, digest)
                break
        else:
            entries.append(StagingEntry(path, digest))
        self._save(entries)
        logger.debug('staged %s -> %s', path, digest)

    def unstage(self, path: str) -> bool:
        entries = self._load()
        kept = [e for e in entries if e.path != path]
        if len(kept) == len(entries):
            return False
        self._save(kept)
        return True

    def clear(self):
        self._save([])

    def entries(self) -> List[StagingEntry]:
        return self._load()

    def as_dict(self):
        return {e.path: e.digest for e in self._load()}
