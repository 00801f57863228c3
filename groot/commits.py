"""Commit records and the parent-linked history built on top of the object store.

A commit is stored in the same namespace as blobs. Its digest is the SHA-256
of a canonical JSON rendering of ``timestamp``, ``message``, ``files`` and
``parent``; the digest itself is never part of the stored bytes.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import CorruptError, EmptyCommitError, NotFoundError
from .index import Index, StagingEntry
from .objects import ObjectStore, is_digest
from .refs import read_head, write_head

logger = logging.getLogger(__name__)


def canonical_bytes(timestamp: str, message: str, files, parent: Optional[str]) -> bytes:
    record = {
        'timestamp': timestamp,
        'message': message,
        'files': [{'path': e.path, 'digest': e.digest} for e in files],
        'parent': parent,
    }
    return json.dumps(record, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


@dataclass(frozen=True)
class Commit:
    digest: str
    timestamp: str
    message: str
    files: Tuple[StagingEntry, ...]
    parent: Optional[str]

    def to_bytes(self) -> bytes:
        return canonical_bytes(self.timestamp, self.message, self.files, self.parent)

    def file_map(self) -> Dict[str, str]:
        return {e.path: e.digest for e in self.files}

    @classmethod
    def build(cls, timestamp: str, message: str, files, parent: Optional[str]) -> 'Commit':
        files = tuple(StagingEntry(*e) for e in files)
        digest = ObjectStore.hash(canonical_bytes(timestamp, message, files, parent))
        return cls(digest, timestamp, message, files, parent)

    @classmethod
    def from_bytes(cls, digest: str, raw: bytes) -> 'Commit':
        try:
            d: Dict[str, Any] = json.loads(raw.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptError(f'object {digest} is not a commit: {exc}') from exc
        if not isinstance(d, dict) or set(d) != {'timestamp', 'message', 'files', 'parent'}:
            raise CorruptError(f'object {digest} is not a commit record')
        if not isinstance(d['files'], list):
            raise CorruptError(f'commit {digest} has a malformed file list')
        try:
            files = tuple(StagingEntry(f['path'], f['digest']) for f in d['files'])
        except (KeyError, TypeError) as exc:
            raise CorruptError(f'commit {digest} has a malformed file list') from exc
        for e in files:
            if not isinstance(e.path, str) or not is_digest(e.digest):
                raise CorruptError(f'commit {digest} has a malformed file entry {tuple(e)!r}')
        parent = d['parent']
        if parent is not None and not is_digest(parent):
            raise CorruptError(f'commit {digest} has a malformed parent {parent!r}')
        if not isinstance(d['timestamp'], str) or not isinstance(d['message'], str):
            raise CorruptError(f'commit {digest} has malformed metadata')
        return cls(digest, d['timestamp'], d['message'], files, parent)


class CommitGraph:
    def __init__(self, repo_path: Path, objects: ObjectStore, index: Index, fsync: bool = True):
        self.repo_path = repo_path
        self.objects = objects
        self.index = index
        self.fsync = fsync

    def head(self) -> Optional[str]:
        return read_head(self.repo_path)

    def get(self, digest: str) -> Commit:
        raw = self.objects.get(digest)
        return Commit.from_bytes(digest, raw)

    def commit(self, message: str, timestamp: Optional[str] = None) -> str:
        """Turn the staged entries into a commit and advance HEAD.

        Caller must hold the repository lock. Order matters: the object is
        durable before HEAD moves, and the index is cleared only after HEAD
        moved, so an interruption never exposes a partial commit.
        """
        staged = self.index.entries()
        if not staged:
            raise EmptyCommitError()
        parent = self.head()
        if timestamp is None:
            timestamp = datetime.now(timezone.utc).isoformat()
        commit = Commit.build(timestamp, message, staged, parent)
        oid = self.objects.put(commit.to_bytes())
        write_head(self.repo_path, oid, fsync=self.fsync)
        self.index.clear()
        logger.info('created commit %s (%d files, parent %s)', oid, len(staged), parent)
        return oid

    def history(self, start: Optional[str] = None) -> Iterator[Commit]:
        """Yield commits newest-first by following parent links.

        Lazy: one object is read per step. A repeated digest means the chain
        loops and raises ``CorruptError``; so does a parent that is missing.
        """
        o = self.head() if start is None else start
        seen = set()
        first = True
        while o:
            if o in seen:
                raise CorruptError(f'parent chain loops back to {o}')
            seen.add(o)
            try:
                commit = self.get(o)
            except NotFoundError:
                if first:
                    raise
                raise CorruptError(f'history references missing commit {o}') from None
            first = False
            yield commit
            o = commit.parent
