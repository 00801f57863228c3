"""High-level repository operations: init, add, commit, log, show."""
import logging
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional

from .commits import CommitGraph
from .config import RepositoryConfig, load_config, save_config
from .diff import DiffOp, diff
from .errors import CorruptError, MissingFileError, NotFoundError, NotInitializedError, StorageError
from .index import Index, StagingEntry
from .lock import RepositoryLock
from .objects import ObjectStore
from .refs import GROOT_DIR, head_path, write_head

logger = logging.getLogger(__name__)


class InitResult(NamedTuple):
    already_initialized: bool
    path: Path


class AddResult(NamedTuple):
    path: str
    digest: str


class CommitResult(NamedTuple):
    digest: str


class LogEntry(NamedTuple):
    digest: str
    timestamp: str
    message: str


class FileChange(NamedTuple):
    path: str
    content: str
    # None when the file is new relative to the parent commit
    diff: Optional[List[DiffOp]]


class ShowResult(NamedTuple):
    digest: str
    parent: Optional[str]
    timestamp: str
    message: str
    files: List[FileChange]


class Status(NamedTuple):
    head: Optional[str]
    staged: List[StagingEntry]


class Repository:
    """Explicit handle on one working tree and its ``.groot`` directory.

    Constructing a Repository touches nothing on disk; ``init`` creates the
    layout. Mutating operations run under the repository lock.
    """

    def __init__(self, path: str = '.', config: Optional[RepositoryConfig] = None):
        self.workdir = Path(path).resolve()
        self.groot_dir = self.workdir / GROOT_DIR
        self.config_file = self.groot_dir / 'config'
        self._config = config

    @property
    def config(self) -> RepositoryConfig:
        if self._config is None:
            self._config = load_config(self.config_file)
        return self._config

    @property
    def objects(self) -> ObjectStore:
        return ObjectStore(self.workdir, fsync=self.config.fsync)

    @property
    def index(self) -> Index:
        return Index(self.workdir, fsync=self.config.fsync)

    @property
    def graph(self) -> CommitGraph:
        return CommitGraph(self.workdir, self.objects, self.index, fsync=self.config.fsync)

    def lock(self) -> RepositoryLock:
        return RepositoryLock(
            self.groot_dir / 'lock',
            timeout=self.config.lock_timeout,
            poll_interval=self.config.lock_poll_interval,
        )

    def is_initialized(self) -> bool:
        return (self.groot_dir / 'objects').is_dir()

    def _require_repo(self):
        if not self.is_initialized():
            raise NotInitializedError(self.workdir)

    def init(self) -> InitResult:
        if self.is_initialized():
            logger.info('groot repository already initialised in %s', self.groot_dir)
            return InitResult(True, self.groot_dir)
        try:
            (self.groot_dir / 'objects').mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f'cannot create {self.groot_dir}: {exc}') from exc
        with self.lock().hold():
            if not head_path(self.workdir).exists():
                write_head(self.workdir, None, fsync=self.config.fsync)
            if not self.index.index_file.exists():
                self.index.clear()
            if not self.config_file.exists():
                save_config(self.config_file, self.config)
        logger.info('initialised empty groot repository in %s', self.groot_dir)
        return InitResult(False, self.groot_dir)

    def _relative(self, path: str) -> Path:
        p = Path(path)
        if not p.is_absolute():
            p = self.workdir / p
        p = p.resolve()
        try:
            p.relative_to(self.groot_dir)
        except ValueError:
            pass
        else:
            raise MissingFileError(path, 'inside the repository directory')
        try:
            p.relative_to(self.workdir)
        except ValueError:
            raise MissingFileError(path, 'outside the working tree') from None
        return p

    def add(self, path: str) -> AddResult:
        self._require_repo()
        p = self._relative(path)
        if not p.exists():
            raise MissingFileError(path)
        if p.is_dir():
            raise StorageError(f'{path} is a directory')
        try:
            data = p.read_bytes()
        except OSError as exc:
            raise StorageError(f'cannot read {path}: {exc}') from exc
        rel = p.relative_to(self.workdir).as_posix()
        oid = self.objects.put(data)
        with self.lock().hold():
            self.index.stage(rel, oid)
        logger.info('staged %s as %s', rel, oid)
        return AddResult(rel, oid)

    def reset(self, path: str) -> bool:
        self._require_repo()
        rel = self._relative(path).relative_to(self.workdir).as_posix()
        with self.lock().hold():
            return self.index.unstage(rel)

    def commit(self, message: str, timestamp: Optional[str] = None) -> CommitResult:
        self._require_repo()
        with self.lock().hold():
            oid = self.graph.commit(message, timestamp=timestamp)
        return CommitResult(oid)

    def head(self) -> Optional[str]:
        self._require_repo()
        return self.graph.head()

    def status(self) -> Status:
        self._require_repo()
        return Status(self.graph.head(), self.index.entries())

    def log(self, start: Optional[str] = None) -> Iterator[LogEntry]:
        """Newest-first commit summaries, read lazily from HEAD (or ``start``)."""
        self._require_repo()
        return (LogEntry(c.digest, c.timestamp, c.message) for c in self.graph.history(start))

    def _text(self, digest: str) -> str:
        try:
            data = self.objects.get(digest)
        except NotFoundError:
            raise CorruptError(f'commit references missing blob {digest}') from None
        return data.decode('utf-8', errors='replace')

    def show(self, digest: str) -> ShowResult:
        """Load a commit and diff each of its files against the parent commit.

        A file missing from the parent, or any file of a root commit, is
        reported with ``diff=None``.
        """
        self._require_repo()
        graph = self.graph
        commit = graph.get(digest)
        parent_files = {}
        if commit.parent:
            try:
                parent_files = graph.get(commit.parent).file_map()
            except NotFoundError:
                raise CorruptError(f'commit {digest} references missing parent {commit.parent}') from None
        files = []
        for entry in commit.files:
            content = self._text(entry.digest)
            old_digest = parent_files.get(entry.path)
            if old_digest is None:
                files.append(FileChange(entry.path, content, None))
                continue
            files.append(FileChange(entry.path, content, diff(self._text(old_digest), content)))
        return ShowResult(commit.digest, commit.parent, commit.timestamp, commit.message, files)

    def get_config(self) -> RepositoryConfig:
        self._require_repo()
        return self.config

    def set_config(self, key: str, value):
        self._require_repo()
        with self.lock().hold():
            cfg = load_config(self.config_file)
            cfg.set(key, value)
            save_config(self.config_file, cfg)
        self._config = cfg
