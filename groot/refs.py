import logging
import re
from pathlib import Path
from typing import Optional

from .errors import CorruptError, StorageError
from .fsutil import atomic_write

logger = logging.getLogger(__name__)

GROOT_DIR = '.groot'

_HEAD_RE = re.compile(r'^[0-9a-f]{64}$')


def groot_dir(repo_path: Path) -> Path:
    return repo_path / GROOT_DIR


def head_path(repo_path: Path) -> Path:
    return groot_dir(repo_path) / 'HEAD'


def read_head(repo_path: Path) -> Optional[str]:
    """Return the head commit digest, or None before the first commit."""
    p = head_path(repo_path)
    try:
        value = p.read_text().strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StorageError(f'cannot read HEAD: {exc}') from exc
    if not value:
        return None
    if not _HEAD_RE.fullmatch(value):
        raise CorruptError(f'HEAD holds {value!r}, not a commit digest')
    return value


def write_head(repo_path: Path, oid: Optional[str], fsync: bool = True):
    p = head_path(repo_path)
    try:
        atomic_write(p, (oid or '').encode(), fsync=fsync)
    except OSError as exc:
        raise StorageError(f'cannot write HEAD: {exc}') from exc
    logger.debug('HEAD -> %s', oid)
