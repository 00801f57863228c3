"""Atomic file replacement used for every piece of persisted repository state"""
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write(target: Path, data: bytes, fsync: bool = True):
    """Write ``data`` to ``target`` so readers see either the old or the new bytes.

    The payload goes to a temp file in the target's directory and is renamed
    over the target; rename within one filesystem is atomic.
    """
    fd, tmp = tempfile.mkstemp(dir=str(target.parent), prefix='.' + target.name + '.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            if fsync:
                f.flush()
                os.fsync(f.fileno())
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    if fsync:
        _fsync_dir(target.parent)
    logger.debug('wrote %d bytes to %s', len(data), target)


def _fsync_dir(directory: Path):
    # makes the rename itself durable
    try:
        fd = os.open(str(directory), os.O_RDONLY)
    except OSError as exc:
        logger.debug('cannot open %s for fsync: %s', directory, exc)
        return
    try:
        os.fsync(fd)
    except OSError as exc:
        # some filesystems refuse fsync on directories
        logger.debug('directory fsync unsupported on %s: %s', directory, exc)
    finally:
        os.close(fd)
