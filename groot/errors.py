"""Error taxonomy shared by the store, the commit graph and the CLI"""


class GrootError(Exception):
    exit_code = 1


class NotFoundError(GrootError):
    """An object, commit or path does not exist."""
    exit_code = 3


class MissingFileError(NotFoundError):
    """A working-tree path handed to ``add`` does not exist."""

    def __init__(self, path: str, reason: str = 'no such file'):
        super().__init__(f'{path}: {reason}')
        self.path = path


class NotInitializedError(NotFoundError):
    def __init__(self, path):
        super().__init__(f'not a groot repository: {path}')
        self.path = path


class CorruptError(GrootError):
    """Stored bytes do not parse as the expected record, or the parent chain loops."""
    exit_code = 4


class StorageError(GrootError):
    exit_code = 5


class LockedError(GrootError):
    """The repository lock was not acquired within the configured timeout."""
    exit_code = 6


class EmptyCommitError(GrootError):
    exit_code = 7

    def __init__(self, message: str = 'nothing staged to commit'):
        super().__init__(message)
