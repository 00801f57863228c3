"""Per-repository settings stored as JSON in ``.groot/config``"""
import json
import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict

from .errors import CorruptError, StorageError
from .fsutil import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class RepositoryConfig:
    lock_timeout: float = 10.0
    lock_poll_interval: float = 0.05
    fsync: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def keys(cls):
        return [f.name for f in fields(cls) if f.name != 'extra']

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'RepositoryConfig':
        cfg = cls()
        for key, value in d.items():
            if key in cls.keys():
                cfg.set(key, value)
            else:
                cfg.extra[key] = value
        return cfg

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        extra = d.pop('extra')
        extra.update(d)
        return extra

    def get(self, key: str) -> Any:
        if key in self.keys():
            return getattr(self, key)
        return self.extra.get(key)

    def set(self, key: str, value: Any):
        """Assign ``key``, coercing strings to the field's declared type."""
        if key not in self.keys():
            self.extra[key] = value
            return
        default = getattr(type(self)(), key)
        try:
            if isinstance(default, bool):
                value = _to_bool(value)
            elif isinstance(default, float):
                value = float(value)
                if value < 0:
                    raise ValueError('must not be negative')
        except (TypeError, ValueError) as exc:
            raise CorruptError(f'bad value for {key}: {value!r} ({exc})') from exc
        setattr(self, key, value)


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('1', 'true', 'yes', 'on'):
        return True
    if text in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError('expected a boolean')


def load_config(path: Path) -> RepositoryConfig:
    if not path.exists():
        return RepositoryConfig()
    try:
        raw = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise CorruptError(f'{path} is not valid JSON: {exc}') from exc
    except OSError as exc:
        raise StorageError(f'cannot read {path}: {exc}') from exc
    if not isinstance(raw, dict):
        raise CorruptError(f'{path} must hold a JSON object')
    return RepositoryConfig.from_dict(raw)


def save_config(path: Path, cfg: RepositoryConfig):
    data = json.dumps(cfg.to_dict(), indent=2, sort_keys=True) + '\n'
    try:
        atomic_write(path, data.encode(), fsync=cfg.fsync)
    except OSError as exc:
        raise StorageError(f'cannot write {path}: {exc}') from exc
    logger.debug('saved config %s', path)
