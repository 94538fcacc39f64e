"""
Persistent key/value storage for client state.

``Storage`` behaves like the browser's ``localStorage``: string keys,
string values, shared by every process of the same user.  The backing
file is re-read on every access so that a write made by another process
is visible immediately, and every write replaces the file atomically.
There is no locking; the last writer wins.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process storage with the same interface as ``Storage``."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def _load(self) -> Dict[str, str]:
        return self._data

    def _save(self, data: Dict[str, str]) -> None:
        self._data = data

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f'storage values must be strings, got {type(value).__name__}')
        data = dict(self._load())
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = dict(self._load())
        if key in data:
            del data[key]
            self._save(data)

    def remove_items(self, keys) -> None:
        data = dict(self._load())
        changed = False
        for key in keys:
            if key in data:
                del data[key]
                changed = True
        if changed:
            self._save(data)

    def clear(self) -> None:
        self._save({})

    def keys(self) -> List[str]:
        return list(self._load().keys())

    def snapshot(self) -> Dict[str, str]:
        return dict(self._load())


class Storage(MemoryStorage):
    """JSON file backed storage shared between processes."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning('Ignoring corrupt storage file %s', self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning('Ignoring storage file %s: top level is not an object', self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix='.storage-', dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        # tokens live here
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug('Could not restrict permissions on %s', self.path)
