# local_store.py
# Description: On-device storage: a JSON file per key, plus collection/document views with change listeners
#
# Imports
import asyncio
import copy
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.Sync.exceptions import LocalStoreError
#
########################################################################################################################
#
# Functions:

Record = Dict[str, Any]
Listener = Callable[[Any], None]


class JsonFileStore:
    """
    Durable key/value store, one JSON file per key under `base_dir`.

    Writes go to a temporary file that is then renamed over the target, so a
    crash never leaves a half-written file behind. File I/O runs in a worker
    thread to keep the event loop free.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir).expanduser().resolve()
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create local data directory {self.base_dir}: {e}")
            raise LocalStoreError(f"Failed to create local data directory {self.base_dir}: {e}") from e
        logger.info(f"JsonFileStore initialized at {self.base_dir}")

    def _path_for(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.base_dir / f"{safe}.json"

    def _read(self, key: str, default: Any) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return copy.deepcopy(default)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Stored value for '{key}' at {path} is not valid JSON: {e}. Using default.")
            return copy.deepcopy(default)
        except OSError as e:
            raise LocalStoreError(f"Could not read '{key}' from {path}: {e}") from e

    def _write(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise LocalStoreError(f"Could not save '{key}' to {path}: {e}") from e
        logger.debug(f"Saved '{key}' to {path}")

    async def load(self, key: str, default: Any = None) -> Any:
        return await asyncio.to_thread(self._read, key, default)

    async def save(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)


class _ListenerMixin:

    def __init__(self):
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Registers `listener`; returns a callable that removes it again."""
        self._listeners.append(listener)

        def _remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _remove

    def _emit(self, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(copy.deepcopy(value))
            except Exception as e:
                logger.opt(exception=True).error(f"Local change listener {listener!r} failed: {e}")


class LocalCollection(_ListenerMixin):
    """The on-device copy of one record collection."""

    def __init__(self, store: JsonFileStore, key: str, name: Optional[str] = None):
        super().__init__()
        self.store = store
        self.key = key
        self.name = name or key

    async def get_all(self) -> List[Record]:
        value = await self.store.load(self.key, [])
        if not isinstance(value, list):
            logger.warning(f"Local collection '{self.key}' does not hold a list ({type(value).__name__}); treating as empty")
            return []
        return value

    async def set_all(self, records: List[Mapping[str, Any]]) -> None:
        snapshot = [dict(r) for r in records]
        await self.store.save(self.key, snapshot)
        self._emit(snapshot)


class LocalDocument(_ListenerMixin):
    """The on-device copy of a singleton document; stored values are overlaid on the defaults."""

    def __init__(self, store: JsonFileStore, key: str, defaults: Optional[Callable[[], Record]] = None):
        super().__init__()
        self.store = store
        self.key = key
        self._defaults = defaults or dict

    def defaults(self) -> Record:
        return self._defaults()

    async def get(self) -> Record:
        value = await self.store.load(self.key, None)
        if value is None:
            return self.defaults()
        if not isinstance(value, dict):
            logger.warning(f"Local document '{self.key}' is not an object; falling back to defaults")
            return self.defaults()
        return {**self.defaults(), **value}

    async def set(self, document: Mapping[str, Any]) -> None:
        snapshot = dict(document)
        await self.store.save(self.key, snapshot)
        self._emit(snapshot)

#
# End of local_store.py
########################################################################################################################
