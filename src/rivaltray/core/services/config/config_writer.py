"""Configuration writer - dotted-key updates and atomic persistence"""

import copy
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from ....utils import ConfigurationError, app_logger


def split_key(key: str) -> List[str]:
    parts = [part for part in key.split(".") if part]
    if not parts:
        raise ConfigurationError(f"Invalid setting key '{key}'")
    return parts


def write_json_atomically(path: Path, data: Dict[str, Any]) -> None:
    """Write data next to path, fsync it and rename over path

    A reader of path sees either the old file or the new one, never a
    partial write. The temporary file is removed on failure.

    Raises:
        OSError, TypeError, ValueError: from the filesystem or json
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


class ConfigWriter:
    """In-memory settings plus a debounced, atomic save

    Menu actions call set_setting() followed by schedule_save(); several
    quick changes end up in a single write.
    """

    def __init__(self, config_path: Path, save_delay: float = 0.5):
        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._save_delay = save_delay
        self._save_timer: Optional[threading.Timer] = None
        self._dirty = False
        self._lock = threading.Lock()

    def set_config(self, config: Dict[str, Any]) -> None:
        with self._lock:
            self._config = config

    def get_config(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._config)

    def set_setting(self, key: str, value: Any) -> None:
        """Set a dotted key

        Missing sections are created. A section that holds a plain value
        is replaced by an empty one before descending into it.

        Raises:
            ConfigurationError: if the key is empty
        """
        parts = split_key(key)
        with self._lock:
            section = self._config
            for depth, part in enumerate(parts[:-1], start=1):
                child = section.get(part)
                if not isinstance(child, dict):
                    if part in section:
                        app_logger.log_config_event(
                            "Config auto-repaired type conflict",
                            {"path": ".".join(parts[:depth]), "old_type": type(child).__name__},
                        )
                    child = section[part] = {}
                section = child
            section[parts[-1]] = value

        app_logger.log_config_event("Setting updated", {"key": key, "value_type": type(value).__name__})

    def _take_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            self._cancel_timer()
            self._dirty = False
            return copy.deepcopy(self._config)

    def _cancel_timer(self) -> None:
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None

    def save_config(self) -> bool:
        """Write the current settings now; False if the write failed"""
        snapshot = self._take_snapshot()
        try:
            write_json_atomically(self.config_path, snapshot)
        except (OSError, TypeError, ValueError) as e:
            app_logger.log_error(e, "config_writer_save")
            return False

        app_logger.log_config_event(
            "Configuration saved", {"config_path": str(self.config_path), "sections": len(snapshot)}
        )
        return True

    def schedule_save(self) -> None:
        """Save after save_delay seconds unless another change arrives first"""
        with self._lock:
            self._cancel_timer()
            self._dirty = True
            self._save_timer = threading.Timer(self._save_delay, self._save_if_dirty)
            self._save_timer.daemon = False
            self._save_timer.start()

    def _save_if_dirty(self) -> None:
        if self._dirty:
            self.save_config()

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def flush(self) -> bool:
        if self._dirty:
            return self.save_config()
        return True

    def cleanup(self) -> None:
        """Flush pending changes; no timer survives this call"""
        self.flush()
        with self._lock:
            self._cancel_timer()
