"""Named preset storage.

Presets are plain settings mappings (the camelCase keys understood by
``DitherSettings.from_mapping``). The dithering core never touches this
module; the HTTP layer owns a store and passes resolved settings along.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..config import SETTINGS, ServiceSettings
from ..errors import InvalidSettings

MAX_NAME_LENGTH = 64

Preset = Dict[str, Any]


class PresetNotFound(LookupError):
    pass


def normalize_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidSettings("Preset name must not be empty")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidSettings(f"Preset name longer than {MAX_NAME_LENGTH} characters")
    return cleaned


class PresetStore(ABC):
    @abstractmethod
    def list_names(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def get(self, name: str) -> Optional[Preset]:
        raise NotImplementedError

    @abstractmethod
    def save(self, name: str, values: Mapping[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, name: str) -> bool:
        raise NotImplementedError


class InMemoryPresetStore(PresetStore):
    def __init__(self) -> None:
        self._presets: Dict[str, Preset] = {}
        self._lock = threading.Lock()

    def list_names(self) -> List[str]:
        with self._lock:
            return sorted(self._presets)

    def get(self, name: str) -> Optional[Preset]:
        with self._lock:
            preset = self._presets.get(normalize_name(name))
            return dict(preset) if preset is not None else None

    def save(self, name: str, values: Mapping[str, Any]) -> None:
        key = normalize_name(name)
        with self._lock:
            self._presets[key] = dict(values)

    def delete(self, name: str) -> bool:
        key = normalize_name(name)
        with self._lock:
            return self._presets.pop(key, None) is not None


class JsonFilePresetStore(PresetStore):
    """Presets kept in a single JSON object on disk."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Preset]:
        if not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            raise ValueError(f"Preset file {self._path} does not hold a JSON object")
        return payload

    def _write(self, presets: Mapping[str, Preset]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(presets, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            os.unlink(tmp_name)
            raise

    def list_names(self) -> List[str]:
        with self._lock:
            return sorted(self._read())

    def get(self, name: str) -> Optional[Preset]:
        key = normalize_name(name)
        with self._lock:
            return self._read().get(key)

    def save(self, name: str, values: Mapping[str, Any]) -> None:
        key = normalize_name(name)
        with self._lock:
            presets = self._read()
            presets[key] = dict(values)
            self._write(presets)

    def delete(self, name: str) -> bool:
        key = normalize_name(name)
        with self._lock:
            presets = self._read()
            if presets.pop(key, None) is None:
                return False
            self._write(presets)
            return True


def create_preset_store(settings: ServiceSettings = SETTINGS) -> PresetStore:
    if settings.presets_path:
        return JsonFilePresetStore(settings.presets_path)
    return InMemoryPresetStore()
