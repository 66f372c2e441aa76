from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import SETTINGS
from ..processing.pipeline import PipelineConfig

log = logging.getLogger(__name__)

Preset = Dict[str, Any]


class PresetStore:
    """Named pipeline configurations kept in a JSON file.

    The file holds a list of ``{"name": ..., "settings": {...}}`` objects.
    Saving a name that already exists appends another entry; lookups return the
    most recent one.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path or SETTINGS.presets_path)
        self._lock = threading.Lock()

    def _read(self) -> List[Preset]:
        if not self._path.exists():
            return []
        with open(self._path, "r", encoding="utf-8") as handle:
            presets = json.load(handle)
        if not isinstance(presets, list):
            raise ValueError(f"{self._path} does not contain a preset list")
        return presets

    def _write(self, presets: List[Preset]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as handle:
            json.dump(presets, handle, indent=2)
        tmp.replace(self._path)

    def list(self) -> List[Preset]:
        with self._lock:
            return self._read()

    def get(self, name: str) -> Optional[PipelineConfig]:
        with self._lock:
            presets = self._read()
        for preset in reversed(presets):
            if preset.get("name") == name:
                return PipelineConfig.from_mapping(preset.get("settings", {}))
        return None

    def save(self, name: str, config: PipelineConfig) -> Preset:
        name = (name or "").strip()
        if not name:
            raise ValueError("Please enter a preset name")
        preset = {"name": name, "settings": config.to_dict(camel_case=True)}
        with self._lock:
            presets = self._read()
            presets.append(preset)
            self._write(presets)
        log.info("Saved preset %r", name)
        return preset

    def delete(self, name: str) -> bool:
        with self._lock:
            presets = self._read()
            kept = [preset for preset in presets if preset.get("name") != name]
            if len(kept) == len(presets):
                return False
            self._write(kept)
        log.info("Deleted preset %r", name)
        return True


PRESETS = PresetStore()
