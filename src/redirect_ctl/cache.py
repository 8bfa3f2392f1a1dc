"""Local zone-name to zone-id cache."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

LOG = logging.getLogger("redirect_ctl")


class ZoneCache:
    """JSON file mapping zone names to provider zone ids."""

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (FileNotFoundError, json.JSONDecodeError):
            return {}
        if not isinstance(data, dict):
            LOG.warning("Ignoring malformed zone cache at %s", self.path)
            return {}
        return {str(name): str(zone_id) for name, zone_id in data.items()}

    def _write(self, data: Mapping[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(dict(sorted(data.items())), indent=2), encoding="utf-8")

    def get(self, name: str) -> Optional[str]:
        return self._read().get(name.lower())

    def put(self, name: str, zone_id: str) -> None:
        self.update({name: zone_id})

    def update(self, entries: Mapping[str, str]) -> None:
        """Store several name/id pairs at once."""
        data = self._read()
        data.update({name.lower(): zone_id for name, zone_id in entries.items()})
        self._write(data)

    def all(self) -> Dict[str, str]:
        return self._read()
