"""Snapshot persistence adapters.

A store only has to ``save`` a snapshot dict and ``load`` the last one back
(or ``None``). The session treats every failure here as non-fatal: the
in-memory cart stays authoritative for the rest of the session.
"""

import copy
import json
import os
from pathlib import Path
from typing import Protocol

from storefront.settings import Config


class SnapshotStore(Protocol):
    def save(self, snapshot: dict) -> None: ...

    def load(self) -> dict | None: ...


class MemorySnapshotStore:
    """Keeps the last snapshot in memory."""

    def __init__(self, snapshot: dict | None = None):
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count = 0

    def save(self, snapshot):
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count += 1

    def load(self):
        return copy.deepcopy(self._snapshot)


class JsonFileSnapshotStore:
    """Writes the snapshot to a JSON file, replacing it atomically."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or Config.SNAPSHOT_PATH)

    def save(self, snapshot):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(snapshot, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

    def load(self):
        if not self.path.exists():
            return None
        with open(self.path, encoding="utf-8") as fh:
            return json.load(fh)
