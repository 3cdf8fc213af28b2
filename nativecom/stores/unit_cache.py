"""Persistent record of generated units for incremental writes."""

from __future__ import annotations

from datetime import UTC, datetime
import hashlib
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

_CACHE_VERSION = 1


def content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class UnitCache:
    """Stores the digest of every unit written, keyed by unit name and output directory."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._output_dir: Optional[str] = None
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    def bind(self, output_dir: Path) -> None:
        """Scope the cache to ``output_dir``; entries recorded for another directory are dropped."""
        resolved = str(output_dir.resolve())
        if self._output_dir is not None and self._output_dir != resolved:
            self._entries.clear()
            self._dirty = True
        if self._output_dir != resolved:
            self._output_dir = resolved
            self._dirty = True

    def get(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        if not entry:
            return None
        digest = entry.get("digest")
        return digest if isinstance(digest, str) else None

    def store(self, name: str, digest: str) -> None:
        if self.get(name) == digest:
            return
        self._entries[name] = {
            "digest": digest,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def names(self) -> List[str]:
        return sorted(self._entries)

    def prune(self, keys_to_keep: Iterable[str]) -> List[str]:
        """Forget units that are no longer produced and return their names."""
        keep = set(keys_to_keep)
        removed = sorted(key for key in self._entries if key not in keep)
        if removed:
            for key in removed:
                self._entries.pop(key, None)
            self._dirty = True
        return removed

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _CACHE_VERSION,
            "output_dir": self._output_dir,
            "entries": self._entries,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
        )
        self._dirty = False

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid_entries: Dict[str, Dict[str, object]] = {}
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            if not isinstance(raw.get("digest"), str):
                continue
            valid_entries[key] = raw
        output_dir = data.get("output_dir")
        self._output_dir = output_dir if isinstance(output_dir, str) else None
        self._entries = valid_entries
        self._dirty = False


__all__ = ["UnitCache", "content_digest"]
