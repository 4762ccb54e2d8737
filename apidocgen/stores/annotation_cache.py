"""Persistent per-unit cache of parsed annotation trees."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import os
from pathlib import Path
import tempfile
import time
from typing import Dict, Iterable, Optional

from ..annotations.ast import UnitAnnotations

CACHE_VERSION = 2


class AnnotationCache:
    """Stores parsed units keyed by unit identity and content fingerprint.

    ``signature`` covers everything besides the unit content that changes parse
    output (cache format, detector set, constant table). A file written under a
    different signature is discarded as a whole.
    """

    def __init__(self, path: Path | None, *, signature: str = "") -> None:
        self._path = path
        self._signature = signature
        self._entries: Dict[str, Dict[str, object]] = {}
        self._dirty = False
        self.hits = 0
        self.misses = 0
        if self._path is not None:
            self._load(self._path)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, identity: str, *, fingerprint: str) -> Optional[UnitAnnotations]:
        entry = self._entries.get(identity)
        if not entry or entry.get("fingerprint") != fingerprint:
            self.misses += 1
            return None
        unit = entry.get("unit")
        if not isinstance(unit, dict):
            self.misses += 1
            return None
        try:
            result = UnitAnnotations.from_dict(identity, unit)
        except (KeyError, TypeError, ValueError):
            self._entries.pop(identity, None)
            self._dirty = True
            self.misses += 1
            return None
        self.hits += 1
        return result

    def store(self, unit: UnitAnnotations) -> None:
        self._entries[unit.identity] = {
            "fingerprint": unit.fingerprint,
            "unit": unit.to_dict(),
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def prune(self, identities_to_keep: Iterable[str]) -> None:
        keep = set(identities_to_keep)
        removed = [identity for identity in self._entries if identity not in keep]
        if removed:
            for identity in removed:
                self._entries.pop(identity, None)
            self._dirty = True

    def persist(self) -> None:
        """Write the cache atomically; readers never see a partial file."""
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": CACHE_VERSION,
            "signature": self._signature,
            "entries": self._entries,
        }
        atomic_write(self._path, json.dumps(payload, indent=2, sort_keys=True))
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            self._dirty = True
            return
        if (
            not isinstance(data, dict)
            or data.get("version") != CACHE_VERSION
            or data.get("signature") != self._signature
        ):
            self._dirty = True
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            self._dirty = True
            return
        valid_entries: Dict[str, Dict[str, object]] = {}
        for identity, raw in entries.items():
            if not isinstance(identity, str) or not isinstance(raw, dict):
                continue
            if "fingerprint" not in raw or "unit" not in raw:
                continue
            valid_entries[identity] = raw
        self._entries = valid_entries
        self._dirty = len(valid_entries) != len(entries)


class CacheLock:
    """Exclusive lock file; concurrent runs treat the cache as unavailable."""

    def __init__(self, path: Path, *, stale_after: float = 600.0) -> None:
        self.path = path
        self.stale_after = stale_after
        self.held = False

    def acquire(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if not self._break_stale():
                    return False
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(str(os.getpid()))
            self.held = True
            return True
        return False

    def release(self) -> None:
        if self.held:
            self.path.unlink(missing_ok=True)
            self.held = False

    def _break_stale(self) -> bool:
        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return True
        if age < self.stale_after:
            return False
        self.path.unlink(missing_ok=True)
        return True


def atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


__all__ = ["AnnotationCache", "CacheLock", "atomic_write"]
