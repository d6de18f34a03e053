"""
JSON file duel store.

Keeps one JSON file per duel (replaced atomically on every write) and an
append-only changes.jsonl journal of set/delete events for auditing.
"""

import json
import os
import re
import tempfile
import threading
import time
import typing
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TextIO

from typing_extensions import override

from ..exceptions import StoreUnavailableError, ValidationError
from ..interfaces import DuelRecord, DuelStore, StoreListener
from ..logging_config import get_logger
from .feed import ChangeFeed

# Module-level logger
logger = get_logger("json_store")

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JSONDuelStore(DuelStore):
    """
    File-backed DuelStore.

    Record files live under <root>/duels/<key>.json. Writes go to a temp file
    in the same directory and are renamed into place, so readers never see a
    partial record. Call close() at shutdown to flush the journal.
    """

    root: Path
    duels_dir: Path
    journal_path: Path

    def __init__(self, root: Path, fsync: bool = False):
        """
        Initialize JSON store.

        Args:
            root: Directory holding duel records and the journal
            fsync: If True, fsync record files and the journal on every write
        """
        self.root = Path(root)
        self.duels_dir = self.root / "duels"
        self.journal_path = self.root / "changes.jsonl"
        self.fsync = fsync

        self._feed: ChangeFeed = ChangeFeed()
        self._lock: threading.Lock = threading.Lock()
        self._journal: TextIO | None = None

        try:
            self.duels_dir.mkdir(parents=True, exist_ok=True)
            self._journal = open(self.journal_path, "a", encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot open duel store at {self.root}: {e}")
            raise StoreUnavailableError(f"Cannot open duel store at {self.root}: {e}") from e

        logger.info(f"JSON duel store initialized: duels={self.duels_dir}, journal={self.journal_path}")

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid duel key: {key!r}")
        return self.duels_dir / f"{key}.json"

    def _require_open(self) -> TextIO:
        if self._journal is None:
            raise StoreUnavailableError(f"Duel store at {self.root} is closed")
        return self._journal

    @override
    def get(self, key: str) -> DuelRecord | None:
        """Load a record; raises ValidationError if the file is corrupt."""
        self._require_open()
        if not _SAFE_KEY.match(key):
            return None
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt duel record {path}: {e}")
            raise ValidationError(f"Corrupt duel record {key}: {e}") from e
        except FileNotFoundError:
            # Deleted between exists() and open()
            return None
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StoreUnavailableError(f"Failed to read duel {key}: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError(f"Duel record {key} is not an object")
        return typing.cast(dict[str, Any], data)

    @override
    def set(self, key: str, record: DuelRecord) -> None:
        path = self._path_for(key)
        with self._lock:
            journal = self._require_open()
            try:
                fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.duels_dir)
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(record, f, indent=2, ensure_ascii=False)
                        if self.fsync:
                            f.flush()
                            os.fsync(f.fileno())
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
                self._append_journal(journal, "set", key, record)
            except OSError as e:
                logger.error(f"Failed to write duel {key}: {e}")
                raise StoreUnavailableError(f"Failed to write duel {key}: {e}") from e

        logger.debug(f"Persisted duel {key} to {path}")
        self._feed.publish({"kind": "set", "key": key, "record": record})

    @override
    def delete(self, key: str) -> bool:
        if not _SAFE_KEY.match(key):
            return False
        path = self._path_for(key)
        with self._lock:
            journal = self._require_open()
            try:
                if not path.exists():
                    return False
                path.unlink()
                self._append_journal(journal, "delete", key, None)
            except OSError as e:
                logger.error(f"Failed to delete duel {key}: {e}")
                raise StoreUnavailableError(f"Failed to delete duel {key}: {e}") from e

        logger.debug(f"Deleted duel {key}")
        self._feed.publish({"kind": "delete", "key": key, "record": None})
        return True

    @override
    def keys(self) -> Iterable[str]:
        self._require_open()
        try:
            return sorted(p.stem for p in self.duels_dir.glob("*.json"))
        except OSError as e:
            raise StoreUnavailableError(f"Failed to list duels in {self.duels_dir}: {e}") from e

    @override
    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self._feed.subscribe(listener)

    def _append_journal(self, journal: TextIO, kind: str, key: str, record: DuelRecord | None) -> None:
        """Append one change line (caller holds the lock)."""
        entry = {"kind": kind, "key": key, "timestamp": time.time(), "record": record}
        json.dump(entry, journal, ensure_ascii=False)
        journal.write("\n")
        if self.fsync:
            journal.flush()
            os.fsync(journal.fileno())

    def load_journal(self) -> Iterable[dict[str, Any]]:
        """Yield journal entries in write order, skipping corrupt lines."""
        if not self.journal_path.exists():
            return
        self.flush()

        with open(self.journal_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                    assert isinstance(entry, dict), "journal entry must be an object"
                    assert "kind" in entry and "key" in entry, "journal entry missing kind/key"
                    yield typing.cast(dict[str, Any], entry)
                except (json.JSONDecodeError, AssertionError) as e:
                    logger.warning(f"Skipping invalid journal line in {self.journal_path}: {e}")
                    continue

    @override
    def flush(self) -> None:
        with self._lock:
            if self._journal is None:
                return
            try:
                self._journal.flush()
                os.fsync(self._journal.fileno())
            except OSError as e:
                raise StoreUnavailableError(f"Failed to flush journal {self.journal_path}: {e}") from e

    @override
    def close(self) -> None:
        self.flush()
        with self._lock:
            if self._journal is not None:
                self._journal.close()
                self._journal = None
        logger.info(f"JSON duel store closed: {self.root}")
