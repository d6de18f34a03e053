"""
Client-side secret stores.

A party keeps the allocation and secret behind each commitment here until
reveal time. Losing an entry means the party can no longer reveal.
"""

import json
import os
import tempfile
import threading
import typing
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..allocation import Allocation
from ..exceptions import StoreUnavailableError, ValidationError
from ..interfaces import SecretStore
from ..logging_config import get_logger

logger = get_logger("secret_store")


class MemorySecretStore(SecretStore):
    """Secrets held in process memory."""

    def __init__(self) -> None:
        self._entries = dict[str, tuple[Allocation, str]]()
        self._lock: threading.Lock = threading.Lock()

    @override
    def put(self, duel_id: str, allocation: Allocation, secret: str) -> None:
        with self._lock:
            self._entries[duel_id] = ((allocation[0], allocation[1], allocation[2]), secret)

    @override
    def get(self, duel_id: str) -> tuple[Allocation, str] | None:
        with self._lock:
            return self._entries.get(duel_id)

    @override
    def discard(self, duel_id: str) -> None:
        with self._lock:
            _ = self._entries.pop(duel_id, None)


class JSONSecretStore(SecretStore):
    """
    Secrets held in a single JSON file owned by one party.

    The file is created with mode 0600 and rewritten atomically.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock: threading.Lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt secret store {self.path}: {e}")
            raise ValidationError(f"Corrupt secret store {self.path}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Failed to read secret store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Secret store {self.path} is not an object")
        return typing.cast(dict[str, Any], data)

    def _save(self, data: dict[str, Any]) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".secrets.", suffix=".tmp", dir=self.path.parent)
            try:
                os.chmod(tmp_name, 0o600)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreUnavailableError(f"Failed to write secret store {self.path}: {e}") from e

    @override
    def put(self, duel_id: str, allocation: Allocation, secret: str) -> None:
        with self._lock:
            data = self._load()
            data[duel_id] = {"allocation": list(allocation), "secret": secret}
            self._save(data)
        logger.debug(f"Stored secret for duel {duel_id} in {self.path}")

    @override
    def get(self, duel_id: str) -> tuple[Allocation, str] | None:
        with self._lock:
            entry = self._load().get(duel_id)
        if entry is None:
            return None
        try:
            a, b, c = (int(v) for v in entry["allocation"])
            secret = str(entry["secret"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed secret entry for duel {duel_id}: {e}") from e
        return (a, b, c), secret

    @override
    def discard(self, duel_id: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(duel_id, None) is not None:
                self._save(data)
