"""Durable key-value storage for plans, settings, feeding logs and the profile."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from ..errors import EntryNotFound, InvalidSettings, PersistenceFailure, PlanConflict
from ..planning.schema import ActualFeeding, FeedingSettings, PlannedEntry
from ..planning.validation import ensure_valid_plan
from .normalize import normalize_actual_feedings, normalize_planned_entries

DEFAULT_DB_PATH = Path("data/bottleplan.sqlite")
LOGGER = logging.getLogger(__name__)

PLAN_KEY = "baby:plannedFeedings"
LEGACY_PLAN_KEY = "baby:feedings"
ACTUAL_FEEDINGS_KEY = "baby:actualFeedings"
SETTINGS_KEY = "baby:settings"
PROFILE_KEY = "baby:profile"

T = TypeVar("T")

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.2


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """How often to retry an operation that hit a busy database."""

    attempts: int = DEFAULT_RETRY_ATTEMPTS
    delay: float = DEFAULT_RETRY_DELAY

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RetryPolicy":
        attempts = config.get("attempts")
        delay = config.get("delay")
        return cls(
            attempts=attempts if isinstance(attempts, int) and attempts > 0 else DEFAULT_RETRY_ATTEMPTS,
            delay=float(delay) if isinstance(delay, (int, float)) and delay >= 0 else DEFAULT_RETRY_DELAY,
        )


class FeedingStore:
    """SQLite-backed document store; each key holds one JSON document and a version."""

    def __init__(
        self,
        db_path: Path | str = DEFAULT_DB_PATH,
        *,
        retry: RetryPolicy | None = None,
        timeout: float = 5.0,
    ) -> None:
        self.db_path = Path(db_path)
        self.retry = retry or RetryPolicy()
        self._timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self.open()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FeedingStore":
        storage = config.get("storage") or {}
        retry = RetryPolicy.from_config(storage.get("retry") or {})
        db_path = storage.get("db_path")
        if not db_path:
            paths = config.get("paths") or {}
            db_path = Path(paths.get("data") or "data") / "bottleplan.sqlite"
        return cls(Path(db_path), retry=retry)

    def open(self) -> None:
        if self._conn is not None:
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(str(self.db_path), timeout=self._timeout, isolation_level=None)
        except (OSError, sqlite3.Error) as error:
            raise PersistenceFailure(f"Unable to open database at {self.db_path}: {error}") from error
        connection.row_factory = sqlite3.Row
        self._conn = connection
        try:
            self._run("bootstrap", self._bootstrap)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None

    def __enter__(self) -> "FeedingStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceFailure("Store is closed.")
        return self._conn

    def _bootstrap(self) -> None:
        self.connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS documents (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                version INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        self._migrate_legacy_plan()

    def _migrate_legacy_plan(self) -> None:
        """Move the pre-split ``baby:feedings`` document under the plan key once."""
        with self._transaction():
            legacy, _ = self._read(LEGACY_PLAN_KEY)
            if legacy is None:
                return
            current, _ = self._read(PLAN_KEY)
            if current is None:
                entries = normalize_planned_entries(legacy)
                self._write(PLAN_KEY, [entry.to_document() for entry in entries])
                LOGGER.info("Migrated %d planned feeding(s) from %s", len(entries), LEGACY_PLAN_KEY)
            self.connection.execute("DELETE FROM documents WHERE key = ?", (LEGACY_PLAN_KEY,))

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        connection = self.connection
        connection.execute("BEGIN IMMEDIATE")
        try:
            yield connection
            connection.execute("COMMIT")
        except BaseException:
            connection.execute("ROLLBACK")
            raise

    def _run(self, description: str, operation: Callable[[], T]) -> T:
        """Run ``operation`` under the retry policy, translating sqlite errors."""
        last_error: Optional[sqlite3.Error] = None
        for attempt in range(1, self.retry.attempts + 1):
            try:
                return operation()
            except sqlite3.OperationalError as error:
                last_error = error
                LOGGER.warning(
                    "Store %s failed (attempt %d/%d): %s", description, attempt, self.retry.attempts, error
                )
                if attempt < self.retry.attempts:
                    time.sleep(self.retry.delay)
            except sqlite3.Error as error:
                raise PersistenceFailure(f"Store {description} failed: {error}") from error
        raise PersistenceFailure(
            f"Store {description} failed after {self.retry.attempts} attempt(s): {last_error}"
        ) from last_error

    def _read(self, key: str) -> Tuple[Any, int]:
        row = self.connection.execute(
            "SELECT value, version FROM documents WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None, 0
        try:
            return json.loads(row["value"]), int(row["version"])
        except json.JSONDecodeError as error:
            raise PersistenceFailure(f"Stored document {key} is not valid JSON") from error

    def _write(self, key: str, document: Any, *, expected_version: Optional[int] = None) -> int:
        _, version = self._read(key)
        if expected_version is not None and expected_version != version:
            raise PlanConflict(expected_version, version)
        new_version = version + 1
        self.connection.execute(
            """
            INSERT INTO documents (key, value, version, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                version = excluded.version,
                updated_at = excluded.updated_at
            """,
            (key, json.dumps(document), new_version, _utc_iso()),
        )
        return new_version

    def _load(self, key: str) -> Tuple[Any, int]:
        return self._run(f"read {key}", lambda: self._read(key))

    def _store(self, key: str, document: Any, *, expected_version: Optional[int] = None) -> int:
        def _operation() -> int:
            with self._transaction():
                return self._write(key, document, expected_version=expected_version)

        return self._run(f"write {key}", _operation)

    # Plan operations -----------------------------------------------------------------
    def get_plan(self) -> List[PlannedEntry]:
        document, _ = self._load(PLAN_KEY)
        return normalize_planned_entries(document)

    def get_plan_version(self) -> int:
        _, version = self._load(PLAN_KEY)
        return version

    def save_plan(
        self,
        entries: Sequence[PlannedEntry],
        *,
        settings: Optional[FeedingSettings] = None,
        expected_version: Optional[int] = None,
    ) -> int:
        """Replace the stored plan as a whole; returns the new version."""
        if settings is not None:
            ensure_valid_plan(entries, settings)
        document = [entry.to_document() for entry in entries]
        version = self._store(PLAN_KEY, document, expected_version=expected_version)
        LOGGER.debug("Saved plan with %d entries (version %d)", len(document), version)
        return version

    def _update_entry(
        self, entry_id: str, change: Callable[[PlannedEntry], PlannedEntry]
    ) -> List[PlannedEntry]:
        def _operation() -> List[PlannedEntry]:
            with self._transaction():
                document, _ = self._read(PLAN_KEY)
                entries = normalize_planned_entries(document)
                if not any(entry.id == entry_id for entry in entries):
                    raise EntryNotFound(entry_id)
                updated = [change(entry) if entry.id == entry_id else entry for entry in entries]
                self._write(PLAN_KEY, [entry.to_document() for entry in updated])
                return updated

        return self._run(f"update entry {entry_id}", _operation)

    def set_completed(self, entry_id: str, value: bool) -> List[PlannedEntry]:
        return self._update_entry(
            entry_id, lambda entry: entry.model_copy(update={"is_completed": value})
        )

    def toggle_completed(self, entry_id: str) -> List[PlannedEntry]:
        """Flip one entry's completion flag in a single write transaction."""
        return self._update_entry(
            entry_id, lambda entry: entry.model_copy(update={"is_completed": not entry.is_completed})
        )

    # Settings operations -------------------------------------------------------------
    def get_settings(self) -> Optional[FeedingSettings]:
        document, _ = self._load(SETTINGS_KEY)
        if document is None:
            return None
        try:
            return FeedingSettings.model_validate(document)
        except ValidationError as error:
            raise InvalidSettings(f"Stored settings are invalid: {error}") from error

    def save_settings(self, settings: FeedingSettings) -> None:
        self._store(SETTINGS_KEY, settings.to_document())

    # Actual feeding operations -------------------------------------------------------
    def list_actual_feedings(self) -> List[ActualFeeding]:
        document, _ = self._load(ACTUAL_FEEDINGS_KEY)
        return normalize_actual_feedings(document)

    def _update_actual_feedings(
        self, description: str, change: Callable[[List[ActualFeeding]], List[ActualFeeding]]
    ) -> List[ActualFeeding]:
        def _operation() -> List[ActualFeeding]:
            with self._transaction():
                document, _ = self._read(ACTUAL_FEEDINGS_KEY)
                updated = change(normalize_actual_feedings(document))
                self._write(ACTUAL_FEEDINGS_KEY, [item.to_document() for item in updated])
                return updated

        return self._run(description, _operation)

    def add_actual_feeding(self, feeding: ActualFeeding) -> List[ActualFeeding]:
        return self._update_actual_feedings(
            "add actual feeding", lambda feedings: [*feedings, feeding]
        )

    def replace_actual_feeding(self, feeding: ActualFeeding) -> List[ActualFeeding]:
        def _change(feedings: List[ActualFeeding]) -> List[ActualFeeding]:
            if not any(item.id == feeding.id for item in feedings):
                raise EntryNotFound(feeding.id)
            return [feeding if item.id == feeding.id else item for item in feedings]

        return self._update_actual_feedings(f"update actual feeding {feeding.id}", _change)

    def remove_actual_feeding(self, feeding_id: str) -> List[ActualFeeding]:
        def _change(feedings: List[ActualFeeding]) -> List[ActualFeeding]:
            remaining = [item for item in feedings if item.id != feeding_id]
            if len(remaining) == len(feedings):
                raise EntryNotFound(feeding_id)
            return remaining

        return self._update_actual_feedings(f"remove actual feeding {feeding_id}", _change)

    # Profile operations --------------------------------------------------------------
    def get_profile(self) -> Optional[Mapping[str, Any]]:
        document, _ = self._load(PROFILE_KEY)
        return document if isinstance(document, Mapping) else None

    def save_profile(self, document: Mapping[str, Any]) -> None:
        self._store(PROFILE_KEY, dict(document))
