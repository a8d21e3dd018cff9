"""
Persisted learner statistics.

One small record survives between sessions: the learned-word counter, the
study streak, and the last level/language selection. It lives under a single
key in a key-value backend:

- JsonFileBackend: a JSON file in the user's home directory (default)
- FirestoreBackend: one Firestore document, used when
  FIREBASE_CREDENTIALS_PATH is configured

Records are versioned. Loading merges the stored fields over the defaults of
the current version, so records written before a field existed (version 1 had
no target language) are back-filled instead of rejected.
"""

import json
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .config import Settings
from .logger import logger
from .models import DEFAULT_LANGUAGE, DEFAULT_LEVEL, StudentLevel, TargetLanguage

STATS_KEY = "engvantage_stats"
SCHEMA_VERSION = 2

# Defaults introduced by each record version.
_VERSION_DEFAULTS = {
    1: {
        "totalWordsLearned": 0,
        "currentStreak": 0,
        "lastStudyDate": "",
        "level": DEFAULT_LEVEL.value,
    },
    2: {
        "targetLanguage": DEFAULT_LANGUAGE.value,
    },
}


def default_record() -> Dict[str, Any]:
    """Wire record of a learner with no history, at the current version."""
    record: Dict[str, Any] = {"version": SCHEMA_VERSION}
    for version in sorted(_VERSION_DEFAULTS):
        record.update(_VERSION_DEFAULTS[version])
    return record


class MalformedStatsError(ValueError):
    """A stored record cannot be read back into UserStats."""


def record_version(data: Dict[str, Any]) -> int:
    """Version a stored record was written at; records without one are version 1."""
    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise MalformedStatsError(f"version must be a positive integer, got {version!r}")
    return version


@dataclass
class UserStats:
    total_words_learned: int = 0
    current_streak: int = 0
    last_study_date: str = ""
    level: StudentLevel = DEFAULT_LEVEL
    target_language: TargetLanguage = DEFAULT_LANGUAGE

    def record_learned(self, learned: bool) -> None:
        """Adjust the counter for one word changing state; never below zero."""
        if learned:
            self.total_words_learned += 1
        else:
            self.total_words_learned = max(0, self.total_words_learned - 1)

    def record_study_day(self, today: Optional[date] = None) -> None:
        """Extend, keep or restart the daily streak."""
        today = today or date.today()
        last = None
        if self.last_study_date:
            try:
                last = date.fromisoformat(self.last_study_date)
            except ValueError:
                last = None

        if last == today:
            return
        if last is not None and last == today - timedelta(days=1):
            self.current_streak += 1
        else:
            self.current_streak = 1
        self.last_study_date = today.isoformat()

    def to_record(self) -> Dict[str, Any]:
        return {
            "version": SCHEMA_VERSION,
            "totalWordsLearned": self.total_words_learned,
            "currentStreak": self.current_streak,
            "lastStudyDate": self.last_study_date,
            "level": self.level.value,
            "targetLanguage": self.target_language.value,
        }

    @classmethod
    def from_record(cls, data: Any) -> "UserStats":
        """
        Build stats from a stored record merged over the versioned defaults.

        Raises MalformedStatsError when the record is not an object or a known
        field has the wrong type or an unknown value.
        """
        if not isinstance(data, dict):
            raise MalformedStatsError(f"expected an object, got {type(data).__name__}")
        record_version(data)

        merged = default_record()
        merged.update({k: v for k, v in data.items() if k in merged and k != "version"})

        for name in ("totalWordsLearned", "currentStreak"):
            value = merged[name]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise MalformedStatsError(f"{name} must be a non-negative integer")
        if not isinstance(merged["lastStudyDate"], str):
            raise MalformedStatsError("lastStudyDate must be a string")
        try:
            level = StudentLevel(merged["level"])
            language = TargetLanguage(merged["targetLanguage"])
        except ValueError as e:
            raise MalformedStatsError(str(e)) from e

        return cls(
            total_words_learned=merged["totalWordsLearned"],
            current_streak=merged["currentStreak"],
            last_study_date=merged["lastStudyDate"],
            level=level,
            target_language=language,
        )


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class JsonFileBackend:
    """A JSON object on disk used as a string-keyed store."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def read(self, key: str) -> Any:
        return self._read_all().get(key)

    def write(self, key: str, record: Dict[str, Any]) -> None:
        try:
            data = self._read_all()
        except ValueError:
            logger.warning(f"[DB] {self.path} is unreadable, starting a fresh store")
            data = {}
        data[key] = record

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".engvantage_", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def describe(self) -> str:
        return f"file {self.path}"


class FirestoreBackend:
    """
    Firestore document store.

    Collection structure:
    - engvantage/{key} -> stats record
    """

    COLLECTION = "engvantage"

    def __init__(self, client):
        self.client = client

    @classmethod
    def connect(cls, credentials_path: str) -> "FirestoreBackend":
        if not os.path.exists(credentials_path):
            raise FileNotFoundError(f"Firebase credentials not found at {credentials_path}")
        logger.db("Loading Firebase credentials...")
        try:
            firebase_admin.get_app()
        except ValueError:
            firebase_admin.initialize_app(credentials.Certificate(credentials_path))
        logger.success("[DB] Firebase Firestore connected")
        return cls(firestore.client())

    def read(self, key: str) -> Any:
        doc = self.client.collection(self.COLLECTION).document(key).get()
        return doc.to_dict() if doc.exists else None

    def write(self, key: str, record: Dict[str, Any]) -> None:
        self.client.collection(self.COLLECTION).document(key).set(record)

    def describe(self) -> str:
        return f"firestore {self.COLLECTION}"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class StatsStore:
    """Loads and saves the single UserStats record."""

    def __init__(self, backend, key: str = STATS_KEY):
        self.backend = backend
        self.key = key

    def load(self) -> UserStats:
        """Stored stats, or the default record when absent or malformed."""
        try:
            raw = self.backend.read(self.key)
        except Exception as e:
            logger.db_error(f"Could not read stats from {self.backend.describe()}: {e}")
            return UserStats()

        if raw is None:
            logger.db("No stored stats, starting fresh")
            return UserStats()

        # Older builds stored the record as a JSON string.
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                logger.warning(f"[DB] Stored stats are not JSON ({e}), using defaults")
                return UserStats()

        try:
            stats = UserStats.from_record(raw)
        except MalformedStatsError as e:
            logger.warning(f"[DB] Stored stats are malformed ({e}), using defaults")
            return UserStats()

        version = record_version(raw)
        if version < SCHEMA_VERSION:
            logger.db(f"Migrated stats record from version {version} to {SCHEMA_VERSION}")
        logger.db(f"Loaded stats: {stats.total_words_learned} words learned, streak {stats.current_streak}")
        return stats

    def save(self, stats: UserStats) -> bool:
        """Overwrite the stored record. Returns False if the write failed."""
        try:
            self.backend.write(self.key, stats.to_record())
        except Exception as e:
            logger.db_error(f"Could not save stats to {self.backend.describe()}: {e}")
            return False
        logger.debug(f"[DB] Stats saved ({stats.total_words_learned} learned)")
        return True


def create_backend(settings: Settings):
    """Firestore when credentials are configured and usable, else the JSON file."""
    if settings.firebase_credentials_path:
        try:
            return FirestoreBackend.connect(settings.firebase_credentials_path)
        except Exception as e:
            logger.db_error(f"Failed to initialize Firebase: {e}")
            logger.warning("[DB] Falling back to local stats file")
    return JsonFileBackend(settings.stats_path)


_store: Optional[StatsStore] = None
_store_lock = threading.Lock()


def get_stats_store(settings: Optional[Settings] = None) -> StatsStore:
    """The process-wide stats store, created on first use."""
    global _store
    with _store_lock:
        if _store is None:
            settings = settings or Settings()
            _store = StatsStore(create_backend(settings))
            logger.db(f"Stats store ready ({_store.backend.describe()})")
        return _store
