import json
from datetime import date

import pytest

from engvantage.models import StudentLevel, TargetLanguage
from engvantage.stats import (
    STATS_KEY,
    SCHEMA_VERSION,
    JsonFileBackend,
    MalformedStatsError,
    StatsStore,
    UserStats,
    default_record,
)

from fakes import MemoryBackend


def test_load_without_record_returns_defaults(backend) -> None:
    stats = StatsStore(backend).load()
    assert stats == UserStats()
    assert stats.level == StudentLevel.JUNIOR
    assert stats.target_language == TargetLanguage.TRADITIONAL_CHINESE


@pytest.mark.parametrize(
    "stored",
    [
        "{not json",
        "[1, 2, 3]",
        42,
        ["a"],
        {"totalWordsLearned": -3},
        {"totalWordsLearned": "7"},
        {"currentStreak": True},
        {"lastStudyDate": 20240101},
        {"level": "University"},
        {"targetLanguage": "Klingon"},
    ],
)
def test_malformed_record_yields_exact_default(stored) -> None:
    store = StatsStore(MemoryBackend({STATS_KEY: stored}))
    assert store.load() == UserStats()


@pytest.mark.parametrize("version", ["2", None, [1], 0, -1, True, 1.5])
def test_record_with_bad_version_yields_exact_default(version) -> None:
    record = {**default_record(), "totalWordsLearned": 9, "level": "TOEIC", "version": version}
    store = StatsStore(MemoryBackend({STATS_KEY: record}))
    assert store.load() == UserStats()


def test_version_one_record_is_backfilled_with_default_language() -> None:
    legacy = {
        "totalWordsLearned": 12,
        "currentStreak": 3,
        "lastStudyDate": "2024-05-01",
        "level": "Senior High",
    }
    stats = StatsStore(MemoryBackend({STATS_KEY: legacy})).load()
    assert stats.total_words_learned == 12
    assert stats.current_streak == 3
    assert stats.level == StudentLevel.SENIOR
    assert stats.target_language == TargetLanguage.TRADITIONAL_CHINESE


def test_record_stored_as_json_string_is_accepted() -> None:
    raw = json.dumps({"totalWordsLearned": 4, "level": "TOEIC", "targetLanguage": "Japanese"})
    stats = StatsStore(MemoryBackend({STATS_KEY: raw})).load()
    assert stats.total_words_learned == 4
    assert stats.level == StudentLevel.TOEIC
    assert stats.target_language == TargetLanguage.JAPANESE


def test_save_overwrites_whole_record(backend) -> None:
    store = StatsStore(backend)
    stats = UserStats(total_words_learned=5, level=StudentLevel.SENIOR, target_language=TargetLanguage.KOREAN)
    assert store.save(stats) is True
    assert backend.data[STATS_KEY] == {
        "version": SCHEMA_VERSION,
        "totalWordsLearned": 5,
        "currentStreak": 0,
        "lastStudyDate": "",
        "level": "Senior High",
        "targetLanguage": "Korean",
    }
    assert store.load() == stats


def test_save_failure_is_reported_not_raised() -> None:
    store = StatsStore(MemoryBackend(fail_writes=True))
    assert store.save(UserStats(total_words_learned=1)) is False


def test_unreadable_backend_falls_back_to_defaults() -> None:
    class BrokenBackend(MemoryBackend):
        def read(self, key):
            raise OSError("permission denied")

    assert StatsStore(BrokenBackend()).load() == UserStats()


def test_learned_counter_never_goes_negative() -> None:
    stats = UserStats()
    for learned in (False, False, True, False, False, False):
        stats.record_learned(learned)
        assert stats.total_words_learned >= 0
    assert stats.total_words_learned == 0


def test_learned_then_unlearned_restores_count() -> None:
    stats = UserStats(total_words_learned=7)
    stats.record_learned(True)
    stats.record_learned(False)
    assert stats.total_words_learned == 7


def test_study_streak_rules() -> None:
    stats = UserStats()
    stats.record_study_day(date(2024, 3, 1))
    assert (stats.current_streak, stats.last_study_date) == (1, "2024-03-01")

    stats.record_study_day(date(2024, 3, 1))
    assert stats.current_streak == 1

    stats.record_study_day(date(2024, 3, 2))
    assert stats.current_streak == 2

    stats.record_study_day(date(2024, 3, 5))
    assert (stats.current_streak, stats.last_study_date) == (1, "2024-03-05")


def test_study_streak_restarts_on_garbage_date() -> None:
    stats = UserStats(current_streak=9, last_study_date="yesterday-ish")
    stats.record_study_day(date(2024, 3, 1))
    assert stats.current_streak == 1


def test_from_record_rejects_non_objects() -> None:
    with pytest.raises(MalformedStatsError):
        UserStats.from_record("nope")


def test_default_record_covers_every_version() -> None:
    record = default_record()
    assert record["version"] == SCHEMA_VERSION
    assert set(record) == {"version", "totalWordsLearned", "currentStreak", "lastStudyDate", "level", "targetLanguage"}


def test_json_file_backend_round_trips_and_keeps_other_keys(tmp_path) -> None:
    path = tmp_path / "nested" / "storage.json"
    backend = JsonFileBackend(path)
    assert backend.read(STATS_KEY) is None

    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"other": {"keep": True}}), encoding="utf-8")
    backend.write(STATS_KEY, {"totalWordsLearned": 2})

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["other"] == {"keep": True}
    assert backend.read(STATS_KEY) == {"totalWordsLearned": 2}
    assert [p.name for p in path.parent.iterdir()] == ["storage.json"]


def test_json_file_backend_replaces_corrupt_file_on_write(tmp_path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("{{{", encoding="utf-8")
    store = StatsStore(JsonFileBackend(path))

    assert store.load() == UserStats()
    assert store.save(UserStats(total_words_learned=3)) is True
    assert store.load().total_words_learned == 3
