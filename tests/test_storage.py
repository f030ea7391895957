"""Comprehensive tests for storage layer."""

import json
import tempfile
import threading
from datetime import datetime
from pathlib import Path

import pytest

from dailyflow.models import DayLog, FlowMode, Focus, Mood, Phase, PomodoroSession, Settings, Status, Task
from dailyflow.storage import JsonStorage, Storage


def make_session(day="2024-01-01", task_id="t1", phase=Phase.WORK, minutes=25, hour=9):
    return PomodoroSession(
        day_key=day,
        task_id=task_id,
        phase=phase,
        minutes=minutes,
        started_at=datetime(2024, 1, 1, hour, 0),
        ended_at=datetime(2024, 1, 1, hour, minutes),
    )


def make_log(day, mood=Mood.GOOD, mode=FlowMode.KANBAN):
    return DayLog(
        day_key=day,
        mood=mood,
        mode=mode,
        tasks_snapshot=(Task(id="x", title="x", created_at=datetime(2024, 1, 1)).to_dict(),),
        archived_at=datetime(2024, 1, 1, 23, 0),
    )


class TestJsonStorage:
    """Test suite for JsonStorage implementation."""

    @pytest.fixture
    def temp_file(self):
        """Create a temporary file path for testing."""
        with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".json") as f:
            temp_path = f.name
        # Delete the file immediately - we just need the path
        Path(temp_path).unlink()
        yield temp_path
        # Cleanup
        for path in (Path(temp_path), Path(temp_path + ".lock")):
            if path.exists():
                path.unlink()

    @pytest.fixture
    def storage(self, temp_file):
        """Create a JsonStorage instance with temporary file."""
        return JsonStorage(temp_file)

    @pytest.fixture
    def sample_tasks(self):
        """Create sample tasks for testing."""
        return [
            Task(
                id="a1",
                title="Test task 1",
                status=Status.DOING,
                focus=Focus.WORK,
                created_at=datetime(2024, 1, 1, 12, 0, 0),
            ),
            Task(
                id="b2",
                title="Test task 2",
                status=Status.DONE,
                focus=Focus.LEARNING,
                created_at=datetime(2024, 1, 2, 12, 0, 0),
                rolled_over=True,
                carried_over_from_day="2024-01-01",
            ),
        ]

    def test_storage_is_abstract(self):
        """Test that Storage is an abstract base class."""
        with pytest.raises(TypeError):
            Storage()

    def test_save_creates_file(self, storage, sample_tasks):
        storage.save_active_tasks(sample_tasks)
        assert storage.file_path.exists()

    def test_save_writes_valid_json(self, storage, sample_tasks):
        """Test that the document uses the expected keys."""
        storage.save_active_tasks(sample_tasks)

        with open(storage.file_path) as f:
            data = json.load(f)

        assert list(data) == ["active_tasks_v1"]
        assert data["active_tasks_v1"][0]["id"] == "a1"
        assert data["active_tasks_v1"][1]["carriedOverFromDay"] == "2024-01-01"

    def test_load_missing_file(self, storage):
        assert storage.load_active_tasks() == []
        assert storage.load_settings() == Settings()
        assert storage.load_all_day_logs() == []
        assert storage.load_pomodoro_sessions("2024-01-01") == []

    def test_load_empty_file(self, storage):
        storage.file_path.write_text("")
        assert storage.load_active_tasks() == []

    def test_tasks_roundtrip(self, storage, sample_tasks):
        storage.save_active_tasks(sample_tasks)
        assert storage.load_active_tasks() == sample_tasks

    def test_save_overwrites_existing_tasks(self, storage, sample_tasks):
        storage.save_active_tasks(sample_tasks)
        storage.save_active_tasks(sample_tasks[:1])

        loaded = storage.load_active_tasks()
        assert [t.id for t in loaded] == ["a1"]

    def test_saving_tasks_keeps_other_keys(self, storage, sample_tasks):
        storage.save_day_log(make_log("2024-01-01"))
        storage.save_active_tasks(sample_tasks)

        assert storage.load_day_log("2024-01-01") is not None

    def test_delete_removes_file(self, storage, sample_tasks):
        storage.save_active_tasks(sample_tasks)
        storage.delete()
        assert not storage.file_path.exists()

    def test_delete_nonexistent_file(self, storage):
        """Test deleting when the file doesn't exist."""
        storage.delete()

    def test_save_creates_parent_directories(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            nested = Path(tmpdir) / "a" / "b" / "data.json"
            storage = JsonStorage(str(nested))
            storage.save_active_tasks([])
            assert nested.exists()

    def test_load_handles_corrupted_json(self, storage):
        storage.file_path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            storage.load_active_tasks()

    def test_special_characters_in_title(self, storage):
        task = Task(id="u1", title='Émoji 🚀 "quotes" and ünïcode',
                    created_at=datetime(2024, 1, 1))
        storage.save_active_tasks([task])
        assert storage.load_active_tasks()[0].title == task.title

    def test_custom_file_path_from_env(self, monkeypatch, temp_file):
        monkeypatch.setenv("DAILYFLOW_DATA_PATH", temp_file)
        assert JsonStorage().file_path == Path(temp_file)

    def test_default_file_path(self, monkeypatch):
        monkeypatch.delenv("DAILYFLOW_DATA_PATH", raising=False)
        assert JsonStorage().file_path == Path("dailyflow.json")

    def test_no_temp_files_left_behind(self, storage, sample_tasks):
        storage.save_active_tasks(sample_tasks)
        leftovers = list(storage.file_path.parent.glob(storage.file_path.name + "*.tmp"))
        assert leftovers == []


class TestSettingsStorage:
    """Tests for the settings record in JsonStorage."""

    @pytest.fixture
    def storage(self, tmp_path):
        return JsonStorage(str(tmp_path / "data.json"))

    def test_defaults_without_record(self, storage):
        assert storage.get_setting("mode") == FlowMode.KANBAN
        assert storage.get_setting("is_premium") is False

    def test_set_setting_keeps_siblings(self, storage):
        storage.set_setting("dark_mode", True)
        storage.set_setting("mode", FlowMode.SCRUM)
        storage.set_setting("is_premium", True)

        settings = storage.load_settings()
        assert settings.dark_mode is True
        assert settings.mode == FlowMode.SCRUM
        assert settings.is_premium is True
        assert settings.has_seen_onboarding is False

    def test_set_setting_accepts_mode_name(self, storage):
        storage.set_setting("mode", "xp")
        assert storage.get_setting("mode") == FlowMode.XP

    def test_unknown_setting(self, storage):
        with pytest.raises(KeyError):
            storage.set_setting("volume", 11)
        with pytest.raises(KeyError):
            storage.get_setting("volume")

    def test_save_settings_roundtrip(self, storage):
        settings = Settings(mode=FlowMode.XP, has_seen_onboarding=True)
        storage.save_settings(settings)
        assert storage.load_settings() == settings

    def test_partial_record_on_disk(self, storage):
        storage.file_path.write_text(json.dumps({"settings_v1": {"darkMode": True}}))
        settings = storage.load_settings()
        assert settings.dark_mode is True
        assert settings.mode == FlowMode.KANBAN


class TestDayLogStorage:
    """Tests for archived days in JsonStorage."""

    @pytest.fixture
    def storage(self, tmp_path):
        return JsonStorage(str(tmp_path / "data.json"))

    def test_missing_day(self, storage):
        assert storage.load_day_log("2024-01-01") is None

    def test_save_and_load(self, storage):
        log = make_log("2024-01-01", Mood.HARD, FlowMode.XP)
        storage.save_day_log(log)
        assert storage.load_day_log("2024-01-01") == log

    def test_all_logs_newest_first(self, storage):
        for day in ["2024-01-02", "2023-12-31", "2024-01-10"]:
            storage.save_day_log(make_log(day))

        keys = [log.day_key for log in storage.load_all_day_logs()]
        assert keys == ["2024-01-10", "2024-01-02", "2023-12-31"]

    def test_same_day_last_write_wins(self, storage):
        storage.save_day_log(make_log("2024-01-01", Mood.GOOD))
        storage.save_day_log(make_log("2024-01-01", Mood.HARD))

        logs = storage.load_all_day_logs()
        assert len(logs) == 1
        assert logs[0].mood == Mood.HARD


class TestPomodoroStorage:
    """Tests for session logs in JsonStorage."""

    @pytest.fixture
    def storage(self, tmp_path):
        return JsonStorage(str(tmp_path / "data.json"))

    def test_append_in_order(self, storage):
        first = make_session(hour=9)
        second = make_session(phase=Phase.BREAK, task_id=None, minutes=5, hour=10)
        storage.append_pomodoro_session(first)
        storage.append_pomodoro_session(second)

        assert storage.load_pomodoro_sessions("2024-01-01") == [first, second]

    def test_sessions_are_kept_per_day(self, storage):
        storage.append_pomodoro_session(make_session(day="2024-01-01"))
        storage.append_pomodoro_session(make_session(day="2024-01-02"))

        assert len(storage.load_pomodoro_sessions("2024-01-01")) == 1
        assert len(storage.load_pomodoro_sessions("2024-01-02")) == 1
        assert storage.load_pomodoro_sessions("2024-01-03") == []

    def test_concurrent_appends(self, storage):
        """Test that appends from several threads are all kept."""
        errors = []

        def append(i):
            try:
                storage.append_pomodoro_session(make_session(task_id=f"t{i}"))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=append, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 0
        ids = sorted(s.task_id for s in storage.load_pomodoro_sessions("2024-01-01"))
        assert ids == sorted(f"t{i}" for i in range(10))
