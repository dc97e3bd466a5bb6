"""Tests for persisted per-list sync state."""

from unittest.mock import patch

import pytest

from sandboxstart.sync.state import SyncPolicyState, migration_key


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / ".sync_state"


class TestSyncPolicyState:
    """Test loading, querying and saving state."""

    def test_missing_file_is_empty(self, state_path):
        """Test that a missing state file gives empty state."""
        state = SyncPolicyState(state_path)

        assert state.get("Python") is None
        assert list(state.lists()) == []

    def test_load_lines(self, state_path):
        """Test that active, disabled and migration lines are loaded."""
        state_path.write_text("Python=1\nDevTools=0\n_migration.Default=1\n")

        state = SyncPolicyState(state_path)

        assert state.is_active("Python")
        assert state.is_disabled("DevTools")
        assert state.get(migration_key("Default")) == 1

    def test_internal_keys_not_listed(self, state_path):
        """Test that migration keys are not reported as lists."""
        state_path.write_text("Python=1\n_migration.Default=1\n")

        assert list(SyncPolicyState(state_path).lists()) == [("Python", 1)]

    def test_underscore_names_are_lists(self, state_path):
        """Test that list names starting with an underscore are still listed."""
        state_path.write_text("_Base=1\n_migration.Default=0\n")

        assert list(SyncPolicyState(state_path).lists()) == [("_Base", 1)]

    def test_name_containing_equals_round_trip(self, state_path):
        """Test that a name containing '=' survives save and reload."""
        state = SyncPolicyState(state_path)
        state.set("a=b", 1)
        state.save()

        reloaded = SyncPolicyState(state_path)

        assert reloaded.get("a=b") == 1
        assert list(reloaded.lists()) == [("a=b", 1)]

    def test_case_insensitive_names(self, state_path):
        """Test that names match regardless of case and keep their first spelling."""
        state_path.write_text("Python=0\n")
        state = SyncPolicyState(state_path)

        assert state.is_disabled("python")
        state.set("PYTHON", 1)
        assert state.get("Python") == 1
        assert list(state.lists()) == [("Python", 1)]

    def test_malformed_lines_ignored(self, state_path):
        """Test that comments, blanks and bad values are skipped."""
        state_path.write_text("# comment\n\nnovalue\nBad=2\n=1\nGood = 1 \n")

        state = SyncPolicyState(state_path)

        assert list(state.lists()) == [("Good", 1)]

    def test_save_round_trip(self, state_path):
        """Test that saved state reads back identically."""
        state = SyncPolicyState(state_path)
        state.set("Python", 1)
        state.set("Old", 0)

        assert state.save() is True
        assert state_path.read_text() == "Python=1\nOld=0\n"

        reloaded = SyncPolicyState(state_path)
        assert reloaded.is_active("Python")
        assert reloaded.is_disabled("Old")

    def test_save_without_changes_does_not_write(self, state_path):
        """Test that an unchanged state does not create the file."""
        state = SyncPolicyState(state_path)

        assert state.save() is True
        assert not state_path.exists()

    def test_invalid_state_value(self, state_path):
        """Test that states other than 0 and 1 are rejected."""
        with pytest.raises(ValueError):
            SyncPolicyState(state_path).set("Python", 2)

    def test_save_failure_is_logged_not_raised(self, state_path):
        """Test that a write failure is reported through the return value."""
        state = SyncPolicyState(state_path)
        state.set("Python", 1)

        with patch("pathlib.Path.write_text", side_effect=OSError("read-only")):
            assert state.save() is False

    def test_contains(self, state_path):
        """Test membership checks ignore case."""
        state_path.write_text("Python=1\n")

        state = SyncPolicyState(state_path)

        assert "python" in state
        assert "Other" not in state
