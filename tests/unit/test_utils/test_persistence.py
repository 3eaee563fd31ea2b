"""Tests for JSON document persistence helpers."""

import json
import stat

import pytest

from subwatch.utils.exceptions import StoreError
from subwatch.utils.persistence import (
    ensure_private_directory,
    load_json_document,
    save_json_document,
)


class TestLoadJsonDocument:
    """Tests for load_json_document."""

    def test_missing_file_returns_empty(self, tmp_path):
        """Should return an empty document for a missing file."""
        assert load_json_document(tmp_path / "missing.json") == {}

    def test_loads_existing_document(self, tmp_path):
        """Should return the parsed mapping."""
        path = tmp_path / "doc.json"
        path.write_text(json.dumps({"a": 1}))

        assert load_json_document(path) == {"a": 1}

    def test_corrupt_file_moved_to_backup(self, tmp_path):
        """Should back up corrupt files and start empty."""
        path = tmp_path / "doc.json"
        path.write_text("{not json")

        assert load_json_document(path) == {}
        assert not path.exists()
        assert (tmp_path / "doc.json.backup").read_text() == "{not json"

    def test_non_mapping_returns_empty(self, tmp_path):
        """Should ignore documents whose root is not a mapping."""
        path = tmp_path / "doc.json"
        path.write_text("[1, 2, 3]")

        assert load_json_document(path) == {}


class TestSaveJsonDocument:
    """Tests for save_json_document."""

    def test_round_trip(self, tmp_path):
        """Should write a document that loads back unchanged."""
        path = tmp_path / "nested" / "doc.json"
        save_json_document(path, {"users": {"u1": {"x": 1}}})

        assert load_json_document(path) == {"users": {"u1": {"x": 1}}}

    def test_private_permissions(self, tmp_path):
        """Should restrict the file to the owner."""
        path = tmp_path / "doc.json"
        save_json_document(path, {})

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path):
        """Should leave only the target file behind."""
        path = tmp_path / "doc.json"
        save_json_document(path, {"a": 1})
        save_json_document(path, {"a": 2})

        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_unwritable_target_raises_store_error(self, tmp_path):
        """Should wrap OS errors in StoreError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(StoreError):
            save_json_document(blocker / "doc.json", {})


def test_ensure_private_directory(tmp_path):
    """Test directory is created with owner-only permissions"""
    target = tmp_path / "data"
    ensure_private_directory(target / "doc.json")

    assert target.is_dir()
    assert stat.S_IMODE(target.stat().st_mode) == 0o700
