from __future__ import annotations

import logging

import pytest

from core.errors import ConfigurationError
from core.location_guard import verify_data_location


def test_data_inside_app_root_is_rejected(tmp_path):
    app_root = tmp_path / "app"
    app_root.mkdir()

    with pytest.raises(ConfigurationError, match="inside the application directory"):
        verify_data_location(str(app_root / "db" / "data"), app_root)


def test_data_equal_to_app_root_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        verify_data_location(str(tmp_path), tmp_path)


def test_relative_path_resolved_against_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigurationError):
        verify_data_location("./data")


def test_sibling_with_shared_prefix_is_allowed(tmp_path):
    app_root = tmp_path / "app"
    data = tmp_path / "app-data"
    app_root.mkdir()
    data.mkdir()

    assert verify_data_location(str(data), app_root) == data.resolve()


def test_parent_traversal_out_of_app_is_allowed(tmp_path):
    app_root = tmp_path / "app"
    app_root.mkdir()
    (tmp_path / "database").mkdir()

    resolved = verify_data_location(str(app_root / ".." / "database"), app_root)

    assert resolved == (tmp_path / "database").resolve()


def test_missing_directory_only_warns(tmp_path, caplog):
    app_root = tmp_path / "app"
    app_root.mkdir()

    with caplog.at_level(logging.WARNING, logger="core.location_guard"):
        verify_data_location(str(tmp_path / "not-yet"), app_root)

    assert any("data_path_missing" in r.getMessage() for r in caplog.records)


def test_empty_path_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        verify_data_location("   ", tmp_path)
