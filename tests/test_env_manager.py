"""Tests for env_manager lookups."""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "python"))

import env_manager


def test_get_from_mapping():
    assert env_manager.get("RELEASE", {"RELEASE": "1"}) == "1"


def test_absent_is_none():
    assert env_manager.get("RELEASE", {}) is None


def test_empty_value_is_returned_as_is():
    assert env_manager.get("RELEASE", {"RELEASE": ""}) == ""


def test_defaults_to_os_environ(monkeypatch):
    monkeypatch.setenv("KFS_MAKE_TEST_VAR", "x")
    assert env_manager.get("KFS_MAKE_TEST_VAR") == "x"
