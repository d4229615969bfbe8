"""Tests for configuration helpers."""
from __future__ import annotations

from core.config import Settings, _env_bool, _env_list


def test_env_list(monkeypatch) -> None:
    monkeypatch.setenv("MINDPROFILER_TEST_LIST", " mathrm, operatorname ,, ")
    assert _env_list("MINDPROFILER_TEST_LIST") == ("mathrm", "operatorname")
    assert _env_list("MINDPROFILER_TEST_MISSING") == ()


def test_env_bool(monkeypatch) -> None:
    monkeypatch.setenv("MINDPROFILER_TEST_FLAG", "TRUE")
    assert _env_bool("MINDPROFILER_TEST_FLAG", False) is True
    monkeypatch.setenv("MINDPROFILER_TEST_FLAG", "no")
    assert _env_bool("MINDPROFILER_TEST_FLAG", True) is False
    assert _env_bool("MINDPROFILER_TEST_UNSET", True) is True


def test_extra_safe_commands_read_per_instance(monkeypatch) -> None:
    monkeypatch.setenv("MINDPROFILER_EXTRA_SAFE_COMMANDS", "mathrm")
    assert Settings().extra_safe_commands == ("mathrm",)


def test_mathpix_configured() -> None:
    assert Settings(mathpix_app_id="id", mathpix_app_key="key").mathpix_configured
    assert not Settings(mathpix_app_id="id", mathpix_app_key=None).mathpix_configured
