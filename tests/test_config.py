"""Tests for contour merge settings persistence and logging setup."""

from __future__ import annotations

import logging

from contourmerge.config import (
    MergeSettings,
    config_path,
    configure_logging,
    load_settings,
    save_settings,
)


def test_missing_file_yields_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("CONTOURMERGE_LOG_LEVEL", raising=False)

    settings = load_settings(tmp_path / "missing.ini")

    assert settings == MergeSettings()


def test_log_level_default_comes_from_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CONTOURMERGE_LOG_LEVEL", "debug")

    assert load_settings(tmp_path / "missing.ini").log_level == "DEBUG"


def test_load_settings_reads_values(tmp_path) -> None:
    ini_path = tmp_path / "contourmerge.ini"
    ini_path.write_text(
        "[merge]\n"
        "validate_before_apply = no\n"
        "report_slings = false\n"
        "[logging]\n"
        "level = warning\n"
        "file = merge.log\n",
        encoding="utf-8",
    )

    settings = load_settings(ini_path)

    assert settings == MergeSettings(
        validate_before_apply=False,
        report_slings=False,
        log_level="WARNING",
        log_file="merge.log",
    )


def test_malformed_values_fall_back_to_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("CONTOURMERGE_LOG_LEVEL", raising=False)
    ini_path = tmp_path / "contourmerge.ini"
    ini_path.write_text(
        "[merge]\nvalidate_before_apply = sometimes\n[logging]\nlevel = chatty\n",
        encoding="utf-8",
    )

    settings = load_settings(ini_path)

    assert settings.validate_before_apply is True
    assert settings.log_level == "INFO"


def test_unparseable_file_yields_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("CONTOURMERGE_LOG_LEVEL", raising=False)
    ini_path = tmp_path / "contourmerge.ini"
    ini_path.write_text("no section header\n", encoding="utf-8")

    assert load_settings(ini_path) == MergeSettings()


def test_save_then_load(tmp_path) -> None:
    ini_path = tmp_path / "nested" / "contourmerge.ini"
    settings = MergeSettings(report_slings=False, log_level="DEBUG", log_file="x.log")

    save_settings(ini_path, settings)

    assert load_settings(ini_path) == settings


def test_config_path_honours_environment_override(tmp_path, monkeypatch) -> None:
    override = tmp_path / "custom.ini"
    monkeypatch.setenv("CONTOURMERGE_CONFIG", str(override))

    assert config_path() == override


def test_config_path_next_to_main_script(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("CONTOURMERGE_CONFIG", raising=False)
    script = tmp_path / "host.py"

    assert config_path(script) == tmp_path.resolve() / "contourmerge.ini"


def test_configure_logging_resolves_level() -> None:
    assert configure_logging("debug") == logging.DEBUG
    assert configure_logging("not-a-level") == logging.INFO
