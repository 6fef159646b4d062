from __future__ import annotations

import json
import logging

import pytest

from pgvms.config import CONFIG_FILE_NAME, Settings, load_settings, persist_settings
from pgvms.log import setup_logging


def test_defaults(tmp_path):
    s = load_settings(env={"PGVMS_DATA_DIR": str(tmp_path)})

    assert s.data_dir == tmp_path.resolve()
    assert (s.currency_symbol, s.expiring_soon_days, s.forecast_model) == ("₹", 3, "gemini-2.5-flash")
    assert s.forecast_api_key is None
    assert s.log_level == "INFO"


def test_persisted_values_then_env_override(tmp_path):
    path = persist_settings(tmp_path, expiring_soon_days=5, forecast_model="gemini-x", forecast_api_key="secret")

    assert path == tmp_path.resolve() / CONFIG_FILE_NAME
    assert "forecast_api_key" not in json.loads(path.read_text(encoding="utf-8"))

    s = load_settings(env={"PGVMS_DATA_DIR": str(tmp_path)})
    assert (s.expiring_soon_days, s.forecast_model) == (5, "gemini-x")
    assert s.forecast_api_key is None

    s = load_settings(env={"PGVMS_DATA_DIR": str(tmp_path), "PGVMS_EXPIRING_SOON_DAYS": "2", "PGVMS_LOG_LEVEL": "debug"})
    assert s.expiring_soon_days == 2
    assert s.forecast_model == "gemini-x"
    assert s.log_level == "DEBUG"


def test_persist_merges_existing_values(tmp_path):
    persist_settings(tmp_path, currency_symbol="Rs ")
    persist_settings(tmp_path, expiring_soon_days=4)

    s = load_settings(env={"PGVMS_DATA_DIR": str(tmp_path)})
    assert (s.currency_symbol, s.expiring_soon_days) == ("Rs ", 4)


def test_api_key_sources(tmp_path):
    base = {"PGVMS_DATA_DIR": str(tmp_path)}
    assert load_settings(env={**base, "GEMINI_API_KEY": "g"}).forecast_api_key == "g"
    assert load_settings(env={**base, "GEMINI_API_KEY": "g", "PGVMS_FORECAST_API_KEY": "p"}).forecast_api_key == "p"


def test_unreadable_settings_file_is_ignored(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("{not json", encoding="utf-8")
    assert load_settings(env={"PGVMS_DATA_DIR": str(tmp_path)}).expiring_soon_days == 3


@pytest.mark.parametrize(
    "extra",
    [{"PGVMS_EXPIRING_SOON_DAYS": "soon"}, {"PGVMS_EXPIRING_SOON_DAYS": "-1"}, {"PGVMS_FORECAST_TIMEOUT_S": "x"}],
)
def test_invalid_numbers_rejected(tmp_path, extra):
    with pytest.raises(ValueError):
        load_settings(env={"PGVMS_DATA_DIR": str(tmp_path), **extra})


def test_setup_logging_installs_one_handler(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging(Settings(data_dir=tmp_path, log_level="warning"))
        setup_logging(Settings(data_dir=tmp_path, log_level="warning"))

        ours = [h for h in root.handlers if getattr(h, "_pgvms", False)]
        assert len(ours) == 1
        assert root.level == logging.WARNING
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
        root.setLevel(level)
