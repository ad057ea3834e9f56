import logging

import pytest
import yaml
from pydantic import ValidationError

from mobius_query.api.config_loaders import load_mobius_config
from mobius_query.utils.logging_config import setup_logging


def test_package_defaults(tmp_path):
    settings = load_mobius_config(str(tmp_path))
    assert settings.server == ""
    assert settings.timeout == 60
    assert settings.utc_offset == -5
    assert settings.date_range_hours == 72
    assert settings.date_window_inclusive is False


def test_user_file_overrides_defaults(tmp_path):
    (tmp_path / "mobius.yaml").write_text(
        yaml.safe_dump({"server": "m3d.local", "utc_offset": -4, "date_window_inclusive": True})
    )
    settings = load_mobius_config(str(tmp_path))
    assert settings.server == "m3d.local"
    assert settings.utc_offset == -4
    assert settings.date_window_inclusive is True
    assert settings.timeout == 60


def test_env_overrides_user_file(tmp_path, monkeypatch):
    (tmp_path / "mobius.yaml").write_text("server: m3d.local\nusername: file_user\n")
    monkeypatch.setenv("MOBIUS_SERVER", "10.0.0.5")
    monkeypatch.setenv("MOBIUS_PASSWORD", "secret")
    settings = load_mobius_config(str(tmp_path))
    assert settings.server == "10.0.0.5"
    assert settings.username == "file_user"
    assert settings.password == "secret"
    assert "secret" not in repr(settings)


def test_config_dir_from_env(tmp_path, monkeypatch):
    (tmp_path / "mobius.yaml").write_text("server: from-env-dir\n")
    monkeypatch.setenv("MOBIUS_CONFIG_DIR", str(tmp_path))
    assert load_mobius_config().server == "from-env-dir"


def test_malformed_file_falls_back(tmp_path, caplog):
    (tmp_path / "mobius.yaml").write_text("server: [unclosed\n")
    with caplog.at_level(logging.ERROR):
        settings = load_mobius_config(str(tmp_path))
    assert settings.server == ""
    assert "Failed to parse" in caplog.text


def test_empty_values_keep_defaults(tmp_path):
    (tmp_path / "mobius.yaml").write_text("server:\ntimeout:\n")
    settings = load_mobius_config(str(tmp_path))
    assert settings.timeout == 60


def test_bad_timeout_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("MOBIUS_TIMEOUT", "soon")
    with pytest.raises(ValidationError):
        load_mobius_config(str(tmp_path))


def test_setup_logging_is_idempotent():
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        setup_logging()
        setup_logging(verbose=True)
        ours = [h for h in root.handlers if h.get_name() == "mobius_query.console"]
        assert len(ours) == 1
        assert ours[0].level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.DEBUG
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
        logging.getLogger("urllib3").setLevel(logging.NOTSET)
