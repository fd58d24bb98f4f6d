import json

import pytest

from storefront.config import load_env, refresh_non_sensitive, requires_restart, validate_currency


def test_settings_file_overrides_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CURRENCY", "usd")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    (tmp_path / "settings.json").write_text(json.dumps({"CURRENCY": "eur"}), encoding="utf-8")
    config = load_env(env_file=tmp_path / "missing.env", data_dir=tmp_path)
    assert config.currency == "EUR"
    assert config.database_url.endswith("storefront.db")


def test_invalid_currency():
    with pytest.raises(ValueError):
        validate_currency("EURO")


def test_hot_reload_only_touches_allowed_keys(tmp_path):
    config = load_env(env_file=tmp_path / "missing.env", data_dir=tmp_path)
    updated = refresh_non_sensitive({"CURRENCY": "gbp", "SECRET_KEY": "x"}, config)
    assert updated.currency == "GBP"
    assert updated.secret_key == config.secret_key
    assert requires_restart(["SECRET_KEY"])
    assert not requires_restart(["CURRENCY"])
