from sellerwatch.config import Settings, get_settings


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = Settings()

    assert settings.database_path == "data/sellerwatch.db"
    assert settings.ml_api_url == "https://api.mercadolibre.com"
    assert settings.changes_lookback_days == 7
    assert settings.changes_limit == 100
    assert settings.snapshot_list_limit == 30
    assert settings.source_timeout_seconds == 15.0


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ML_SELLER_ID", "123")
    monkeypatch.setenv("SOURCE_TIMEOUT_SECONDS", "5")

    settings = get_settings()

    assert settings.ml_seller_id == "123"
    assert settings.source_timeout_seconds == 5.0


def test_env_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("ML_ACCESS_TOKEN=from-file\nLOG_JSON=false\n")

    settings = Settings()

    assert settings.ml_access_token == "from-file"
    assert settings.log_json is False
