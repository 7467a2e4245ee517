def test_health_without_google_configuration(monkeypatch, tmp_path):
    from fastapi.testclient import TestClient

    from readaloud.api.dependencies import get_settings
    from readaloud.main import create_app

    monkeypatch.setenv("READALOUD_SETTINGS", str(tmp_path / "missing.yaml"))
    for name in ("GOOGLE_CLOUD_PROJECT_ID", "GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_CLOUD_STORAGE_BUCKET"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    app = create_app()
    try:
        with TestClient(app) as c:
            r = c.get("/health")
            assert r.status_code == 200
            j = r.json()
            assert j["ok"] is True
            assert j["long_audio_ready"] is False
            assert j["storage"]["configured"] is False
            assert j["provider"]["clients_ready"] == {"synthesize": False, "long_audio": False}
            assert j["synthesis"]["short_text_limit"] == 5000
            assert "version" in j
    finally:
        get_settings.cache_clear()
