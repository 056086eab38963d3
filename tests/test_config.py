import pytest

from postflow import config
from postflow.config import Settings


def test_environment_is_read_when_settings_are_built(monkeypatch):
    monkeypatch.setenv("N8N_WEBHOOK_SECRET", "from-env")
    monkeypatch.setenv("FRONTEND_ORIGIN", "http://a.example, http://b.example")

    settings = Settings()

    assert settings.n8n_webhook_secret == "from-env"
    assert settings.frontend_origins == ["http://a.example", "http://b.example"]


def test_no_import_time_instance():
    assert not hasattr(config, "settings")


def test_overrides():
    assert Settings(admin_email="ops@example.com").admin_email == "ops@example.com"
    with pytest.raises(TypeError, match="unknown setting"):
        Settings(not_a_setting=1)
