"""
Test impostazioni
"""
import pytest

from sportclub.config import AppConfig, SchedulerConfig, SupabaseConfig


class TestAppConfig:
    """Impostazioni APP_"""

    def test_defaults(self, monkeypatch):
        for name in ("APP_ENVIRONMENT", "APP_DUE_SOON_DAYS", "APP_MAX_RECURRENCE_OCCURRENCES"):
            monkeypatch.delenv(name, raising=False)
        config = AppConfig()
        assert config.due_soon_days == 30
        assert config.max_recurrence_occurrences == 366
        assert config.max_page_limit == 500

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        monkeypatch.setenv("APP_DUE_SOON_DAYS", "15")
        config = AppConfig()
        assert config.is_production
        assert config.due_soon_days == 15

    def test_is_production_case_insensitive(self):
        assert AppConfig(environment="Production").is_production
        assert not AppConfig(environment="preview").is_production


class TestOtherConfig:
    """Impostazioni Supabase e scheduler"""

    def test_supabase_env(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service")
        config = SupabaseConfig()
        assert config.supabase_url == "https://example.supabase.co"
        assert config.supabase_service_key == "service"

    def test_scheduler_env(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_RECALC_ENABLED", "true")
        monkeypatch.setenv("SCHEDULER_RECALC_HOUR", "4")
        config = SchedulerConfig()
        assert config.recalc_enabled is True
        assert config.recalc_hour == 4


class TestAdminClient:
    """Creazione client"""

    def test_missing_service_key_raises(self, monkeypatch):
        import database.supabase_client as module

        monkeypatch.setattr(module, "_admin_client", None)
        monkeypatch.setattr(module.supabase_config, "supabase_url", "")
        with pytest.raises(ValueError):
            module.get_admin_client()
