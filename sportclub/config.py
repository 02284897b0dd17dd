"""
Impostazioni applicazione - Application settings
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from dotenv import load_dotenv

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Impostazioni Supabase"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase anon key (session checks)")
    supabase_service_key: str = Field(default="", description="Supabase service role key (data access)")

    class Config:
        env_prefix = ""
        case_sensitive = False


class AppConfig(BaseSettings):
    """Impostazioni servizio HTTP"""

    environment: str = Field(default="development", description="development | preview | production")
    log_level: str = Field(default="INFO")
    log_dir: str = Field(default="logs")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # rate
    due_soon_days: int = Field(default=30, description="Lookahead window for due_soon")

    # eventi
    max_recurrence_occurrences: int = Field(default=366, description="Upper bound on expanded occurrences")

    # paginazione
    default_page_limit: int = Field(default=50)
    max_page_limit: int = Field(default=500)

    class Config:
        env_prefix = "APP_"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


class SchedulerConfig(BaseSettings):
    """Impostazioni scheduler"""

    recalc_enabled: bool = Field(default=False, description="Run the nightly status sweep inside the web process")
    recalc_hour: int = Field(default=2, description="Hour of the nightly status sweep")
    recalc_minute: int = Field(default=0)

    class Config:
        env_prefix = "SCHEDULER_"
        case_sensitive = False


# istanze globali
supabase_config = SupabaseConfig()
app_config = AppConfig()
scheduler_config = SchedulerConfig()
