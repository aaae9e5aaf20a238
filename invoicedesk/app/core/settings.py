from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_EMAIL_USER = "your-email@gmail.com"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "InvoiceDesk"
    api_version: str = "1.0.0"
    environment: str = "development"
    port: int = 3002
    log_level: str = "INFO"

    # Storage: SQL when a URL is configured, JSON files under data_dir otherwise
    database_url: Optional[str] = None
    data_dir: str = "data"

    logo_path: str = "assets/logo.png"

    # Outbound mail relay
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_from_name: str = "Resonira Technologies"
    email_use_tls: bool = True
    email_timeout: int = 30

    seed_defaults: bool = True
    default_admin_email: str = "admin@resonira.com"
    default_admin_password: str = "admin123"
    default_admin_name: str = "Admin User"

    @property
    def email_configured(self) -> bool:
        if not self.email_user or not self.email_pass:
            return False
        return self.email_user != PLACEHOLDER_EMAIL_USER


_settings_instance = None


def get_settings() -> Settings:
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
