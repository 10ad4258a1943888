from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./gatepass.db"
    db_timeout_seconds: float = 5.0
    auto_create_tables: bool = True  # dev convenience; use alembic in production

    # Email
    email_mode: str = "dev"  # dev | prod
    sendgrid_api_key: Optional[str] = None
    email_from: str = "noreply@gateflow.app"
    email_from_name: str = "GateFlow"
    warden_emails: str = "warden@college.edu"  # comma-separated

    # Links
    app_base_url: str = "http://localhost:3000"
    student_email_domain: str = "college.edu"

    # App
    allowed_origins: str = ""
    debug: bool = False

    def get_warden_emails(self) -> list[str]:
        """Parse the comma-separated warden address list."""
        return [email.strip() for email in self.warden_emails.split(",") if email.strip()]

    def get_app_base_url(self) -> str:
        return self.app_base_url.rstrip("/")


settings = Settings()
