# staffops/config.py
from pydantic_settings import BaseSettings
from typing import Optional, Set
from pydantic import Field


class Settings(BaseSettings):
    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(7)

    DATABASE_URL: str = Field("sqlite+aiosqlite:///./staffops.db")
    SQL_ECHO: bool = Field(False)
    LOG_LEVEL: str = Field("INFO")

    # IP Whitelist: comma-separated IPs. If empty or missing → allow any IP.
    OFFICE_IP_WHITELIST: Optional[str] = None

    FIRST_ADMIN_EMAIL: str = Field("admin@example.com")
    FIRST_ADMIN_PASSWORD: str = Field("ChangeMe123!")

    # Outbound mail. No SMTP_HOST → mail is logged and dropped.
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = Field(587)
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TLS: bool = Field(True)
    MAIL_FROM: Optional[str] = None
    ADMIN_EMAIL: Optional[str] = None

    # Working day rules
    DEFAULT_WORK_START: str = Field("09:00")
    DEFAULT_WORK_END: str = Field("17:00")
    LATE_GRACE_MINUTES: int = Field(10)
    ABSENT_AFTER_MINUTES: int = Field(120)

    VERIFICATION_DEADLINE_HOURS: int = Field(24)
    SWAP_EXPIRY_HOURS: int = Field(24)
    ALERT_EXPIRY_DAYS: int = Field(7)
    VERIFICATION_CODE_TTL_MINUTES: int = Field(10)
    RESET_TOKEN_TTL_MINUTES: int = Field(60)

    # Periodic jobs (auto-absent, reassignment sweep, overdue flags, swap expiry)
    SCHEDULER_ENABLED: bool = Field(True)
    SCHEDULER_INTERVAL_SECONDS: int = Field(300)

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def async_database_url(self) -> str:
        url = self.DATABASE_URL
        # Ensure asyncpg is used
        if url.startswith("postgresql://") and "+asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def allowed_ips(self) -> Optional[Set[str]]:
        """
        Returns:
          - None → no restriction (allow any IP)
          - Set[str] → only these IPs allowed
        """
        if not self.OFFICE_IP_WHITELIST:
            return None
        return {ip.strip() for ip in self.OFFICE_IP_WHITELIST.split(",") if ip.strip()}

    @property
    def mail_enabled(self) -> bool:
        return bool(self.SMTP_HOST and self.MAIL_FROM)


settings = Settings()
