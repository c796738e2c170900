import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load variables from a local .env file if one exists
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./campus_booking.db")
    )

    # ----- Auth -----
    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_THIS_SECRET_IN_REAL_PROJECT")
    )
    access_token_expire_minutes: int = field(
        default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
    )

    # ----- Rate limiting -----
    rate_limit: str = field(default_factory=lambda: os.getenv("RATE_LIMIT", "60/minute"))
    rate_limit_enabled: bool = field(default_factory=lambda: _env_bool("RATE_LIMIT_ENABLED", "true"))

    # ----- Booking rules -----
    day_start: str = field(default_factory=lambda: os.getenv("DAY_START", "08:00"))
    day_end: str = field(default_factory=lambda: os.getenv("DAY_END", "22:00"))
    max_booking_hours: int = field(default_factory=lambda: int(os.getenv("MAX_BOOKING_HOURS", "8")))

    # ----- Storage circuit breaker -----
    breaker_fail_max: int = field(default_factory=lambda: int(os.getenv("BREAKER_FAIL_MAX", "3")))
    breaker_reset_timeout: int = field(
        default_factory=lambda: int(os.getenv("BREAKER_RESET_TIMEOUT", "60"))
    )

    # ----- Email -----
    smtp_host: str | None = field(default_factory=lambda: os.getenv("SMTP_HOST"))
    smtp_port: int = field(default_factory=lambda: int(os.getenv("SMTP_PORT", "587")))
    smtp_user: str | None = field(default_factory=lambda: os.getenv("SMTP_USER"))
    smtp_password: str | None = field(default_factory=lambda: os.getenv("SMTP_PASSWORD"))
    email_from: str | None = field(default_factory=lambda: os.getenv("EMAIL_FROM"))

    # ----- Admin bootstrap -----
    # Registering with role "admin" requires this value in the X-Admin-Secret header;
    # when unset, admin accounts can only be created by the seed script.
    admin_secret: str | None = field(default_factory=lambda: os.getenv("ADMIN_SECRET"))
    seed_admin_password: str = field(
        default_factory=lambda: os.getenv("SEED_ADMIN_PASSWORD", "Admin1234")
    )

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user)


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
