from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Database – SQLite for local development
    DATABASE_URL: str = "sqlite+aiosqlite:///./caretrack.db"

    # Security
    SECRET_KEY: str = "dev_secret_key_change_in_production_min_32_chars!!"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Scheduling rules
    WEEKLY_HOUR_LIMIT: float = 36
    REST_PERIOD_NIGHT_TO_DAY_HOURS: float = 48
    REST_LOOKBACK_DAYS: int = 7
    CONSECUTIVE_WEEKEND_GAP_DAYS: int = 7
    MIN_COMPETENT_STAFF: int = 1
    MAX_ADVANCE_MONTHS: int = 3

    # Weekly view: how long freshly raised violations stay on screen
    VIOLATION_DISPLAY_SECONDS: float = 10

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
