from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/tally"
    api_key: str | None = None

    # Local-time convention: every "start of day" is computed in this zone
    default_tz: str = "Europe/Berlin"

    # Defaults applied when a target/graph record leaves them out
    default_week_start_day: int = 1  # 0=Sunday .. 6=Saturday
    default_target_period: str = "daily"  # "daily" | "weekly" | "monthly" | "custom"

    # Display formatting for to_best()
    decimal_separator: str = ","

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "TALLY_", "extra": "ignore"}


settings = Settings()
