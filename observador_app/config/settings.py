# observador_app/config/settings.py

import os


class Settings:
    # Database URL used by SQLAlchemy (snapshot history only)
    db_connection_string: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./observador.db"
    )

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Lookback windows for snapshot queries, in days
    trend_lookback_days: int = int(os.getenv("TREND_LOOKBACK_DAYS", "7"))
    timeline_lookback_days: int = int(os.getenv("TIMELINE_LOOKBACK_DAYS", "30"))
    snapshot_retention_days: int = int(os.getenv("SNAPSHOT_RETENTION_DAYS", "90"))


settings = Settings()
