from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "SALON-REPORTS"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./salon_reports.db"
    REPORTS_DEFAULT_TIMEZONE: str = "America/Chicago"
    REPORTS_MAX_DATE_RANGE_DAYS: int = 366
    REPORT_FORMAT_VERSION: str = "v1.0"
    UTILIZATION_HOURS_PER_DAY: int = 8
    UTILIZATION_MINUTES_PER_HOUR: int = 60
    UTILIZATION_WORKING_WEEKDAYS: str = "0,1,2,3,4,5"
    AGGREGATION_MAX_CONCURRENCY: int = 4
    AGGREGATION_TIMEOUT_SEC: float = 30.0
    LEDGER_MAX_ROWS: int = 100
    TOP_ITEMS_LIMIT: int = 10
    LOCATION_LABEL_MAX_NAMES: int = 3
    METRICS_ENABLED: bool = True

    @property
    def working_weekdays(self) -> frozenset[int]:
        days = set()
        for token in self.UTILIZATION_WORKING_WEEKDAYS.split(","):
            token = token.strip()
            if token:
                days.add(int(token))
        return frozenset(days)


settings = Settings()
