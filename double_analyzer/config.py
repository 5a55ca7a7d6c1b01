from pydantic_settings import BaseSettings
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseSettings):
    db_dsn: str = os.getenv("DB_DSN", "sqlite:///./data/double.db")

    # external page
    source_url: str = os.getenv("SOURCE_URL", "https://blaze.bet.br/pt/games/double")
    source_timezone: str = os.getenv("SOURCE_TIMEZONE", "America/Sao_Paulo")
    bar_selector: str = os.getenv("BAR_SELECTOR", ".entries .entry:first-child")
    history_button_selector: str = os.getenv("HISTORY_BUTTON_SELECTOR", ".buttons-history button")
    history_number_selector: str = os.getenv("HISTORY_NUMBER_SELECTOR", ".history__double__center")
    history_date_selector: str = os.getenv("HISTORY_DATE_SELECTOR", ".history__double__date")
    history_close_selector: str = os.getenv("HISTORY_CLOSE_SELECTOR", "#parent-modal-close")
    read_limit: int = int(os.getenv("READ_LIMIT", 50))
    headless: bool = _flag("HEADLESS", "true")
    nav_timeout_ms: int = int(os.getenv("NAV_TIMEOUT_MS", 60000))
    action_timeout_ms: int = int(os.getenv("ACTION_TIMEOUT_MS", 8000))

    # collector
    poll_interval: float = float(os.getenv("POLL_INTERVAL", 1.0))
    auto_start: bool = _flag("AUTO_START", "false")
    max_consecutive_failures: int = int(os.getenv("MAX_CONSECUTIVE_FAILURES", 5))
    reconnect_backoff: float = float(os.getenv("RECONNECT_BACKOFF", 5.0))
    reconnect_backoff_max: float = float(os.getenv("RECONNECT_BACKOFF_MAX", 120.0))

    # store
    retention: int = int(os.getenv("RETENTION", 2000))
    dedup_tolerance: float = float(os.getenv("DEDUP_TOLERANCE", 2.0))

    # prediction
    window: int = int(os.getenv("WINDOW", 50))

    # colour bands: 0 is white, 1..red_max red, red_max+1..number_max black
    red_max: int = int(os.getenv("RED_MAX", 7))
    number_max: int = int(os.getenv("NUMBER_MAX", 14))

    api_key: str | None = os.getenv("API_KEY")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str | None = os.getenv("LOG_DIR")


settings = Settings()
