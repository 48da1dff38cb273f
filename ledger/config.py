import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    db_path: str = "finance_ai.db"
    monthly_savings_goal: float = 20000
    currency_symbol: str = "₹"
    log_level: str = "INFO"
    debug: bool = False
    reset_on_schema_change: bool = False


def load_settings() -> Settings:
    """Read settings from the environment (and a local .env file, if present)."""
    return Settings(
        db_path=os.getenv("LEDGER_DB_PATH", "finance_ai.db"),
        monthly_savings_goal=float(os.getenv("LEDGER_MONTHLY_SAVINGS_GOAL", "20000")),
        currency_symbol=os.getenv("LEDGER_CURRENCY_SYMBOL", "₹"),
        log_level=os.getenv("LEDGER_LOG_LEVEL", "INFO").upper(),
        debug=_env_flag("LEDGER_DEBUG"),
        reset_on_schema_change=_env_flag("LEDGER_RESET_ON_SCHEMA_CHANGE"),
    )


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
