import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        reference_currency_id: str,
        currency_symbol: str,
        chat_delay_min_ms: int,
        chat_delay_max_ms: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.reference_currency_id = reference_currency_id
        self.currency_symbol = currency_symbol
        self.chat_delay_min_ms = chat_delay_min_ms
        self.chat_delay_max_ms = chat_delay_max_ms


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANCE_TIMEZONE", "Asia/Kolkata")
    reference_currency_id = os.getenv("FINANCE_REFERENCE_CURRENCY", "inr")
    currency_symbol = os.getenv("FINANCE_CURRENCY_SYMBOL", "₹")
    chat_delay_min_ms = int(os.getenv("FINANCE_CHAT_DELAY_MIN_MS", "500"))
    chat_delay_max_ms = int(os.getenv("FINANCE_CHAT_DELAY_MAX_MS", "1000"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        reference_currency_id=reference_currency_id,
        currency_symbol=currency_symbol,
        chat_delay_min_ms=chat_delay_min_ms,
        chat_delay_max_ms=max(chat_delay_min_ms, chat_delay_max_ms),
    )
