from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_URL: str = "sqlite+aiosqlite:///./pos_edge.db"
    DB_CREATE_ALL: bool = True

    LOG_LEVEL: str = "INFO"

    STORE_NAME: str = "finnbites POS"
    STORE_SUBTITLE: str = "Point of Sale Terminal"
    RECEIPT_TIMEZONE: str = "Asia/Manila"
    VAT_RATE: Decimal = Decimal("0.12")

    # client totals further than this from the computed total are logged
    TOTAL_TOLERANCE: Decimal = Decimal("0.05")
    COMMIT_TIMEOUT_SECONDS: float = 15.0

    PRINTER_NAME: Optional[str] = None
    PRINTER_TIMEOUT_SECONDS: float = 10.0

    class Config:
        env_file = ".env"


settings = Settings()
