import os
from dataclasses import dataclass, field
from typing import List, Tuple
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_fee_tiers(raw: str) -> List[Tuple[int, int]]:
    """Parse "7:0,3:30,0:80" into [(7, 0), (3, 30), (0, 80)]."""
    tiers = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        days, _, percentage = chunk.partition(":")
        tiers.append((int(days), int(percentage)))
    return tiers


@dataclass
class Settings:
    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./data/facility_reservation.db")
    )
    secret_key: str = field(default_factory=lambda: os.getenv("SECRET_KEY", "secure-secret-key-1234567890"))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = field(
        default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    # Free until the day before the usage date, full fee on or after it
    cancellation_fee_tiers: List[Tuple[int, int]] = field(
        default_factory=lambda: parse_fee_tiers(os.getenv("CANCELLATION_FEE_TIERS", "1:0,0:100"))
    )
    cancellation_count_business_days: bool = field(
        default_factory=lambda: _as_bool(os.getenv("CANCELLATION_COUNT_BUSINESS_DAYS", "false"))
    )
    weekend_closed: bool = field(default_factory=lambda: _as_bool(os.getenv("WEEKEND_CLOSED", "true")))
    max_dates_per_application: int = field(
        default_factory=lambda: int(os.getenv("MAX_DATES_PER_APPLICATION", "31"))
    )


settings = Settings()
