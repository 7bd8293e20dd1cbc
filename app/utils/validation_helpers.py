from datetime import date
from typing import List, Tuple
from app.errors import ValidationError


def parse_month(value: str) -> Tuple[int, int]:
    """Parse a YYYY-MM query value."""
    try:
        year_text, month_text = value.split("-")
        year, month = int(year_text), int(month_text)
    except ValueError:
        raise ValidationError("Month must be in YYYY-MM format (e.g., 2025-06)")
    if not 1 <= month <= 12 or not 1900 <= year <= 2100:
        raise ValidationError("Month must be in YYYY-MM format (e.g., 2025-06)")
    return year, month


def parse_dates(value: str) -> List[date]:
    """Parse a comma-separated list of ISO dates."""
    try:
        return [date.fromisoformat(part.strip()) for part in value.split(",") if part.strip()]
    except ValueError:
        raise ValidationError("Dates must be comma-separated ISO dates (e.g., 2025-06-10,2025-06-11)")
