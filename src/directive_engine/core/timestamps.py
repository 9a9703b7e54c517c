"""ISO-8601 helpers used for deterministic ``generated_at`` stamps."""

from datetime import UTC, datetime, timedelta

from .errors import TimestampError


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise TimestampError(f'Invalid ISO timestamp: "{value}"', str(value)) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_iso(value: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def add_seconds_iso(value: str, seconds: float) -> str:
    return format_iso(parse_iso(value) + timedelta(seconds=seconds))
