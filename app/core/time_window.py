"""Appointment time window computation."""

from datetime import UTC, datetime, timedelta

from app.core.exceptions import InvalidInputException


def parse_timestamp(value: datetime | str) -> datetime:
    """
    Coerce a timestamp into a timezone-aware datetime.

    Naive values are taken to be UTC.

    Raises:
        InvalidInputException: If the value is not a valid timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise InvalidInputException(f"Invalid timestamp: {value!r}") from e
    else:
        raise InvalidInputException(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def compute_window(start_ts: datetime | str, duration_minutes: int) -> tuple[datetime, datetime]:
    """
    Compute the half-open ``[start, end)`` window of an appointment.

    Args:
        start_ts: Appointment start (datetime or ISO-8601 string)
        duration_minutes: Service duration in minutes, must be positive

    Returns:
        Tuple of (start, end)

    Raises:
        InvalidInputException: If the duration is not a positive integer or the
            start is not a valid timestamp
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidInputException("Duration must be an integer number of minutes")
    if duration_minutes <= 0:
        raise InvalidInputException("Duration must be greater than zero")

    start = parse_timestamp(start_ts)
    return start, start + timedelta(minutes=duration_minutes)


def windows_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    """Half-open overlap test; windows that only touch do not overlap."""
    return first_start < second_end and first_end > second_start
