from datetime import UTC, datetime


class SystemClock:
    """Wall-clock TimePort used for subscription timestamps."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)
