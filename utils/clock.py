from datetime import datetime, timezone


class Clock:
    """Wall-clock source for the leave engine. Swap it out in tests to move
    across year boundaries."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def current_year(self) -> int:
        return self.now().year

    def naive_utcnow(self) -> datetime:
        """UTC timestamp without tzinfo, for DateTime columns"""
        return self.now().astimezone(timezone.utc).replace(tzinfo=None)


system_clock = Clock()


def get_clock() -> Clock:
    return system_clock
