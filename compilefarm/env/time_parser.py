import re
from datetime import timedelta


DURATION_PATTERN = re.compile(
    r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|[smh]?)",
    flags=re.I,
)


class TimeParser:
    """
    Reads connect deadlines written as durations, e.g. "4s", "1m30s" or
    "250ms". A bare number is taken as seconds.
    """

    def __init__(self) -> None:
        self._units = {
            "ms": "milliseconds",
            "s": "seconds",
            "": "seconds",
            "m": "minutes",
            "h": "hours",
        }

    def parse(self, time_amount: str) -> float:
        matches = list(DURATION_PATTERN.finditer(time_amount))

        if not matches:
            raise ValueError(f"Invalid duration {time_amount!r}")

        total = sum(
            (
                timedelta(**{self._units[match.group("unit").lower()]: float(match.group("value"))})
                for match in matches
            ),
            timedelta(),
        )

        return total.total_seconds()
