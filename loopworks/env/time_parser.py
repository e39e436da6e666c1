import re
from datetime import timedelta

DURATION_PATTERN = re.compile(r"(?:\d+(?:\.\d+)?(?:ms|[smhdw])?)+", flags=re.I)
DURATION_PART = re.compile(r"(?P<val>\d+(?:\.\d+)?)(?P<unit>ms|[smhdw]?)", flags=re.I)


class TimeParser:
    def __init__(self, time_amount: str | int | float | None = None) -> None:
        self._units = {
            "ms": "milliseconds",
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }

        self.time: float | None = None
        if time_amount is not None:
            self.time = self.parse(time_amount)

    def parse(self, time_amount: str | int | float) -> float:
        if isinstance(time_amount, (int, float)):
            return float(time_amount)

        time_amount = time_amount.strip()

        # Signs and unknown units are rejected rather than skipped.
        if DURATION_PATTERN.fullmatch(time_amount) is None:
            raise ValueError(f"Err. - could not parse duration - {time_amount}")

        total = timedelta()
        for match in DURATION_PART.finditer(time_amount):
            unit = self._units.get(match.group("unit").lower(), "seconds")
            total += timedelta(**{unit: float(match.group("val"))})

        return total.total_seconds()
