from typing import Literal

LagSeverity = Literal["ok", "warn", "critical"]


def lag_severity(lag: float) -> LagSeverity:
    if lag < 16:
        return "ok"

    elif lag < 50:
        return "warn"

    return "critical"


def render_lag_bar(
    lag: float,
    width: int = 40,
    ceiling: float = 100,
) -> tuple[str, LagSeverity]:
    normalized = max(0.0, min(lag / ceiling, 1.0))
    filled = int(normalized * width)

    bar = "█" * filled + "░" * (width - filled)

    return f"{bar} {lag:.1f}ms", lag_severity(lag)
