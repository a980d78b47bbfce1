"""Price text helpers: numeric parsing, display strings and change math."""
import re

NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


def parse_price_text(text: str | None) -> float | None:
    """
    Extract the first numeric token from a price string.

    '$1,299.99' -> 1299.99, '~$40' -> 40.0, 'US $12.50 / pc' -> 12.5.
    Returns None when there is no positive number.
    """
    if not text:
        return None
    match = NUMBER_RE.search(text)
    if not match:
        return None
    try:
        value = float(match.group().replace(",", ""))
    except ValueError:
        return None
    return value if value > 0 else None


def format_price_display(value: float) -> str:
    """Human-facing price string stored next to the numeric price."""
    if value >= 100:
        return f"~${int(value + 0.5)}"
    if float(value).is_integer():
        return f"~${int(value)}"
    return f"${value:.2f}"


def pct_change(old: float, new: float) -> float:
    """Relative change as a fraction of the old price (0.1 == 10%)."""
    if old <= 0:
        raise ValueError(f"old price must be positive, got {old}")
    return abs(new - old) / old
