from __future__ import annotations


def parse_amount(value: object) -> float:
    """Parse a numeric field from an upstream payload.

    Args:
        value: A decimal string, number, ``None`` or empty string.

    Returns:
        The value as a float; ``None`` and ``""`` count as zero.

    Raises:
        ValueError: If ``value`` is a non-numeric string.
    """
    if value is None or value == "":
        return 0.0
    return float(value)  # type: ignore[arg-type]


def format_usd(value: float) -> str:
    """Format a USD amount with thousands separators and two decimals."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"
