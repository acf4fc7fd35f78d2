"""Human-readable number formatting for metrics output."""

_SUFFIXES = ("", "K", "M", "B", "T")


def format_compact(value: int | float) -> str:
    """Format a count in compact notation with at most one decimal.

    Examples:
        >>> format_compact(950)
        '950'
        >>> format_compact(1234)
        '1.2K'
        >>> format_compact(1_000_000)
        '1M'
    """
    sign = "-" if value < 0 else ""
    magnitude = abs(float(value))

    index = 0
    while magnitude >= 1000 and index < len(_SUFFIXES) - 1:
        magnitude /= 1000
        index += 1

    rounded = round(magnitude, 1)
    # 999.95K rounds up to 1000.0K; carry into the next suffix
    if rounded >= 1000 and index < len(_SUFFIXES) - 1:
        rounded = round(rounded / 1000, 1)
        index += 1

    text = f"{rounded:.1f}".rstrip("0").rstrip(".")
    return f"{sign}{text}{_SUFFIXES[index]}"


__all__ = ["format_compact"]
