"""Human readable sizes and rates for log lines and summaries."""

_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_size(value: int) -> str:
    """Format a byte count with the largest unit below 1024 (two decimals)."""
    size = float(max(value, 0))
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(_UNITS) - 1:
        size /= 1024.0
        unit_idx += 1
    return f"{size:.2f} {_UNITS[unit_idx]}"


def format_rate(bytes_per_second: float) -> str:
    return f"{format_size(int(bytes_per_second))}/s"


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    return f"{minutes}m {secs:02d}s"
