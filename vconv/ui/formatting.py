from typing import Optional


def format_file_size(size_bytes: int) -> str:
    gb = size_bytes / (1024 ** 3)
    if gb >= 1:
        return f"{gb:.2f} GB"
    return f"{size_bytes / (1024 ** 2):.2f} MB"


def format_duration(seconds: float) -> str:
    seconds = max(0.0, seconds)
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    if mins >= 60:
        return f"{mins // 60}h {mins % 60}m {secs}s"
    return f"{mins}m {secs}s"


def estimate_eta(percent: float, elapsed_seconds: float) -> Optional[float]:
    """Remaining seconds at the average rate so far, or None before any progress."""
    if percent <= 0 or elapsed_seconds <= 0:
        return None
    rate = percent / elapsed_seconds
    return (100.0 - percent) / rate
