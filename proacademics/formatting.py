from datetime import datetime
from typing import Optional


def format_grade(percentage: float) -> str:
    if percentage >= 90:
        return "A*"
    if percentage >= 80:
        return "A"
    if percentage >= 70:
        return "B"
    if percentage >= 60:
        return "C"
    if percentage >= 50:
        return "D"
    return "F"


def format_time(minutes: int) -> str:
    """45 -> "45m", 90 -> "1h 30m" """
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def format_xp(xp: int) -> str:
    if xp >= 1000:
        return f"{xp / 1000:.1f}k"
    return str(xp)


def format_relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    minutes = int((now - moment).total_seconds() // 60)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minutes ago"
    if minutes < 60 * 24:
        return f"{minutes // 60} hours ago"
    return f"{minutes // (60 * 24)} days ago"
