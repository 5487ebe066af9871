"""
Day number to calendar date conversion
"""
from datetime import date, timedelta


def day_date(day: int, start_date: date) -> date:
    """
    Calendar date of a 1-based schedule day

    Args:
        day: Day number, day 1 is start_date
        start_date: First day of the schedule

    Returns:
        The calendar date
    """
    return start_date + timedelta(days=day - 1)


def format_day_date(day: int, start_date: date, label: str = "Ngày") -> str:
    """Format a schedule day as "<label> DD/MM/YYYY"."""
    return f"{label} {day_date(day, start_date).strftime('%d/%m/%Y')}"
