from datetime import date, datetime
from zoneinfo import ZoneInfo

from school_ledger.core.config import settings


def school_today() -> date:
    """Calendar date in the institution's own timezone; due dates and overdue ages count in these days."""
    return datetime.now(ZoneInfo(settings.school_timezone)).date()
