"""
Date and time-of-day extraction.

Everything is relative to a reference date key passed in by the
caller, never the wall clock, so the same transcript always parses to
the same dates.
"""

import re
from datetime import date
from typing import Optional, Tuple

from ..models.schedule import day_of_week
from .formatting import shift_date


DAY_INDEX = {
    "sunday": 0, "sun": 0,
    "monday": 1, "mon": 1,
    "tuesday": 2, "tue": 2, "tues": 2,
    "wednesday": 3, "wed": 3,
    "thursday": 4, "thu": 4, "thurs": 4,
    "friday": 5, "fri": 5,
    "saturday": 6, "sat": 6,
    "domingo": 0, "lunes": 1, "martes": 2, "miércoles": 3, "miercoles": 3,
    "jueves": 4, "viernes": 5, "sábado": 6, "sabado": 6,
}
ZH_DAY_INDEX = {"日": 0, "天": 0, "一": 1, "二": 2, "三": 3, "四": 4, "五": 5, "六": 6}

MONTH_INDEX = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "octubre": 10, "noviembre": 11, "diciembre": 12,
}

DAY_NAMES = "|".join(sorted(DAY_INDEX, key=len, reverse=True))
MONTH_NAMES = "|".join(sorted(MONTH_INDEX, key=len, reverse=True))

YESTERDAY = re.compile(r"\b(?:yesterday|ayer)\b|昨天", re.IGNORECASE)
TOMORROW = re.compile(r"\b(?:tomorrow|mañana|manana)\b|明天", re.IGNORECASE)
TODAY = re.compile(r"\b(?:today|tonight|hoy)\b|今天", re.IGNORECASE)
NEXT_DAY = re.compile(rf"\b(?:next|(?:el\s+)?pr[óo]ximo)\s+({DAY_NAMES})\b", re.IGNORECASE)
LAST_DAY = re.compile(rf"\b(?:last|(?:el\s+)?pasado)\s+({DAY_NAMES})\b", re.IGNORECASE)
THIS_DAY = re.compile(rf"\b(?:this|este)\s+({DAY_NAMES})\b", re.IGNORECASE)
ZH_NEXT_DAY = re.compile(r"下(?:个)?(?:星期|周|礼拜)([一二三四五六日天])")
ZH_LAST_DAY = re.compile(r"上(?:个)?(?:星期|周|礼拜)([一二三四五六日天])")
ZH_DAY = re.compile(r"(?:星期|周|礼拜)([一二三四五六日天])")
MONTH_DAY = re.compile(rf"\b({MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b", re.IGNORECASE)
DAY_DE_MONTH = re.compile(rf"\b(\d{{1,2}})\s+de\s+({MONTH_NAMES})\b", re.IGNORECASE)
ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
US_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b")
ORDINAL_DAY = re.compile(r"\bthe\s+(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)
ISO_SHAPED = re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b")
BARE_DAY = re.compile(rf"\b({DAY_NAMES})\b", re.IGNORECASE)

AMPM_TIME = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*([ap]m)\b", re.IGNORECASE)
CLOCK_TIME = re.compile(r"\b(\d{1,2}):(\d{2})\b")
PLAIN_HOUR = re.compile(r"\b(?:start\s+at|at|to|a\s+las|a\s+la)\s+(\d{1,2})(?::(\d{2}))?\b(?![/\-:\d])", re.IGNORECASE)
AFTERNOON = re.compile(r"\b(?:afternoon|evening|tonight|tarde|noche)\b|下午|晚上", re.IGNORECASE)
LOOKS_LIKE_TIME = re.compile(r"\b\d{1,2}(?::\d{2})?\s*[ap]m\b|\b\d{1,2}:\d{2}\b", re.IGNORECASE)

MONTH_DAY_ROLLBACK_DAYS = 183


def _weekday_forward(reference_key: str, target: int) -> str:
    delta = (target - day_of_week(reference_key) + 7) % 7 or 7
    return shift_date(reference_key, delta)


def _weekday_back(reference_key: str, target: int) -> str:
    delta = (day_of_week(reference_key) - target + 7) % 7 or 7
    return shift_date(reference_key, -delta)


def _weekday_on_or_before(reference_key: str, target: int) -> str:
    delta = (day_of_week(reference_key) - target + 7) % 7
    return shift_date(reference_key, -delta)


def _weekday_on_or_after(reference_key: str, target: int) -> str:
    delta = (target - day_of_week(reference_key) + 7) % 7
    return shift_date(reference_key, delta)


def _safe_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _month_day(reference_key: str, month: int, day: int) -> Optional[str]:
    """Month and day in the reference year, or the year before when that lands too far ahead."""
    reference = date.fromisoformat(reference_key)
    candidate = _safe_date(reference.year, month, day)
    if candidate is None:
        return None
    if (date.fromisoformat(candidate) - reference).days > MONTH_DAY_ROLLBACK_DAYS:
        return _safe_date(reference.year - 1, month, day)
    return candidate


def resolve_date(text: str, reference_key: str) -> Optional[str]:
    """
    Find a date reference in text.

    Relative words and weekday names resolve against reference_key; a
    bare weekday means its most recent occurrence on or before it.

    Args:
        text: Phrase to search
        reference_key: Reference date (YYYY-MM-DD)

    Returns:
        Date key, or None when the text names no date

    Examples:
        >>> resolve_date("tomorrow", "2026-02-17")
        '2026-02-18'
        >>> resolve_date("next friday", "2026-02-17")
        '2026-02-20'
        >>> resolve_date("friday", "2026-02-17")
        '2026-02-13'
    """
    if not text:
        return None

    if YESTERDAY.search(text):
        return shift_date(reference_key, -1)
    if TOMORROW.search(text):
        return shift_date(reference_key, 1)
    if TODAY.search(text):
        return reference_key

    match = NEXT_DAY.search(text)
    if match:
        return _weekday_forward(reference_key, DAY_INDEX[match.group(1).lower()])
    match = ZH_NEXT_DAY.search(text)
    if match:
        return _weekday_forward(reference_key, ZH_DAY_INDEX[match.group(1)])

    match = LAST_DAY.search(text)
    if match:
        return _weekday_back(reference_key, DAY_INDEX[match.group(1).lower()])
    match = ZH_LAST_DAY.search(text)
    if match:
        return _weekday_back(reference_key, ZH_DAY_INDEX[match.group(1)])

    match = THIS_DAY.search(text)
    if match:
        return _weekday_on_or_after(reference_key, DAY_INDEX[match.group(1).lower()])

    match = MONTH_DAY.search(text)
    if match:
        resolved = _month_day(reference_key, MONTH_INDEX[match.group(1).lower()], int(match.group(2)))
        if resolved:
            return resolved
    match = DAY_DE_MONTH.search(text)
    if match:
        resolved = _month_day(reference_key, MONTH_INDEX[match.group(2).lower()], int(match.group(1)))
        if resolved:
            return resolved

    match = ISO_DATE.search(text)
    if match:
        resolved = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if resolved:
            return resolved

    match = US_DATE.search(text)
    if match:
        year = int(match.group(3)) if match.group(3) else date.fromisoformat(reference_key).year
        if year < 100:
            year += 2000
        resolved = _safe_date(year, int(match.group(1)), int(match.group(2)))
        if resolved:
            return resolved

    match = ORDINAL_DAY.search(text)
    if match:
        reference = date.fromisoformat(reference_key)
        resolved = _safe_date(reference.year, reference.month, int(match.group(1)))
        if resolved:
            return resolved

    match = BARE_DAY.search(text)
    if match:
        return _weekday_on_or_before(reference_key, DAY_INDEX[match.group(1).lower()])
    match = ZH_DAY.search(text)
    if match:
        return _weekday_on_or_before(reference_key, ZH_DAY_INDEX[match.group(1)])

    return None


def unparseable_date(text: str, reference_key: str) -> Optional[str]:
    """
    First date-shaped token in text that names no real calendar day.

    Examples:
        >>> unparseable_date("Mark Ava attended on 2/30", "2026-02-17")
        '2/30'
        >>> unparseable_date("Ava came on Feb 20", "2026-02-17") is None
        True
    """
    if not text:
        return None

    for pattern in (MONTH_DAY, DAY_DE_MONTH, ISO_SHAPED, US_DATE, ORDINAL_DAY):
        for match in pattern.finditer(text):
            if resolve_date(match.group(0), reference_key) is None:
                return match.group(0)
    return None


def ambiguous_weekday(phrase: str) -> Optional[str]:
    """
    The weekday token of a phrase that names only a bare weekday.

    "friday" is ambiguous in a move; "next friday", "friday feb 20",
    "2/20" or "tomorrow" are not.

    Returns:
        Lower-cased weekday token, or None
    """
    if not phrase:
        return None
    if re.search(r"\b(?:next|last|this|este|pr[óo]ximo|pasado)\b", phrase, re.IGNORECASE):
        return None
    if YESTERDAY.search(phrase) or TOMORROW.search(phrase) or TODAY.search(phrase):
        return None
    if ISO_DATE.search(phrase) or US_DATE.search(phrase):
        return None
    if MONTH_DAY.search(phrase) or DAY_DE_MONTH.search(phrase) or ORDINAL_DAY.search(phrase):
        return None
    match = BARE_DAY.search(phrase)
    return match.group(1).lower() if match else None


def last_and_next(token: str, reference_key: str) -> Optional[Tuple[str, str]]:
    """
    Previous and next occurrence of a weekday, both strictly away from
    the reference date.

    Examples:
        >>> last_and_next("friday", "2026-02-17")
        ('2026-02-13', '2026-02-20')
    """
    target = DAY_INDEX.get(token.lower())
    if target is None:
        return None
    return _weekday_back(reference_key, target), _weekday_forward(reference_key, target)


def _format_clock(hour24: int, minute: int) -> str:
    hour12 = 12 if hour24 % 12 == 0 else hour24 % 12
    meridiem = "AM" if hour24 < 12 else "PM"
    return f"{hour12}:{minute:02d} {meridiem}"


def parse_time_of_day(text: str) -> Optional[str]:
    """
    Find a start time and format it as "H:MM AM|PM".

    "5pm" and "5:30 pm" are taken as said, "17:00" as a 24-hour clock.
    A bare hour after "at"/"to" ("at 6") is morning unless the
    utterance mentions the afternoon, evening or tonight.

    Examples:
        >>> parse_time_of_day("now at 6 PM")
        '6:00 PM'
        >>> parse_time_of_day("tonight at 7")
        '7:00 PM'
    """
    if not text:
        return None

    match = AMPM_TIME.search(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        return f"{hour}:{minute:02d} {match.group(3).upper()}"

    match = CLOCK_TIME.search(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return _format_clock(hour, minute)

    match = PLAIN_HOUR.search(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if hour > 23 or minute > 59:
            return None
        if AFTERNOON.search(text) and hour < 12:
            hour += 12
        return _format_clock(hour, minute)

    return None


def looks_like_time(text: str) -> bool:
    """True when text carries something shaped like a clock time."""
    return bool(LOOKS_LIKE_TIME.search(text or ""))


DURATION_MINUTES = re.compile(r"\b(\d{1,3})\s*minutes\b", re.IGNORECASE)
TARGET_DURATION = re.compile(r"\bto\s+(\d{1,3})\s*minutes\b", re.IGNORECASE)


def extract_duration_minutes(text: str) -> Optional[int]:
    """
    Lesson length from a normalized transcript ("90 minutes").

    In "from 60 minutes to 30 minutes" the new length wins.
    """
    match = TARGET_DURATION.search(text or "") or DURATION_MINUTES.search(text or "")
    return int(match.group(1)) if match else None
