"""
Command parser.

parse() turns a transcript into an intent payload without looking at
the roster: names stay spoken fragments and dates are keys relative to
the reference date. It is a pure function and never raises; anything it
cannot map safely comes back as Unknown.

Detection runs in a fixed order, first match wins:

    help -> bad date or amount -> move/reschedule -> duration -> start time -> money
         -> everyone/nobody attendance -> named attendance -> unknown
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from ..models.intent import (
    AttendanceMark,
    DateAmbiguity,
    Help,
    IntentPayload,
    Language,
    LessonReschedule,
    LessonUpdate,
    Unknown,
    UpdateKind,
)
from .dates import (
    DAY_DE_MONTH,
    DAY_INDEX,
    MONTH_DAY,
    ORDINAL_DAY,
    ambiguous_weekday,
    extract_duration_minutes,
    last_and_next,
    looks_like_time,
    parse_time_of_day,
    resolve_date,
    unparseable_date,
)
from .formatting import title_case_name
from .normalize import normalize_transcript


logger = logging.getLogger(__name__)


EMPTY_HINT = "I didn't catch that. Please try again."
UNMAPPED_HINT = "I couldn't map that command safely. Please say the student name and action."
BAD_TIME_HINT = "I couldn't parse that time. Please say a valid time like 3pm or 15:00."
BAD_DATE_HINT = "I couldn't parse that date. Please say a date like Feb 20 or 2/20."
BAD_AMOUNT_HINT = "I couldn't read that amount. Please say dollars and cents, like $80 or $80.50."
NO_STUDENT_HINT = "Which student should I update?"

# Confidence levels
CONFIDENT = 0.85
BULK_CONFIDENCE = 0.9
MANY_NAMES_CONFIDENCE = 0.7
AMBIGUOUS_MONEY_CONFIDENCE = 0.7
NAMES_ONLY_CONFIDENCE = 0.55
NOBODY_CONFIDENCE = 0.5
PARTIAL_MOVE_CONFIDENCE = 0.5

HELP = re.compile(r"\bhelp\b|what can you do|\bayuda\b|帮助", re.IGNORECASE)
MOVE = re.compile(r"\b(?:move|reschedule|mover|reprogramar)\b|改到|挪到|改期|移到", re.IGNORECASE)

ALL_SCOPE = re.compile(
    r"\b(?:all (?:the )?students|all (?:the )?lessons|all of them|everyone|everybody|"
    r"the whole class|todos|todas)\b|所有|全部|大家",
    re.IGNORECASE,
)
NOBODY = re.compile(r"\b(?:nobody|no one|no-one|nadie)\b|没有人|没人", re.IGNORECASE)
EXPLICIT_VERB = re.compile(r"\b(?:mark|set|toggle|unmark|undo|clear)\b", re.IGNORECASE)
ABSENT = re.compile(
    r"\b(?:absent|didn't come|did not come|didn't show|missed|no show|no-show|not attended|"
    r"unmark|undo|clear attendance|cancell?ed|off|no vino|no vinieron|no asisti[óo]|falt[óo]|ausentes?)\b"
    r"|没来|缺席",
    re.IGNORECASE,
)
MARK = re.compile(
    r"\b(?:mark|set|toggle|attended|came|showed up|was here|were here|present|"
    r"had (?:his|her|their|a|the) (?:class|lesson)|"
    r"vinieron|vino|asisti[óo]|asistieron)\b|来了|到了",
    re.IGNORECASE,
)

TIME_EDIT_CUE = re.compile(r"\b(?:change|set|time|start|starts|now|class|lesson|clase|hora)\b|改|时间", re.IGNORECASE)
ATTENDANCE_WORDS = re.compile(
    r"\b(?:attended|attendance|came|showed up|present|absent|missed|didn't come|did not come|"
    r"vino|vinieron|asisti[óo]|asistieron)\b|来了|没来|缺席",
    re.IGNORECASE,
)
CHANGE_CUE = re.compile(r"\b(?:change|set|make|switch)\b", re.IGNORECASE)

MONEY = re.compile(
    r"\$\s*(\d[\d,]*(?:\.\d{1,2})?)(?!\.?\d|[^\W\d_])"
    r"|(?<![\d.,])\b(\d[\d,]*(?:\.\d{1,2})?)(?!\.?\d)\s*(?:dollars?|bucks?|d[óo]lares)\b"
    r"|(?<![\d.,])\b(\d[\d,]*(?:\.\d{1,2})?)(?!\.?\d)\s*(?=(?:per hour|an hour|\/\s*hr|por hora)\b)",
    re.IGNORECASE,
)
# Sub-cent digits or letters glued to a figure
BAD_MONEY = re.compile(
    r"\$\s*\d[\d,]*(?:\.\d+)?[^\W\d_]|\$\s*\d[\d,]*\.\d{3,}"
    r"|\b\d[\d,]*\.\d{3,}\s*(?:dollars?|bucks?|d[óo]lares|per hour|an hour|\/\s*hr|por hora)\b",
    re.IGNORECASE,
)
RATE_CUE = re.compile(
    r"\brate\b|\bhourly\b|\bper hour\b|\ban hour\b|\ba hour\b|/\s*h(?:ou)?r\b|\bpor hora\b|\btarifa\b",
    re.IGNORECASE,
)
AMOUNT_CUE = re.compile(
    r"\b(?:class|lesson|amount|charge|cost|fee|total|clase|precio)\b",
    re.IGNORECASE,
)
GOING_FORWARD = re.compile(
    r"\b(?:starting|effective|going forward|from now on|next month|every week)\b",
    re.IGNORECASE,
)

MOVE_NAME_PATTERNS = [
    re.compile(r"\b(?:move|reschedule)\s+(.+?)(?:'s\b|\s+(?:lesson|class|from|to|on|at|for)\b|$)", re.IGNORECASE),
    re.compile(r"\b(?:lesson|class)\s+with\s+(.+?)(?:\s+(?:from|to|on|at|for)\b|$)", re.IGNORECASE),
    re.compile(r"\b([A-Za-zÀ-ÿ]+(?:\s+[A-Za-zÀ-ÿ]+)?)'s\s+(?:lesson|class)\b", re.IGNORECASE),
    re.compile(r"\b(?:mover|reprogramar)\s+(?:a\s+|la clase de\s+)?(.+?)(?:\s+(?:del?|al?|para|el)\b|$)", re.IGNORECASE),
    re.compile(r"把(.+?)的"),
]
FROM_TO = re.compile(r"\bfrom\s+(.+?)\s+to\s+(.+)", re.IGNORECASE)
FROM_ONLY = re.compile(r"\bfrom\s+(.+)$", re.IGNORECASE)
TO_ONLY = re.compile(r"\bto\s+(.+)$", re.IGNORECASE)
ES_FROM_TO = re.compile(r"\bdel?\s+(.+?)\s+al?\s+(.+)", re.IGNORECASE)
ES_TO_ONLY = re.compile(r"\b(?:al|para el|para)\s+(.+)$", re.IGNORECASE)
ZH_TO = re.compile(r"(?:改到|挪到|移到|改期到|改期)(.+)$")
PHRASE_TAIL = re.compile(r"\s+(?:at|for|from|a las|a la|por)\b.*$", re.IGNORECASE)

CJK = re.compile(r"[㐀-䶿一-鿿]")
SPANISH_CUES = re.compile(
    r"\b(?:vino|asisti[óo]|asistieron|hoy|ayer|mañana|todos|todas|mover|reprogramar|vinieron|clase)\b",
    re.IGNORECASE,
)

STOPWORDS = {
    # actions and attendance words
    "mark", "marked", "set", "toggle", "unmark", "undo", "clear", "change", "update", "make",
    "move", "reschedule", "attended", "attend", "attendance", "came", "come", "showed", "show",
    "up", "was", "were", "here", "present", "absent", "missed", "didn't", "did", "not", "no",
    "cancelled", "canceled", "is", "are", "be", "now", "has", "had", "have", "it", "its",
    "student", "students", "lesson", "lessons", "class", "classes", "rate", "hourly", "amount",
    "charge", "cost", "fee", "total", "time", "start", "starts", "duration", "long",
    "all", "everyone", "everybody", "nobody", "one", "of", "them",
    # connectors and filler
    "and", "plus", "with", "the", "a", "an", "to", "from", "on", "at", "for", "in", "as", "by",
    "per", "hour", "hours", "minute", "minutes", "min", "mins", "dollar", "dollars", "buck", "bucks",
    "am", "pm", "today", "tonight", "tomorrow", "yesterday", "next", "last", "this", "week",
    "month", "morning", "afternoon", "evening", "going", "forward", "effective", "starting",
    "i", "me", "my", "we", "our", "please", "that", "should", "would", "can", "you",
    "what", "who", "do", "does", "okay", "ok", "yes", "so", "just", "also",
    "his", "her", "their", "increase", "decrease", "raise", "lower", "off", "switch", "instead",
    # Spanish
    "hoy", "ayer", "mañana", "vino", "vinieron", "asistió", "asistio", "asistieron", "todos",
    "todas", "y", "el", "la", "los", "las", "de", "del", "al", "a", "clase", "mover",
    "reprogramar", "marcar", "faltó", "falto", "ausente", "nadie", "para", "hora", "es", "son",
    "ahora", "por", "favor",
}
STOPWORDS.update(DAY_INDEX)

CJK_STOP_PHRASES = [
    "今天", "昨天", "明天", "所有", "全部", "大家", "学生", "都", "来了", "到了", "没来", "缺席",
    "上课", "课", "把", "的", "改到", "挪到", "移到", "改期", "点", "下午", "上午", "晚上",
    "星期", "周", "礼拜", "了", "没有人", "没人", "请", "标记",
]
NAME_SPLIT = re.compile(r"\s*(?:[,;&+、，]|\band\b|\by\b|\bplus\b|和|跟|还有|与)\s*", re.IGNORECASE)
NUMBERISH = re.compile(
    r"\$\s*\d(?:\w|[.,]\d)*|\b\d{4}-\d{1,2}-\d{1,2}\b|\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b"
    r"|\b\d{1,2}:\d{2}\b|\b\d(?:\w|[.,]\d)*|/\s*h(?:ou)?r\b",
    re.IGNORECASE,
)
LETTER = re.compile(r"[^\W\d_]")


def detect_language(text: str) -> Language:
    """
    Language tag for a transcript.

    Examples:
        >>> detect_language("今天所有学生都来了")
        'zh'
        >>> detect_language("Hoy vinieron Sarah y Tiffany")
        'es'
    """
    if CJK.search(text):
        return "zh"
    if SPANISH_CUES.search(text):
        return "es"
    return "en"


def extract_money(text: str) -> Optional[Decimal]:
    """
    Dollar figure in major units, kept exact as a Decimal.

    Examples:
        >>> extract_money("Leo Chen is now $100")
        Decimal('100')
        >>> extract_money("80.50 dollars an hour")
        Decimal('80.50')
    """
    match = MONEY.search(text)
    if not match:
        return None
    raw = (match.group(1) or match.group(2) or match.group(3)).replace(",", "")
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


def _strip_cjk_stop_phrases(text: str) -> str:
    for phrase in CJK_STOP_PHRASES:
        text = text.replace(phrase, " ")
    return text


def _runs(part: str) -> List[str]:
    """Consecutive non-stopword words of one comma/connector-separated part."""
    runs = []
    current: List[str] = []
    for word in part.split():
        bare = word.strip(".!?\"'()[]").lower()
        if not bare or bare in STOPWORDS or not LETTER.search(bare):
            if current:
                runs.append(" ".join(current))
                current = []
            continue
        current.append(word.strip(".!?\"()[]"))
    if current:
        runs.append(" ".join(current))
    return runs


def extract_name_fragments(text: str) -> List[str]:
    """
    Spoken name fragments, in the order they were said.

    Action words, dates, amounts and times are dropped; what is left is
    split on commas and connectors ("and", "y", "和").

    Examples:
        >>> extract_name_fragments("Mark Leo Chen and Ava attended today")
        ['Leo Chen', 'Ava']
        >>> extract_name_fragments("Hoy vinieron Sarah y Tiffany")
        ['Sarah', 'Tiffany']
    """
    cleaned = MONTH_DAY.sub(" ", text)
    cleaned = DAY_DE_MONTH.sub(" ", cleaned)
    cleaned = ORDINAL_DAY.sub(" ", cleaned)
    cleaned = NUMBERISH.sub(" ", cleaned)
    cleaned = re.sub(r"'s\b", "", cleaned, flags=re.IGNORECASE)
    cleaned = _strip_cjk_stop_phrases(cleaned)

    fragments: List[str] = []
    seen = set()
    for part in NAME_SPLIT.split(cleaned):
        for run in _runs(part):
            if len(run) < 2 and not CJK.search(run):
                continue
            name = run if CJK.search(run) else title_case_name(run)
            key = name.casefold()
            if key in seen:
                continue
            seen.add(key)
            fragments.append(name)
    return fragments


def _move_name(text: str) -> str:
    for pattern in MOVE_NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        fragments = extract_name_fragments(match.group(1))
        if fragments:
            return fragments[0]
    fragments = extract_name_fragments(text)
    return fragments[0] if fragments else ""


def _clean_phrase(phrase: Optional[str]) -> Optional[str]:
    if phrase is None:
        return None
    cleaned = PHRASE_TAIL.sub("", phrase).strip(" ,.")
    return cleaned or None


def _move_phrases(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Raw (from, to) phrases of a move, tails included."""
    match = FROM_TO.search(text)
    if match:
        return match.group(1), match.group(2)
    from_match = FROM_ONLY.search(text)
    to_match = TO_ONLY.search(text)
    if from_match or to_match:
        return (
            from_match.group(1) if from_match else None,
            to_match.group(1) if to_match else None,
        )

    match = ES_FROM_TO.search(text)
    if match:
        return match.group(1), match.group(2)
    match = ES_TO_ONLY.search(text)
    if match:
        return None, match.group(1)
    match = ZH_TO.search(text)
    if match:
        return None, match.group(1)
    return None, None


def _date_for_role(
    role: str,
    phrase: Optional[str],
    reference_date_key: str
) -> Tuple[Optional[str], Optional[DateAmbiguity]]:
    if not phrase:
        return None, None
    token = ambiguous_weekday(phrase)
    if token:
        last_key, next_key = last_and_next(token, reference_date_key)
        return None, DateAmbiguity(role=role, token=token, last_date_key=last_key, next_date_key=next_key)
    return resolve_date(phrase, reference_date_key), None


def _parse_move(text: str, reference_date_key: str, language: Language) -> IntentPayload:
    name = _move_name(text)
    raw_from, raw_to = _move_phrases(text)

    from_key, from_ambiguity = _date_for_role("from", _clean_phrase(raw_from), reference_date_key)
    to_key, to_ambiguity = _date_for_role("to", _clean_phrase(raw_to), reference_date_key)
    ambiguities = [a for a in (from_ambiguity, to_ambiguity) if a is not None]

    to_time = parse_time_of_day(raw_to) if raw_to else None
    if to_time is None:
        to_time = parse_time_of_day(text)
    if to_time is None and looks_like_time(text):
        return Unknown(language=language, hint=BAD_TIME_HINT)

    has_target = bool(to_key or to_ambiguity or to_time)
    confidence = CONFIDENT if name and has_target else PARTIAL_MOVE_CONFIDENCE

    return LessonReschedule(
        language=language,
        confidence=confidence,
        student_name_fragment=name,
        from_date_key=from_key,
        to_date_key=to_key,
        to_time=to_time,
        duration_minutes=extract_duration_minutes(text),
        date_ambiguities=ambiguities,
    )


def _change_to_date(text: str, reference_date_key: str) -> bool:
    """"Change Sofia's lesson to Friday, February 20 at 2 PM" is a move."""
    if not CHANGE_CUE.search(text) or extract_money(text) is not None:
        return False
    match = TO_ONLY.search(text)
    if not match:
        return False
    target = _clean_phrase(match.group(1))
    if not target:
        return False
    # "to 30 minutes today" and "to 5 PM today" stay field edits
    if re.match(r"\d", target) and not re.match(r"\d{1,2}/\d{1,2}|\d{4}-\d{2}-\d{2}", target):
        return False
    return (
        ambiguous_weekday(target) is not None or resolve_date(target, reference_date_key) is not None
    )


def _parse_money(text: str, money: Decimal, reference_date_key: str, language: Language) -> IntentPayload:
    names = extract_name_fragments(text)
    if not names:
        return Unknown(language=language, hint=NO_STUDENT_HINT)

    update: Optional[UpdateKind] = None
    interpretations: List[UpdateKind] = []
    if RATE_CUE.search(text):
        update = UpdateKind.RATE
    elif AMOUNT_CUE.search(text):
        update = UpdateKind.AMOUNT
    else:
        interpretations = [UpdateKind.AMOUNT, UpdateKind.RATE]

    return LessonUpdate(
        language=language,
        confidence=CONFIDENT if update else AMBIGUOUS_MONEY_CONFIDENCE,
        name_fragments=names,
        date_key=resolve_date(text, reference_date_key),
        update=update,
        interpretations=interpretations,
        money=money,
        going_forward=bool(GOING_FORWARD.search(text)),
    )


def _parse_attendance(text: str, reference_date_key: str, language: Language) -> Optional[IntentPayload]:
    date_key = resolve_date(text, reference_date_key)
    absent = bool(ABSENT.search(text))
    marked = bool(MARK.search(text))

    if NOBODY.search(text):
        confidence = BULK_CONFIDENCE if EXPLICIT_VERB.search(text) else NOBODY_CONFIDENCE
        return AttendanceMark(
            language=language, confidence=confidence, scope="all", present=False, date_key=date_key
        )

    if ALL_SCOPE.search(text) and (marked or absent):
        return AttendanceMark(
            language=language, confidence=BULK_CONFIDENCE, scope="all", present=not absent, date_key=date_key
        )

    names = extract_name_fragments(text)
    if not names:
        return None

    if marked or absent:
        confidence = CONFIDENT if len(names) <= 3 else MANY_NAMES_CONFIDENCE
    else:
        confidence = NAMES_ONLY_CONFIDENCE

    return AttendanceMark(
        language=language,
        confidence=confidence,
        scope="named",
        present=not absent,
        name_fragments=names,
        date_key=date_key,
    )


def _parse(transcript: str, reference_date_key: str) -> IntentPayload:
    text = normalize_transcript(transcript)
    if not text:
        return Unknown(hint=EMPTY_HINT)

    language = detect_language(text)
    logger.debug(f"Normalized transcript ({language}): {text}")

    if HELP.search(text):
        return Help(language=language, confidence=1.0)

    bad_date = unparseable_date(text, reference_date_key)
    if bad_date is not None:
        logger.debug(f"Unparseable date: {bad_date}")
        return Unknown(language=language, hint=BAD_DATE_HINT)
    if BAD_MONEY.search(text):
        return Unknown(language=language, hint=BAD_AMOUNT_HINT)

    if MOVE.search(text) or _change_to_date(text, reference_date_key):
        return _parse_move(text, reference_date_key, language)

    duration = extract_duration_minutes(text)
    if duration is not None:
        names = extract_name_fragments(text)
        if not names:
            return Unknown(language=language, hint=NO_STUDENT_HINT)
        return LessonUpdate(
            language=language,
            confidence=CONFIDENT,
            name_fragments=names,
            date_key=resolve_date(text, reference_date_key),
            update=UpdateKind.DURATION,
            duration_minutes=duration,
        )

    money = extract_money(text)

    if money is None and TIME_EDIT_CUE.search(text) and not ATTENDANCE_WORDS.search(text):
        time_of_day = parse_time_of_day(text)
        if time_of_day is None and looks_like_time(text):
            return Unknown(language=language, hint=BAD_TIME_HINT)
        if time_of_day is not None:
            names = extract_name_fragments(text)
            if not names:
                return Unknown(language=language, hint=NO_STUDENT_HINT)
            return LessonUpdate(
                language=language,
                confidence=CONFIDENT,
                name_fragments=names,
                date_key=resolve_date(text, reference_date_key),
                update=UpdateKind.TIME,
                time_of_day=time_of_day,
            )

    if money is not None:
        return _parse_money(text, money, reference_date_key, language)

    attendance = _parse_attendance(text, reference_date_key, language)
    if attendance is not None:
        return attendance

    return Unknown(language=language, hint=UNMAPPED_HINT)


def parse(transcript: str, reference_date_key: str) -> IntentPayload:
    """
    Parse a transcript into an intent payload.

    Args:
        transcript: Raw transcript from speech-to-text or typed input
        reference_date_key: Date that "today" refers to (YYYY-MM-DD)

    Returns:
        AttendanceMark, LessonReschedule, LessonUpdate, Help or Unknown

    Examples:
        >>> parse("Move Leo's lesson to tomorrow", "2026-02-17").to_date_key
        '2026-02-18'
        >>> parse("", "2026-02-17").intent
        'unknown'
    """
    try:
        payload = _parse(transcript or "", reference_date_key)
    except (ValueError, ArithmeticError) as e:
        logger.warning(f"Transcript could not be parsed: {e}")
        return Unknown(hint=UNMAPPED_HINT)

    logger.debug(f"Parsed intent={payload.intent} confidence={payload.confidence:.2f}")
    return payload
