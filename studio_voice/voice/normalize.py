"""
Transcript normalization.

Speech-to-text output is noisy: lead-ins ("hey, can you"), fillers,
spelled-out numbers and spoken durations. normalize_transcript()
turns it into a compact form the parser's patterns can rely on:

    "Um, change Ava's lesson to an hour and a half"
        -> "change Ava's lesson to 90 minutes"
    "Leo is now a hundred thousand dollars"
        -> "Leo is now 100000 dollars"

Casing is kept so that name fragments can be displayed as spoken.
"""

import re
import unicodedata
from typing import List, Optional, Tuple


UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9,
}
TEENS = {
    "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
SCALES = {"hundred": 100, "thousand": 1000, "million": 1000000}

LEAD_IN = re.compile(
    r"^(?:hey|hi|ok(?:ay)?|so|well|um+|uh+|erm|please|alright|"
    r"can you|could you|would you|will you|i want to|i'd like to|i need to|let's|go ahead and)\b[\s,.!]*",
    re.IGNORECASE,
)
FILLERS = re.compile(r"\b(?:um+|uh+|erm|hmm+|please)\b[,]?", re.IGNORECASE)
HYPHENATED_TENS = re.compile(
    r"\b(" + "|".join(TENS) + r")-(" + "|".join(k for k in UNITS if k != "zero") + r")\b",
    re.IGNORECASE,
)
MONEY_BEFORE = re.compile(
    r"(?:\$\s*\d[\d,]*(?:\.\d+)?|\d[\d,]*(?:\.\d+)?\s*(?:dollars?|bucks?))\s*$",
    re.IGNORECASE,
)
PUNCT = ",.?!;:"


def _split_punct(token: str) -> Tuple[str, str]:
    stripped = token.rstrip(PUNCT)
    return stripped, token[len(stripped):]


def _bare(token: str) -> str:
    return _split_punct(token)[0].lower()


def _read_number(tokens: List[str], start: int) -> Tuple[int, int, str]:
    """
    Read a spelled-out number starting at tokens[start].

    Returns:
        (tokens consumed, value, trailing punctuation); 0 consumed when
        no number starts here
    """
    n = len(tokens)
    if _bare(tokens[start]) == "one" and start > 0 and _bare(tokens[start - 1]) == "no":
        return 0, 0, ""

    total = current = 0
    last: Optional[str] = None
    end = start
    punct = ""
    j = start
    while j < n:
        word, trailing = _split_punct(tokens[j])
        w = word.lower()
        nxt = _bare(tokens[j + 1]) if j + 1 < n else ""

        if w in ("a", "an") and last is None and nxt in SCALES and not trailing:
            current, last = 1, "a"
            j += 1
            continue
        if w == "and" and last in ("hundred", "thousand") and (nxt in UNITS or nxt in TEENS or nxt in TENS):
            j += 1
            continue

        if w in UNITS and last in (None, "tens", "hundred", "thousand") and not (last == "tens" and UNITS[w] == 0):
            current += UNITS[w]
            last = "unit"
        elif w in TEENS and last in (None, "hundred", "thousand"):
            current += TEENS[w]
            last = "teen"
        elif w in TENS and last in (None, "hundred", "thousand"):
            current += TENS[w]
            last = "tens"
        elif w == "hundred" and last in ("unit", "teen", "tens", "a"):
            current *= 100
            last = "hundred"
        elif w in ("thousand", "million") and last in ("unit", "teen", "tens", "hundred", "a"):
            total += current * SCALES[w]
            current = 0
            last = "thousand"
        else:
            break

        j += 1
        end = j
        punct = trailing
        if trailing:
            break

    if end == start:
        return 0, 0, ""
    return end - start, total + current, punct


def words_to_numbers(text: str) -> str:
    """
    Replace spelled-out numbers with digits.

    "a"/"an" count only before hundred/thousand, and the "one" of
    "no one" is left alone.

    Examples:
        >>> words_to_numbers("a hundred thousand dollars")
        '100000 dollars'
        >>> words_to_numbers("twenty five minutes")
        '25 minutes'
        >>> words_to_numbers("no one came")
        'no one came'
    """
    tokens = text.split(" ")
    out = []
    i = 0
    while i < len(tokens):
        if not tokens[i]:
            i += 1
            continue
        consumed, value, punct = _read_number(tokens, i)
        if consumed:
            out.append(f"{value}{punct}")
            i += consumed
        else:
            out.append(tokens[i])
            i += 1
    return " ".join(out)


def _money_precedes(text: str, position: int) -> bool:
    return bool(MONEY_BEFORE.search(text[:position]))


def _hours_to_minutes(match: re.Match) -> str:
    text = match.string
    if _money_precedes(text, match.start()):
        return match.group(0)
    hours = float(match.group(1))
    return f"{round(hours * 60)} minutes"


def _an_hour(match: re.Match) -> str:
    if _money_precedes(match.string, match.start()):
        return match.group(0)
    return "60 minutes"


def normalize_durations(text: str) -> str:
    """
    Spoken durations to "<N> minutes".

    "an hour" right after a money amount ("$80 an hour") is a rate and
    is left alone.
    """
    text = re.sub(r"\b(?:an?|one|1) hour and a half\b", "90 minutes", text, flags=re.IGNORECASE)
    text = re.sub(r"\b(?:an? )?hour and a half\b", "90 minutes", text, flags=re.IGNORECASE)
    text = re.sub(r"\bhalf (?:an? )?hour\b", "30 minutes", text, flags=re.IGNORECASE)
    text = re.sub(r"\ban? hour and a quarter\b", "75 minutes", text, flags=re.IGNORECASE)
    text = re.sub(r"\ba quarter (?:of an )?hour\b", "15 minutes", text, flags=re.IGNORECASE)
    text = re.sub(
        r"\b(\d+) and a half hours?\b",
        lambda m: f"{int(m.group(1)) * 60 + 30} minutes",
        text,
        flags=re.IGNORECASE,
    )
    text = re.sub(r"\b(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)\b", _hours_to_minutes, text, flags=re.IGNORECASE)
    text = re.sub(r"\ban? hour\b", _an_hour, text, flags=re.IGNORECASE)
    text = re.sub(r"\b(\d+)\s*(?:mins?|minutes?)\b", r"\1 minutes", text, flags=re.IGNORECASE)
    return text


def normalize_times(text: str) -> str:
    """Spoken clock forms to "H:MM am/pm"."""
    text = re.sub(r"\b([ap])\.\s?m\.?(?=\s|$|[,.!?])", r"\1m", text, flags=re.IGNORECASE)
    text = re.sub(r"\b(\d{1,2}) o'?clock\b", r"\1:00", text, flags=re.IGNORECASE)
    text = re.sub(r"\b(\d{1,2}) ([0-5]\d) ?([ap]m)\b", r"\1:\2 \3", text, flags=re.IGNORECASE)
    return text


def normalize_transcript(text: str) -> str:
    """
    Normalize a raw transcript for parsing.

    Args:
        text: Transcript as produced by speech-to-text or typed input

    Returns:
        Cleaned transcript; empty string for blank input
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFC", text)
    text = text.replace("’", "'").replace("‘", "'")
    text = re.sub(r"\s+", " ", text).strip()

    previous = None
    while previous != text:
        previous = text
        text = LEAD_IN.sub("", text).strip()

    text = FILLERS.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip()

    text = HYPHENATED_TENS.sub(r"\1 \2", text)
    text = words_to_numbers(text)
    text = normalize_durations(text)
    text = normalize_times(text)

    return re.sub(r"\s+", " ", text).strip()
