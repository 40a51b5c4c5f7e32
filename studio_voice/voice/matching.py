"""
Fuzzy student name matching.

Each spoken fragment is scored against every student in tiers (exact
full name, first name, last name, prefix, containment, then bounded
edit distance). A fragment binds to a student only when the best score
clears the fuzzy threshold and beats the runner-up by the ambiguity
margin; a near-tie is reported, never guessed.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..models.studio import Student


logger = logging.getLogger(__name__)


DEFAULT_FUZZY_THRESHOLD = 0.6
DEFAULT_AMBIGUITY_MARGIN = 0.1


def fold(text: str) -> str:
    """
    Diacritic-fold, case-fold and strip punctuation.

    Examples:
        >>> fold("  Sofía-Pérez! ")
        'sofia perez'
    """
    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    stripped = re.sub(r"[^\w\s]", " ", stripped.casefold())
    return re.sub(r"\s+", " ", stripped).strip()


def strip_possessive(fragment: str) -> str:
    """"Leo's" -> "Leo"."""
    return re.sub(r"['’]s\b", "", fragment or "", flags=re.IGNORECASE).strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def score_match(fragment: str, student: Student, threshold: float = DEFAULT_FUZZY_THRESHOLD) -> float:
    """
    Score how well a spoken fragment names a student.

    Args:
        fragment: Spoken name fragment
        student: Candidate student
        threshold: Fuzzy threshold; edit-distance scores never drop below it

    Returns:
        Score in [0, 1]; 0.0 when nothing matches

    Examples:
        >>> score_match("leo", leo_garcia)
        0.92
        >>> score_match("Sophia", sofia_parker)
        0.66
    """
    spoken = fold(strip_possessive(fragment))
    if not spoken:
        return 0.0

    first = fold(student.first_name)
    last = fold(student.last_name)
    full = fold(student.full_name)

    if spoken == full:
        return 1.0
    if spoken == first:
        return 0.92
    if last and spoken == last:
        return 0.88
    if full.startswith(spoken):
        return 0.85
    if len(first) > 1 and first in spoken:
        return 0.8
    if len(last) > 1 and last in spoken:
        return 0.78

    distance = levenshtein(spoken, first)
    if len(spoken) >= 2 and distance <= 2:
        return round(max(threshold, 0.9 - 0.12 * distance), 4)
    if last:
        distance = levenshtein(spoken, last)
        if distance <= 2:
            return round(max(threshold, 0.82 - 0.1 * distance), 4)
    distance = levenshtein(spoken, full)
    if len(spoken) >= 4 and distance <= 3:
        return round(max(threshold, 0.75 - 0.08 * distance), 4)
    return 0.0


@dataclass(frozen=True)
class Candidate:
    student: Student
    score: float


class MatchStatus(Enum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    MISSING = "missing"
    REPEATED = "repeated"


@dataclass
class FragmentMatch:
    """
    Outcome of matching one fragment.

    Attributes:
        index: Position of the fragment in the utterance
        fragment: Fragment as spoken
        status: RESOLVED, AMBIGUOUS, MISSING, or REPEATED when every
            candidate was already bound to an earlier fragment
        student: Bound student (RESOLVED only)
        candidates: Options to offer (AMBIGUOUS only), best first
    """

    index: int
    fragment: str
    status: MatchStatus
    student: Optional[Student] = None
    candidates: List[Candidate] = field(default_factory=list)


def rank_candidates(
    fragment: str,
    students: Iterable[Student],
    threshold: float = DEFAULT_FUZZY_THRESHOLD
) -> List[Candidate]:
    """Students scoring at least the threshold, best first."""
    scored = []
    for student in students:
        score = score_match(fragment, student, threshold)
        if score >= threshold:
            scored.append(Candidate(student=student, score=score))
    scored.sort(key=lambda c: (-c.score, c.student.full_name))
    return scored


def match_fragment(
    fragment: str,
    students: Sequence[Student],
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
    margin: float = DEFAULT_AMBIGUITY_MARGIN,
    index: int = 0,
    used_ids: Optional[Set[str]] = None
) -> FragmentMatch:
    """
    Match one fragment against the roster.

    Students already bound to an earlier fragment of the same command
    are skipped.
    """
    used_ids = used_ids or set()
    ranked = rank_candidates(fragment, students, threshold)
    candidates = [c for c in ranked if c.student.id not in used_ids]

    if not candidates:
        status = MatchStatus.REPEATED if ranked else MatchStatus.MISSING
        return FragmentMatch(index=index, fragment=fragment, status=status)

    top = candidates[0]
    if len(candidates) > 1 and top.score - candidates[1].score < margin:
        close = [c for c in candidates if c.score > top.score - margin]
        logger.debug(f"Fragment '{fragment}' is ambiguous between {[c.student.full_name for c in close]}")
        return FragmentMatch(index=index, fragment=fragment, status=MatchStatus.AMBIGUOUS, candidates=close)

    return FragmentMatch(index=index, fragment=fragment, status=MatchStatus.RESOLVED, student=top.student)


def match_fragments(
    fragments: Sequence[str],
    students: Sequence[Student],
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
    margin: float = DEFAULT_AMBIGUITY_MARGIN,
    pinned: Optional[Dict[int, str]] = None
) -> List[FragmentMatch]:
    """
    Match every fragment of a command, in order.

    Args:
        fragments: Spoken fragments
        students: Roster to match against
        threshold: Fuzzy threshold
        margin: Minimum gap between the best and second-best score
        pinned: Fragment index -> student id chosen during disambiguation;
            a pinned fragment skips scoring

    Returns:
        One FragmentMatch per fragment

    Examples:
        >>> [m.status for m in match_fragments(["Leo"], [leo_garcia, leo_chen])]
        [<MatchStatus.AMBIGUOUS: 'ambiguous'>]
    """
    pinned = pinned or {}
    by_id = {student.id: student for student in students}
    used: Set[str] = set()
    matches = []

    for index, fragment in enumerate(fragments):
        if index in pinned:
            student = by_id.get(pinned[index])
            if student is None:
                matches.append(FragmentMatch(index=index, fragment=fragment, status=MatchStatus.MISSING))
                continue
            used.add(student.id)
            matches.append(FragmentMatch(
                index=index, fragment=fragment, status=MatchStatus.RESOLVED, student=student
            ))
            continue

        match = match_fragment(fragment, students, threshold, margin, index=index, used_ids=used)
        if match.status == MatchStatus.RESOLVED:
            used.add(match.student.id)
        matches.append(match)

    return matches
