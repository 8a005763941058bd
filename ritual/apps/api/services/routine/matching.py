"""Fuzzy resolution of free-text activity references against a routine.

Scoring is case-insensitive over whitespace-normalised names. For each
activity the first rule that applies wins:

    exact             100
    startsWith         80   (name starts with query)
    contains           60   (name contains query)
    reverseContains    50   (query contains name)
    tokenOverlap    40-70   (40 + 30 * overlap ratio, needs >= 1 shared token)

Anything below MIN_MATCH_SCORE is dropped. The surviving candidates are then
classified into a confidence tier. Ambiguity is checked before the single
winner rule so that near-ties reach the user instead of being guessed.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Sequence

from ritual.libs.schemas.routine import Activity, Confidence, MatchResult, MatchType, ScoredActivity

from .catalog import ActivityCatalog, normalize_name
from .errors import ActivityNotFoundError, AmbiguousMatchError

logger = logging.getLogger(__name__)

MIN_MATCH_SCORE = 40.0
HIGH_SCORE = 70.0
HIGH_MARGIN = 20.0
AMBIGUITY_BAND = 15.0
MEDIUM_SCORE = 50.0

# How long a caller may hold an ambiguous match open while asking the user to
# pick. The engine keeps no state; callers compare elapsed time themselves.
PENDING_CLARIFICATION_TIMEOUT = timedelta(minutes=10)
PENDING_CLARIFICATION_TIMEOUT_MS = int(PENDING_CLARIFICATION_TIMEOUT.total_seconds() * 1000)


def _token_overlap(query: str, name: str) -> float:
    query_tokens = set(query.split())
    name_tokens = set(name.split())
    if not query_tokens or not name_tokens:
        return 0.0
    hits = sum(
        1
        for q_tok in query_tokens
        if any(q_tok in n_tok or n_tok in q_tok for n_tok in name_tokens)
    )
    return hits / max(len(query_tokens), len(name_tokens))


def score_name(query: str, name: str) -> Optional[tuple[float, MatchType]]:
    """Score an already-normalised query against an already-normalised name."""

    if not query or not name:
        return None
    if query == name:
        return 100.0, MatchType.EXACT
    if name.startswith(query):
        return 80.0, MatchType.STARTS_WITH
    if query in name:
        return 60.0, MatchType.CONTAINS
    if name in query:
        return 50.0, MatchType.REVERSE_CONTAINS
    ratio = _token_overlap(query, name)
    if ratio <= 0:
        return None
    score = round(40.0 + 30.0 * ratio, 2)
    if score < MIN_MATCH_SCORE:
        return None
    return score, MatchType.TOKEN_OVERLAP


def score_candidates(query: str, activities: Sequence[Activity]) -> list[ScoredActivity]:
    """All activities scoring at or above the threshold, best first, ties in routine order."""

    normalized = normalize_name(query)
    scored: list[ScoredActivity] = []
    for index, activity in enumerate(activities):
        hit = score_name(normalized, normalize_name(activity.name))
        if hit is None:
            continue
        score, match_type = hit
        scored.append(ScoredActivity(activity=activity, index=index, score=score, match_type=match_type))
    scored.sort(key=lambda item: (-item.score, item.index))
    return scored


def resolve_activity(query: str, activities: Sequence[Activity] | ActivityCatalog) -> MatchResult:
    candidates = score_candidates(query, list(activities))
    if not candidates:
        return MatchResult(best_match=None, candidates=[], confidence=Confidence.LOW)

    top = candidates[0]
    s1 = top.score
    s2 = candidates[1].score if len(candidates) > 1 else 0.0

    if s1 == 100.0 or (s1 >= HIGH_SCORE and s1 - s2 >= HIGH_MARGIN):
        return MatchResult(best_match=top.activity, candidates=candidates, confidence=Confidence.HIGH)

    tied = [candidate for candidate in candidates if s1 - candidate.score <= AMBIGUITY_BAND]
    if len(tied) > 1:
        return MatchResult(best_match=None, candidates=tied, confidence=Confidence.AMBIGUOUS)

    if s1 >= MEDIUM_SCORE:
        return MatchResult(best_match=top.activity, candidates=candidates, confidence=Confidence.MEDIUM)

    return MatchResult(best_match=None, candidates=candidates, confidence=Confidence.LOW)


def best_match_or_none(query: str, activities: Sequence[Activity] | ActivityCatalog) -> Optional[Activity]:
    result = resolve_activity(query, activities)
    if result.confidence in (Confidence.HIGH, Confidence.MEDIUM):
        return result.best_match
    return None


def resolve_or_raise(identifier: str, catalog: ActivityCatalog) -> ScoredActivity:
    """Resolve to a single activity or raise the error the caller should surface."""

    result = resolve_activity(identifier, catalog)
    if result.confidence == Confidence.AMBIGUOUS:
        logger.info(
            "Ambiguous activity reference",
            extra={"identifier": identifier, "candidates": [c.activity.name for c in result.candidates]},
        )
        raise AmbiguousMatchError(identifier, result.candidates)
    if result.best_match is None:
        raise ActivityNotFoundError(identifier)
    return result.candidates[0]


__all__ = [
    "MIN_MATCH_SCORE",
    "PENDING_CLARIFICATION_TIMEOUT",
    "PENDING_CLARIFICATION_TIMEOUT_MS",
    "best_match_or_none",
    "resolve_activity",
    "resolve_or_raise",
    "score_candidates",
    "score_name",
]
