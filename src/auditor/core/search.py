"""
Fuzzy command search — padded-trigram containment scoring.

Each string is padded as ``"  " + s + " "`` and cut into overlapping
three-character windows, ``len(s) + 1`` of them. A candidate's score is the
share of the query's windows that appear anywhere among the candidate's
windows. The measure is asymmetric: the query sets both the numerator and
the denominator, so a short query fully contained in a long command still
scores 1.0.

Candidates are scored one by one against the whole list fetched from the
store; there is no index.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from auditor.core.models import RecordView

T = TypeVar("T")

Trigram = tuple[str, str, str]


def trigrams(s: str) -> list[Trigram]:
    """Return the boundary-padded trigram sequence of *s* (``len(s) + 1`` items)."""
    padded = "  " + s + " "
    return [(padded[i], padded[i + 1], padded[i + 2]) for i in range(len(padded) - 2)]


def fuzzy_compare(query: str, candidate: str) -> float:
    """
    Score how much of *query* is contained in *candidate*, in ``[0, 1]``.

    Every trigram position of the query counts at most once, however many
    times it occurs in the candidate.
    """
    candidate_set = set(trigrams(candidate))
    matched = sum(1 for t in trigrams(query) if t in candidate_set)
    score = matched / (len(query) + 1)
    if 0.0 <= score <= 1.0:
        return score
    return 0.0


def _command_of(item: RecordView) -> str:
    return item.command


def rank(
    query: str,
    candidates: Iterable[T],
    key: Callable[[T], str] = _command_of,  # type: ignore[assignment]
) -> list[tuple[T, float]]:
    """
    Score every candidate and sort by descending score.

    ``sorted`` is stable, so candidates with equal scores keep their input
    order (newest first when fed straight from the store).
    """
    scored = [(item, fuzzy_compare(query, key(item))) for item in candidates]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


def best_n(
    query: str,
    candidates: Sequence[T],
    n: int,
    key: Callable[[T], str] = _command_of,  # type: ignore[assignment]
) -> list[T]:
    """Return the *n* best matches for *query*, best first."""
    if n <= 0:
        return []
    return [item for item, _ in rank(query, candidates, key)[:n]]
