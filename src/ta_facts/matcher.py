from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from ta_facts.dataset import Designation, FactRecord
from ta_facts.similarity import similarity

# Approximate matches must score strictly above this.
SIMILARITY_THRESHOLD = 0.6

MatchKind = Literal["exact", "approximate", "none"]


class Query(BaseModel):
    model_config = ConfigDict(frozen=True)

    fact1: str
    fact2: str


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of a verification. `designation` names one of the caller's two
    query positions, never a dataset string.
    """
    kind: MatchKind
    designation: Optional[Designation] = None
    score: Optional[float] = None
    record_index: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.kind != "none"


NO_MATCH = MatchResult(kind="none")


def flip(designation: Designation) -> Designation:
    return "fact1" if designation == "fact2" else "fact2"


def _exact(query: Query, dataset: Sequence[FactRecord]) -> Optional[MatchResult]:
    for idx, rec in enumerate(dataset):
        f = rec.facts
        if f.fact1 == query.fact1 and f.fact2 == query.fact2:
            return MatchResult(kind="exact", designation=rec.correct_fact, record_index=idx)
        if f.fact1 == query.fact2 and f.fact2 == query.fact1:
            return MatchResult(kind="exact", designation=flip(rec.correct_fact), record_index=idx)
    return None


def score_record(query: Query, rec: FactRecord) -> tuple[float, bool]:
    """
    Return (score, swapped) for the better alignment of `rec` against `query`.
    Straight alignment wins only when strictly better than swapped.
    """
    straight = similarity(query.fact1, rec.facts.fact1) + similarity(query.fact2, rec.facts.fact2)
    swapped = similarity(query.fact1, rec.facts.fact2) + similarity(query.fact2, rec.facts.fact1)
    if straight > swapped:
        return straight / 2, False
    return swapped / 2, True


def _approximate(query: Query, dataset: Sequence[FactRecord], threshold: float) -> MatchResult:
    best_score = 0.0
    best_idx: Optional[int] = None
    best_swapped = False

    for idx, rec in enumerate(dataset):
        score, swapped = score_record(query, rec)
        if score > best_score:
            best_score, best_idx, best_swapped = score, idx, swapped

    if best_idx is None or not best_score > threshold:
        return NO_MATCH

    correct = dataset[best_idx].correct_fact
    return MatchResult(
        kind="approximate",
        designation=flip(correct) if best_swapped else correct,
        score=best_score,
        record_index=best_idx,
    )


def verify(query: Query, dataset: Sequence[FactRecord], threshold: float = SIMILARITY_THRESHOLD) -> MatchResult:
    """Exact bidirectional lookup first, then the best approximate alignment above `threshold`."""
    hit = _exact(query, dataset)
    if hit is not None:
        return hit
    return _approximate(query, dataset, threshold)
