from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ta_config.settings import similarity_threshold
from ta_facts.dataset import load_facts
from ta_facts.formatter import format_result
from ta_facts.matcher import SIMILARITY_THRESHOLD, Query, verify

logger = logging.getLogger(__name__)


def verify_facts(
    fact1: str,
    fact2: str,
    *,
    path: Optional[Path | str] = None,
    threshold: Optional[float] = None,
) -> str:
    """
    Decide which of two claims matches the reference dataset.

    Returns "fact1", "fact2" or "No match found". The dataset is read on
    every call; DatasetLoadError propagates to the caller.
    """
    dataset = load_facts(path)
    limit = similarity_threshold(SIMILARITY_THRESHOLD) if threshold is None else threshold

    result = verify(Query(fact1=fact1, fact2=fact2), dataset, threshold=limit)
    if result.kind == "approximate":
        logger.info("verify_facts: approximate match (record %s, score %.3f)", result.record_index, result.score)
    else:
        logger.debug("verify_facts: %s (record %s)", result.kind, result.record_index)
    return format_result(result)
