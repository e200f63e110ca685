from __future__ import annotations

from ta_facts.matcher import MatchResult

NO_MATCH_TEXT = "No match found"


def format_result(result: MatchResult) -> str:
    """Map a MatchResult to the verify_facts response text."""
    if result.matched and result.designation is not None:
        return result.designation
    return NO_MATCH_TEXT
