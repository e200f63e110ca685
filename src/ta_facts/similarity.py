"""
Character-level string similarity based on the longest common subsequence.

The ratio is ``2 * LCS / (len(a) + len(b))``, the same normalization as
``difflib.SequenceMatcher.ratio`` but computed from a true LCS. Comparison is
per code point, case- and whitespace-sensitive.
"""
from __future__ import annotations


def lcs_length(a: str, b: str) -> int:
    """Length of the longest common subsequence of `a` and `b`.

    Classic O(len(a) * len(b)) table over prefix lengths; only the previous
    row is kept.
    """
    if not a or not b:
        return 0

    prev = [0] * (len(b) + 1)
    for i in range(1, len(a) + 1):
        cur = [0] * (len(b) + 1)
        ca = a[i - 1]
        for j in range(1, len(b) + 1):
            if ca == b[j - 1]:
                cur[j] = prev[j - 1] + 1
            else:
                cur[j] = max(prev[j], cur[j - 1])
        prev = cur
    return prev[len(b)]


def similarity(a: str, b: str) -> float:
    """Return a similarity ratio in [0, 1]; 0.0 if either string is empty."""
    if not a or not b:
        return 0.0
    return (2.0 * lcs_length(a, b)) / (len(a) + len(b))
