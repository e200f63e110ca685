import pytest

from ta_facts.similarity import lcs_length, similarity


@pytest.mark.parametrize("a", ["a", "Sun is a star", "  spaced  ", "ééé"])
def test_identical_strings_score_one(a):
    assert similarity(a, a) == 1.0


@pytest.mark.parametrize(
    "a,b",
    [("Sun is a star", "The sun is a star."), ("abc", "cba"), ("kitten", "sitting"), ("x", "yyyy")],
)
def test_similarity_is_symmetric(a, b):
    assert similarity(a, b) == similarity(b, a)


@pytest.mark.parametrize("other", ["", "anything", "Sun is a star"])
def test_empty_string_scores_zero(other):
    assert similarity("", other) == 0.0
    assert similarity(other, "") == 0.0


def test_lcs_length_classic_cases():
    assert lcs_length("ABCBDAB", "BDCABA") == 4
    assert lcs_length("abc", "def") == 0
    assert lcs_length("abc", "") == 0


def test_ratio_uses_lcs_normalization():
    # LCS("kitten", "sitting") = "ittn" -> 2 * 4 / 13
    assert similarity("kitten", "sitting") == pytest.approx(8 / 13)


def test_comparison_is_case_and_whitespace_sensitive():
    assert similarity("ABC", "abc") == 0.0
    assert similarity("a b", "ab") == pytest.approx(4 / 5)


def test_reordering_is_penalized_but_not_zero():
    score = similarity("abc", "cba")
    assert 0.0 < score < 1.0
