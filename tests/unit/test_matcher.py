import pytest

from ta_facts.dataset import FactPair, FactRecord
from ta_facts.matcher import SIMILARITY_THRESHOLD, MatchResult, Query, flip, score_record, verify


def _rec(f1: str, f2: str, correct: str = "fact1") -> FactRecord:
    return FactRecord(facts=FactPair(fact1=f1, fact2=f2), correct_fact=correct)


SUN = [_rec("Sun is a star", "Sun is a planet", "fact1")]


def test_exact_match_same_order():
    out = verify(Query(fact1="Sun is a star", fact2="Sun is a planet"), SUN)
    assert out == MatchResult(kind="exact", designation="fact1", record_index=0)


def test_exact_match_swapped_order_flips_designation():
    out = verify(Query(fact1="Sun is a planet", fact2="Sun is a star"), SUN)
    assert out.kind == "exact"
    assert out.designation == "fact2"


@pytest.mark.parametrize("correct", ["fact1", "fact2"])
def test_exact_match_is_order_insensitive_and_complementary(correct):
    data = [_rec("X is true", "Y is true", correct)]
    a = verify(Query(fact1="X is true", fact2="Y is true"), data)
    b = verify(Query(fact1="Y is true", fact2="X is true"), data)
    assert a.designation == correct
    assert b.designation == flip(correct)


def test_near_identical_query_matches_approximately():
    out = verify(Query(fact1="The sun is a star.", fact2="The sun is a planet."), SUN)
    assert out.kind == "approximate"
    assert out.designation == "fact1"
    assert out.score > SIMILARITY_THRESHOLD


def test_near_identical_swapped_query_flips_designation():
    out = verify(Query(fact1="The sun is a planet.", fact2="The sun is a star."), SUN)
    assert out.kind == "approximate"
    assert out.designation == "fact2"


def test_unrelated_query_yields_no_match():
    out = verify(Query(fact1="12345", fact2="67890"), SUN)
    assert out.kind == "none"
    assert out.designation is None
    assert not out.matched


def test_empty_dataset_never_matches():
    assert verify(Query(fact1="Sun is a star", fact2="Sun is a planet"), []).kind == "none"


def test_threshold_is_exclusive():
    query = Query(fact1="The sun is a star.", fact2="The sun is a planet.")
    score, _ = score_record(query, SUN[0])

    assert verify(query, SUN, threshold=score).kind == "none"
    assert verify(query, SUN, threshold=score - 1e-9).kind == "approximate"


def test_first_exact_record_wins():
    data = [
        _rec("A", "B", "fact1"),
        _rec("B", "A", "fact1"),
    ]
    out = verify(Query(fact1="A", fact2="B"), data)
    assert out.record_index == 0
    assert out.designation == "fact1"


def test_exact_pass_takes_precedence_over_better_scoring_order():
    data = [
        _rec("Sun is a stars", "Sun is a planet", "fact2"),
        _rec("Sun is a star", "Sun is a planet", "fact1"),
    ]
    out = verify(Query(fact1="Sun is a star", fact2="Sun is a planet"), data)
    assert out.kind == "exact"
    assert out.record_index == 1


def test_best_approximate_record_wins_and_first_seen_breaks_ties():
    data = [
        _rec("Cats are mammals", "Cats are reptiles", "fact1"),
        _rec("Cats are mammals", "Cats are reptiles", "fact2"),
        _rec("Dogs bark", "Dogs meow", "fact1"),
    ]
    out = verify(Query(fact1="Cats are mammals!", fact2="Cats are reptiles!"), data)
    assert out.kind == "approximate"
    assert out.record_index == 0
    assert out.designation == "fact1"


def test_equal_alignments_use_swapped_orientation():
    data = [_rec("abc", "abc", "fact1")]
    out = verify(Query(fact1="abd", fact2="abd"), data)
    assert out.kind == "approximate"
    assert out.designation == "fact2"


def test_designation_always_names_a_query_position():
    data = [_rec("Sun is a star", "Sun is a planet", "fact2")]
    for q in (
        Query(fact1="Sun is a star", fact2="Sun is a planet"),
        Query(fact1="Sun is a planet.", fact2="Sun is a star."),
    ):
        assert verify(q, data).designation in {"fact1", "fact2"}


def test_verify_is_idempotent():
    q = Query(fact1="The sun is a star.", fact2="The sun is a planet.")
    assert verify(q, SUN) == verify(q, SUN)
