"""Tests for query segmentation."""

from catalog_search.query_parser import QueryPlan, classify_token, parse_query


def test_empty_query_gives_empty_plan():
    plan = parse_query("")

    assert plan == QueryPlan()
    assert plan.normalized == ""
    assert plan.is_empty
    assert parse_query("   ").is_empty


def test_mixed_query_is_split_into_categories():
    plan = parse_query('автомат 16А "русский свет"  MVA40-1-016-C')

    assert plan.exact_phrases == {"русский свет"}
    assert plan.normalized == "автомат 16А MVA40-1-016-C"
    assert plan.numeric_tokens == {"16А", "1", "016"}
    assert plan.code_tokens == {"MVA40"}
    assert plan.plain_words == {"автомат", "C"}


def test_quoted_tokens_are_not_reprocessed():
    plan = parse_query('"16A 220V"')

    assert plan.exact_phrases == {"16A 220V"}
    assert plan.normalized == ""
    assert not plan.numeric_tokens
    assert not plan.plain_words


def test_duplicates_collapse():
    plan = parse_query("220V cable 220V cable")

    assert plan.numeric_tokens == {"220V"}
    assert plan.plain_words == {"cable"}


def test_separators_never_produce_empty_tokens():
    plan = parse_query("розетка,,; --__.. белая")

    assert plan.plain_words == {"розетка", "белая"}
    assert "" not in plan.plain_words


def test_token_classification_priority():
    assert classify_token("16А") == "numeric"
    assert classify_token("2,5мм") == "numeric"
    assert classify_token("220") == "numeric"
    assert classify_token("ABC123") == "code"
    assert classify_token("ab1") == "code"
    assert classify_token("a1") == "word"
    assert classify_token("кабель1") == "word"
    assert classify_token("cable") == "word"


def test_categories_partition_the_tokens():
    plan = parse_query("IEK ВА47-29 3P 16А C16 кабель ABC-1")
    categories = [plan.numeric_tokens, plan.code_tokens, plan.plain_words]

    for index, left in enumerate(categories):
        for right in categories[index + 1:]:
            assert not left & right
    assert set().union(*categories) == {"IEK", "ВА47", "29", "3P", "16А", "C16", "кабель", "ABC", "1"}


def test_plan_serializes_for_diagnostics():
    data = parse_query("b a 12").to_dict()

    assert data["words"] == ["a", "b"]
    assert data["numbers"] == ["12"]
    assert data["original"] == "b a 12"
