"""Tests for the relational fallback search path."""

import pytest
from sqlalchemy import text

from catalog_search.errors import RelationalRequestFailed
from catalog_search.models import SortMode
from catalog_search.relational import RelationalSearchPath, build_match_condition, like_escape, order_clause


def test_exact_identifier_scores_highest_and_sorts_first(catalog_db):
    result = RelationalSearchPath(catalog_db).search("ABC-1", page=1, limit=20)

    assert result.total == 2
    assert result.items[0]["external_id"] == "ABC-1"
    assert result.items[0]["relevance_score"] == 1000.0
    assert result.items[1]["external_id"] == "ABC-10"
    assert result.items[1]["relevance_score"] == 100.0


def test_code_prefix_scores_ninety(catalog_db):
    result = RelationalSearchPath(catalog_db).search("123", page=1, limit=20)

    assert result.total == 1
    assert result.items[0]["sku"] == "123-Z"
    assert result.items[0]["relevance_score"] == 90.0
    assert result.variants == ("123",)


def test_rows_carry_brand_and_series_names(catalog_db):
    result = RelationalSearchPath(catalog_db).search("Z-9", page=1, limit=20)

    assert result.items[0]["brand_name"] == "Legrand"
    assert result.items[0]["series_name"] == "Basic"
    assert result.items[0]["relevance_score"] == 1000.0


def test_description_and_brand_substrings_match(catalog_db):
    path = RelationalSearchPath(catalog_db)

    assert [row["external_id"] for row in path.search("белая", 1, 20).items] == ["Z-9"]
    assert [row["external_id"] for row in path.search("Karat", 1, 20).items] == ["Q-5"]


def test_wrong_layout_query_matches_through_variant(catalog_db):
    """"руддщ" finds "Hello lamp" via its layout variant but only earns the lowest tier."""

    result = RelationalSearchPath(catalog_db).search("руддщ", page=1, limit=20)

    assert result.variants == ("руддщ", "hello", "ruddsch")
    assert [row["external_id"] for row in result.items] == ["Q-5"]
    assert result.items[0]["relevance_score"] == 1.0


def test_listing_returns_every_row_with_flat_score(catalog_db):
    result = RelationalSearchPath(catalog_db).search("", page=1, limit=20)

    assert result.total == 5
    assert [row["product_id"] for row in result.items] == [5, 4, 3, 2, 1]
    assert {row["relevance_score"] for row in result.items} == {1.0}
    assert result.variants == ()


def test_listing_sort_modes(catalog_db):
    path = RelationalSearchPath(catalog_db)

    by_id = path.search("", 1, 20, SortMode.EXTERNAL_ID).items
    assert [row["external_id"] for row in by_id] == ["ABC-1", "ABC-10", "Q-5", "X-777", "Z-9"]
    by_popularity = path.search("", 1, 20, SortMode.POPULARITY).items
    assert by_popularity[0]["product_id"] == 5


def test_explicit_sort_overrides_relevance(catalog_db):
    result = RelationalSearchPath(catalog_db).search("ABC", 1, 20, SortMode.EXTERNAL_ID)

    assert [row["external_id"] for row in result.items] == ["ABC-1", "ABC-10"]


def test_small_result_set_fits_on_first_page(catalog_db):
    result = RelationalSearchPath(catalog_db).search("", page=1, limit=20)

    assert len(result.items) == 5
    assert result.total == 5


@pytest.mark.parametrize(
    "page, limit, expected",
    [(1, 2, 2), (2, 2, 2), (3, 2, 1), (4, 2, 0), (10, 20, 0)],
)
def test_pagination_returns_remaining_rows(catalog_db, page, limit, expected):
    result = RelationalSearchPath(catalog_db).search("", page=page, limit=limit)

    assert len(result.items) == expected == max(0, min(limit, result.total - (page - 1) * limit))
    assert result.total == 5


def test_execution_error_propagates_as_relational_failure(empty_db):
    with pytest.raises(RelationalRequestFailed):
        RelationalSearchPath(empty_db).search("ABC-1", page=1, limit=20)


def test_match_condition_binds_every_variant():
    condition, params, variants = build_match_condition("ABC-1")

    assert len(variants) == 5
    assert condition.count("p.external_id = :exact_") == 5
    assert params["exact_0"] == "ABC-1"
    assert params["prefix_1"] == "ФИС-1%"
    assert params["search_4"] == "%ABC1%"


def test_order_clause_defaults():
    assert order_clause(SortMode.RELEVANCE, has_query=True) == "relevance_score DESC, p.name ASC, p.product_id DESC"
    assert order_clause(SortMode.RELEVANCE, has_query=False) == "p.product_id DESC"
    assert order_clause(SortMode.NAME, has_query=True) == "p.name ASC, p.product_id DESC"
    assert order_clause(SortMode.EXTERNAL_ID, has_query=False) == "p.external_id ASC, p.product_id DESC"


def test_like_wildcards_in_the_query_are_literal(catalog_db):
    path = RelationalSearchPath(catalog_db)

    percent = path.search("%", page=1, limit=20)
    assert percent.total == 0
    assert percent.variants == ("%",)
    # "_" would otherwise match the dash in "Z-9".
    assert path.search("Z_9", page=1, limit=20).total == 0
    assert like_escape("50%_off!") == "50!%!_off!!"


def test_symbol_only_variants_are_not_bound():
    condition, params, variants = build_match_condition("%")

    assert variants == ("%",)
    assert params["prefix_0"] == "!%%"
    assert params["search_0"] == "%!%%"
    assert build_match_condition("")[0] == "1=0"


def test_name_ties_page_in_a_stable_order(catalog_db):
    with catalog_db.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO products (product_id, external_id, sku, name, brand_id)"
                " VALUES (:product_id, :external_id, :external_id, 'Розетка', 3)"
            ),
            [{"product_id": 6, "external_id": "Z-10"}, {"product_id": 7, "external_id": "Z-11"}],
        )
    path = RelationalSearchPath(catalog_db)

    # "Hello lamp" and three other names sort first; the three "Розетка" rows follow.
    pages = [path.search("", page, 1, SortMode.NAME).items for page in (5, 6, 7)]
    assert [items[0]["product_id"] for items in pages] == [7, 6, 4]
    ranked = path.search("Розетка", 1, 20).items
    assert [row["product_id"] for row in ranked] == [7, 6, 4]
