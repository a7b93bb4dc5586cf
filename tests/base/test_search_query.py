from datetime import date

import pytest

from ride_repository.base.exceptions import ValidationException
from ride_repository.base.fields import RIDE_FIELDS
from ride_repository.base.query import (
    MAX_PAGE,
    MAX_PAGE_SIZE,
    RideFilters,
    SearchOptions,
    SearchQueryBuilder,
    clamp_page,
    clamp_page_size,
    normalize_sort_by,
    normalize_sort_dir,
    parse_int,
)
from ride_repository.base.schema import DateColumnKind, SchemaProfile

from tests.stub_backends import CatalogBackend

ALL_COLUMNS = frozenset(spec.name for spec in RIDE_FIELDS) | {"A/A"}


def make_builder(date_kind=DateColumnKind.TEXT, columns=ALL_COLUMNS, id_column="A/A"):
    profile = SchemaProfile(
        table_name="data", id_column=id_column, columns=columns, date_kind=date_kind
    )
    return SearchQueryBuilder(CatalogBackend({}), profile)


# --- Paging and sort normalization ---


@pytest.mark.parametrize(
    "raw, expected",
    [(None, None), ("", None), ("12", 12), ("12abc", 12), (" -3", -3), ("x1", None), (7, 7), ("007", 7)],
)
def test_parse_int(raw, expected):
    assert parse_int(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 1),
        ("0", 1),
        ("-4", 1),
        ("abc", 1),
        ("3", 3),
        ("99999999999999999999", MAX_PAGE),
        ("9" * 5000, MAX_PAGE),
        ("-" + "9" * 40, 1),
    ],
)
def test_clamp_page(raw, expected):
    assert clamp_page(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 50),
        ("0", 50),
        ("abc", 50),
        ("5", 10),
        ("-20", 10),
        ("25", 25),
        ("1000", 200),
    ],
)
def test_clamp_page_size(raw, expected):
    assert clamp_page_size(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("A/A", "A/A"),
        ("TIME", "TIME"),
        ("THE_DATE", "THE_DATE"),
        (None, "THE_DATE"),
        ("PRICE", "THE_DATE"),
        ("THE_DATE; DROP TABLE data", "THE_DATE"),
    ],
)
def test_normalize_sort_by(raw, expected):
    assert normalize_sort_by(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("asc", "asc"), ("ASC", "asc"), ("desc", "desc"), ("sideways", "desc"), (None, "desc")],
)
def test_normalize_sort_dir(raw, expected):
    assert normalize_sort_dir(raw) == expected


def test_search_options_offset():
    options = SearchOptions.from_params(page="3", page_size="20")
    assert (options.page, options.page_size, options.offset) == (3, 20, 40)


# --- Filters ---


def test_filters_parse_bounds_and_blank_values():
    filters = RideFilters.from_params(
        date_from="01/05/2024",
        date_to="2024-05-31T00:00:00",
        tour_operator="  ",
        driver=" Nikos ",
    )
    assert filters.date_from == date(2024, 5, 1)
    assert filters.date_to == date(2024, 5, 31)
    assert filters.tour_operator is None
    assert filters.driver == "Nikos"


def test_filters_reject_unparseable_bound():
    with pytest.raises(ValidationException) as exc_info:
        RideFilters.from_params(date_from="next tuesday")
    assert "'from'" in exc_info.value.message


# --- Statement construction ---


def test_no_filters_has_no_where_clause():
    built = make_builder().build(SearchOptions())

    assert "WHERE" not in built.count_sql
    assert built.count_params == []
    assert built.page_params == [50, 0]
    assert built.page_sql.endswith("LIMIT ? OFFSET ?")


def test_filters_combine_with_and_in_fixed_order():
    filters = RideFilters(
        date_from=date(2024, 5, 1),
        date_to=date(2024, 5, 31),
        tour_operator="TUI",
        driver="Nikos",
        from_location="Airport",
        to_location="Hotel",
    )
    built = make_builder().build(SearchOptions(filters=filters, page=2, page_size=10))

    assert built.count_params == [
        "2024-05-01",
        "2024-05-31",
        "TUI",
        "Nikos",
        "Airport",
        "Hotel",
    ]
    assert built.page_params == built.count_params + [10, 10]
    assert '"TOUR_OPER" = ? AND "DRIVER" = ? AND "FROM" = ? AND "TO" = ?' in built.count_sql


def test_text_date_bounds_use_normalized_expression():
    filters = RideFilters(date_from=date(2024, 5, 1), date_to=date(2024, 5, 31))
    built = make_builder(DateColumnKind.TEXT).build(SearchOptions(filters=filters))

    assert 'norm("THE_DATE") >= ? AND norm("THE_DATE") <= ?' in built.count_sql


def test_native_date_upper_bound_is_exclusive_next_day():
    filters = RideFilters(date_from=date(2024, 5, 1), date_to=date(2024, 5, 31))
    built = make_builder(DateColumnKind.NATIVE).build(SearchOptions(filters=filters))

    assert '"THE_DATE" >= ? AND "THE_DATE" < next_day(?)' in built.count_sql


def test_default_order_is_date_then_time_then_id():
    built = make_builder().build(SearchOptions())
    assert (
        'ORDER BY norm("THE_DATE") DESC, "TIME" DESC, "A/A" DESC LIMIT' in built.page_sql
    )


def test_time_sort_breaks_ties_by_date_then_id():
    built = make_builder().build(SearchOptions(sort_by="TIME", sort_dir="asc"))
    assert 'ORDER BY "TIME" ASC, norm("THE_DATE") DESC, "A/A" DESC LIMIT' in built.page_sql


def test_id_sort_needs_no_extra_id_key():
    built = make_builder().build(SearchOptions(sort_by="A/A", sort_dir="asc"))
    assert 'ORDER BY "A/A" ASC, norm("THE_DATE") DESC, "TIME" DESC LIMIT' in built.page_sql


def test_time_sort_without_time_column_falls_back_to_date():
    builder = make_builder(columns=ALL_COLUMNS - {"TIME"})
    built = builder.build(SearchOptions(sort_by="TIME"))

    assert 'ORDER BY norm("THE_DATE") DESC, "A/A" DESC LIMIT' in built.page_sql
    assert '"TIME"' not in built.page_sql


def test_select_list_exposes_id_under_public_name():
    builder = make_builder(id_column="Αναγνωριστικό")
    select = builder.select_list()

    assert select.startswith('"Αναγνωριστικό" AS "A/A", ')
    assert 'COALESCE(fmt(norm("THE_DATE")), "THE_DATE") AS "THE_DATE"' in select


def test_select_list_skips_missing_columns():
    builder = make_builder(columns=ALL_COLUMNS - {"DRIVER_PRICE"})
    assert '"DRIVER_PRICE"' not in builder.select_list()
    assert '"DRIVER"' in builder.select_list()


def test_largest_page_offset_fits_signed_64_bit():
    options = SearchOptions.from_params(page="99999999999999999999", page_size="200")
    assert options.page == MAX_PAGE
    assert options.offset + MAX_PAGE_SIZE <= 2**63 - 1
