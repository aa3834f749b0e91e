from dataclasses import dataclass

import pytest

from reqcore.query import (
    DSC,
    CommandReplacer,
    Filter,
    PaginationData,
    PaginationError,
    QueryCache,
    QueryResp,
    all_transform,
    filterate,
    paginate,
    parse_page_params,
    single_transform,
)

TITLE = "query_handler_with_transform"


@dataclass
class QueryRow:
    id: str
    p2: str
    data: str


@dataclass
class QueryOut:
    id: str
    api: str
    name: str
    address: str


def _translate(rows, pd):
    result = [QueryOut(r.id, TITLE, r.p2, r.data) for r in rows]
    result = filterate(
        pd, result, lambda f: (lambda r: r.address == "filtered")
    )
    total = len(result)
    page = paginate(pd, result, lambda field: (lambda r: r.id))
    return QueryResp(total_rows=total, resp=page)


_IDS = ["1", "4", "7", "a1", "a4", "a7", "b1", "b4", "b7", "c1", "c4",
        "c7", "d1", "d4", "d7", "e1", "e4", "e7", "f1", "f4", "f7"]
_TAILS = [("2", "3"), ("5", "6"), ("8", "9")]


def _rows(filtered=()):
    rows = []
    for index, row_id in enumerate(_IDS):
        p2, data = _TAILS[index % 3]
        rows.append(QueryRow(row_id, p2, "filtered" if row_id in filtered else data))
    return rows


def test_transform_without_pagination():
    rows = [QueryRow("1", "2", "3"), QueryRow("4", "5", "6")]
    out = _translate(rows, PaginationData())
    assert out.total_rows == 2
    assert out.resp == [
        QueryOut("1", TITLE, "2", "3"),
        QueryOut("4", TITLE, "5", "6"),
    ]


def test_transform_with_pagination():
    out = _translate(_rows(), PaginationData(start=0, end=12))
    assert out.total_rows == 21
    assert len(out.resp) == 12
    assert QueryOut("1", TITLE, "2", "3") in out.resp
    assert QueryOut("c7", TITLE, "8", "9") in out.resp
    assert QueryOut("4", TITLE, "5", "6") in out.resp


def test_transform_with_pagination_and_filter():
    pd = PaginationData(start=0, end=12, filters="address ne filtered ")
    out = _translate(_rows(filtered={"a7", "c4"}), pd)
    assert out.total_rows == 19
    assert QueryOut("1", TITLE, "2", "3") in out.resp
    assert QueryOut("c7", TITLE, "8", "9") in out.resp
    assert QueryOut("4", TITLE, "5", "6") in out.resp
    assert QueryOut("a7", TITLE, "8", "filtered") not in out.resp
    assert QueryOut("c4", TITLE, "5", "filtered") not in out.resp


def test_filterate_passes_filter_parts():
    seen = []

    def make(f):
        seen.append(f)
        return lambda r: r == f.value

    result = filterate(PaginationData(filters="x eq 2 y and z ne 3 w"), [1, 2, 3], make)
    assert result == [1]
    assert seen == [Filter("x", "eq", "2", "y"), Filter("z", "ne", "3", "w")]


def test_filterate_empty_filters_keeps_data():
    assert filterate(PaginationData(), [3, 1], lambda f: lambda r: True) == [3, 1]


def test_filterate_short_clause_raises():
    with pytest.raises(PaginationError):
        filterate(PaginationData(filters="a eq"), [1], lambda f: lambda r: False)


def test_paginate_sort_and_desc():
    data = [{"n": 3}, {"n": 1}, {"n": 2}]
    pd = PaginationData(sort="n", order=DSC)
    result = paginate(pd, data, lambda f: (lambda r: r[f]))
    assert result == [{"n": 3}, {"n": 2}, {"n": 1}]
    assert data == [{"n": 3}, {"n": 1}, {"n": 2}]


def test_paginate_window_and_clamps():
    data = list(range(10))
    key = lambda f: (lambda r: r)  # noqa: E731
    assert paginate(PaginationData(start=2, end=5), data, key) == [2, 3, 4]
    assert paginate(PaginationData(start=-3, end=2), data, key) == [0, 1]
    assert paginate(PaginationData(start=5, end=2), data, key) == []
    assert paginate(PaginationData(start=8, end=50), data, key) == [8, 9]
    assert paginate(PaginationData(), data, key) == data


def test_paginate_single_row_zero_window_is_empty():
    assert paginate(PaginationData(), ["only"], lambda f: (lambda r: r)) == []


def test_single_and_all_transform():
    assert single_transform(["a", "b"]) == QueryResp(total_rows=1, resp=["a"])
    assert all_transform(["a", "b"]) == QueryResp(total_rows=2, resp=["a", "b"])
    with pytest.raises(ValueError):
        single_transform([])


def test_command_replacer_first_token_only():
    replacer = CommandReplacer(
        token="#", builder=lambda a: f"Start={a.start} and End={a.end}"
    )
    out = replacer.replace("select * from t where # and #", PaginationData(start=0, end=12))
    assert out == "select * from t where Start=0 and End=12 and #"


def test_query_cache_hit_and_expiry():
    now = [100.0]
    cache = QueryCache(title="q", max_age=10, clock=lambda: now[0])
    assert cache.key(["1", "3"]) == "q-[1 3]"
    assert cache.check(["1"]) is None
    cache.store(["1"], ["row"])
    now[0] = 105.0
    assert cache.check(["1"]) == ["row"]
    assert cache.check(["2"]) is None
    now[0] = 120.0
    assert cache.check(["1"]) is None
    now[0] = 100.0
    assert cache.check(["1"]) is None


def test_parse_page_params_defaults_and_values():
    assert parse_page_params({}) == {"page": 1, "size": 10}
    assert parse_page_params({"page": "3", "size": "50"}) == {"page": 3, "size": 50}


@pytest.mark.parametrize(
    "query, message",
    [
        ({"page": "x"}, "page number must be an integer"),
        ({"page": "-1"}, "page number must be positive"),
        ({"size": "1.5"}, "page size must be an integer"),
        ({"size": "5"}, "page size must be between 10 and 100"),
        ({"size": "101"}, "page size must be between 10 and 100"),
    ],
)
def test_parse_page_params_errors(query, message):
    with pytest.raises(PaginationError) as info:
        parse_page_params(query)
    assert info.value.message == message
    assert info.value.status == 400


def test_parse_page_params_custom_names():
    result = parse_page_params({"p": "0"}, "p", "s", "1", "20", 5, 30)
    assert result == {"p": 0, "s": 20}