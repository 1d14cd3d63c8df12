from decimal import Decimal

import numpy as np
import pytest

from sqlchart.table import QueryTable, Series, TableShapeError, reshape


FACTS = [["MEASURE", "JAN", "FEB"], ["A", 10, 20], ["B", 7, 22]]


def test_reshape_example():
    groups, series = reshape(FACTS)
    assert groups == ["JAN", "FEB"]
    assert [s.model_dump() for s in series] == [
        {"name": "A", "items": [10, 20]},
        {"name": "B", "items": [7, 22]},
    ]


def test_series_items_match_group_count():
    rows = [["S", "g1", "g2", "g3", "g4"]] + [[f"s{i}", i, i + 1, i + 2, i + 3] for i in range(5)]
    groups, series = reshape(rows)
    assert len(groups) == len(rows[0]) - 1
    assert all(len(s.items) == len(groups) for s in series)


def test_header_only_result_has_no_series():
    groups, series = reshape([["MEASURE", "JAN", "FEB"]])
    assert groups == ["JAN", "FEB"]
    assert series == []


def test_single_column_result_has_no_groups():
    groups, series = reshape([["MEASURE"], ["A"], ["B"]])
    assert groups == []
    assert [s.name for s in series] == ["A", "B"]
    assert all(s.items == [] for s in series)


def test_empty_result():
    assert reshape([]) == ([], [])


def test_ragged_rows_are_rejected():
    with pytest.raises(TableShapeError):
        reshape([["MEASURE", "JAN", "FEB"], ["A", 1]])


def test_ragged_rows_are_padded_when_not_strict():
    groups, series = reshape([["MEASURE", "JAN", "FEB"], ["A", 1], ["B", 1, 2, 3]], strict=False)
    assert series[0].items == [1.0, None]
    assert series[1].items == [1.0, 2.0]


def test_database_scalars_are_converted():
    table = QueryTable.from_rows([
        ["MEASURE", np.str_("JAN"), "FEB"],
        [np.str_("A"), Decimal("1.5"), np.int64(3)],
        ["B", None, "4.25"],
        ["C", "n/a", float("nan")],
    ])
    assert table.groups() == ["JAN", "FEB"]
    series = table.series()
    assert series[0].items == [1.5, 3.0]
    assert series[1].items == [None, 4.25]
    assert series[2].items == [None, None]


def test_series_labels_are_strings():
    _, series = reshape([["YEAR", "Q1"], [2024, 5], [None, 6]])
    assert [s.name for s in series] == ["2024", ""]
    assert isinstance(series[0], Series)
