"""
Tests for the per-chart aggregation strategies.
"""

from datetime import datetime

import pytest

from core.errors import UnknownChartTypeError
from core.models import AggregateRow, ChartType, FieldMapping
from skills.build_view import (
    aggregate,
    aggregate_categorical,
    collapse_top_n,
    fill_matrix,
    filter_numeric_pairs,
    group_time_series,
)
from skills.samples import generate_sales


class TestCategoricalSum:
    """Tests for bar/pie grouping."""

    def test_tie_keeps_first_seen_order(self):
        records = [{"cat": "A", "v": 10}, {"cat": "A", "v": 20}, {"cat": "B", "v": 30}]
        rows = aggregate_categorical(records, "cat", "v")
        assert [(r.category, r.value, r.percentage) for r in rows] == [
            ("A", 30.0, 50.0),
            ("B", 30.0, 50.0),
        ]
        assert rows[0].count == 2
        assert rows[0].source_records == records[:2]

    def test_sorted_descending(self):
        records = [{"c": "x", "v": 1}, {"c": "y", "v": 5}, {"c": "z", "v": 3}]
        rows = aggregate_categorical(records, "c", "v")
        assert [r.category for r in rows] == ["y", "z", "x"]

    def test_percentages_sum_to_100(self):
        rows = aggregate_categorical(generate_sales(), "category", "sales")
        assert sum(r.percentage for r in rows) == pytest.approx(100.0, abs=1e-6)
        assert sum(r.count for r in rows) == 100

    def test_null_and_text_values_count_as_zero(self):
        records = [{"c": "a", "v": None}, {"c": "a", "v": "n/a"}, {"c": "b", "v": 4}]
        rows = aggregate_categorical(records, "c", "v")
        assert [(r.category, r.value, r.count) for r in rows] == [("b", 4.0, 1), ("a", 0.0, 2)]

    def test_null_category_is_its_own_group(self):
        records = [{"c": None, "v": 1}, {"v": 2}, {"c": "a", "v": 1}]
        rows = aggregate_categorical(records, "c", "v")
        assert rows[0].category is None
        assert rows[0].value == 3.0

    def test_numbers_and_dates_group_by_value(self):
        records = [
            {"c": 1, "v": 1}, {"c": 1.0, "v": 1},
            {"c": datetime(2023, 1, 1), "v": 1}, {"c": datetime(2023, 1, 1), "v": 1},
        ]
        rows = aggregate_categorical(records, "c", "v")
        assert [r.count for r in rows] == [2, 2]

    def test_zero_total(self):
        rows = aggregate_categorical([{"c": "a", "v": 0}, {"c": "b", "v": 0}], "c", "v")
        assert [r.percentage for r in rows] == [0.0, 0.0]

    def test_empty(self):
        assert aggregate_categorical([], "c", "v") == []


class TestCollapseTopN:
    """Tests for folding small pie slices into 'Others'."""

    @pytest.fixture
    def twenty_rows(self):
        records = [{"c": f"cat{i:02d}", "v": 20 - i} for i in range(20)]
        return aggregate_categorical(records, "c", "v")

    def test_collapses_to_fifteen(self, twenty_rows):
        rows = collapse_top_n(twenty_rows)
        assert len(rows) == 15
        assert rows[:14] == twenty_rows[:14]

    def test_others_row(self, twenty_rows):
        others = collapse_top_n(twenty_rows)[-1]
        smallest = twenty_rows[-6:]
        assert others.category == "Others"
        assert others.count == sum(r.count for r in smallest)
        assert others.value == sum(r.value for r in smallest) == 21
        assert others.percentage == pytest.approx(21 / 210 * 100)
        assert len(others.source_records) == 6

    def test_small_inputs_unchanged(self):
        rows = [AggregateRow(category=str(i), value=1) for i in range(15)]
        assert collapse_top_n(rows) == rows

    def test_custom_threshold_and_label(self, twenty_rows):
        rows = collapse_top_n(twenty_rows, max_slices=5, label="Rest")
        assert len(rows) == 5
        assert rows[-1].category == "Rest"

    def test_pie_dispatch_collapses(self):
        records = [{"c": f"k{i}", "v": i + 1} for i in range(30)]
        rows = aggregate("pie", records, FieldMapping(label="c", value="v"))
        assert len(rows) == 15
        assert sum(r.percentage for r in rows) == pytest.approx(100.0)


class TestTimeSeries:
    """Tests for line chart partitioning."""

    @pytest.fixture
    def readings(self):
        return [
            {"d": datetime(2023, 1, 3), "v": 3, "s": "a"},
            {"d": datetime(2023, 1, 1), "v": 1, "s": "b"},
            {"d": None, "v": 9, "s": "a"},
            {"d": datetime(2023, 1, 2), "v": None, "s": "a"},
            {"d": datetime(2023, 1, 1), "v": 2, "s": "a"},
            {"d": datetime(2023, 1, 2), "v": 4, "s": "b"},
        ]

    def test_single_partition(self, readings):
        parts = group_time_series(readings, "d", "v")
        assert len(parts) == 1
        assert parts[0].key is None
        assert [r["v"] for r in parts[0].values] == [1, 2, 4, 3]

    def test_grouped_partitions(self, readings):
        parts = group_time_series(readings, "d", "v", "s")
        assert [p.key for p in parts] == ["a", "b"]
        assert [r["v"] for r in parts[0].values] == [2, 3]
        assert [r["v"] for r in parts[1].values] == [1, 4]

    def test_date_strings_and_numbers(self):
        records = [{"t": "2023-02-01", "v": 1}, {"t": "2023-01-01", "v": 2}]
        assert [r["v"] for r in group_time_series(records, "t", "v")[0].values] == [2, 1]
        records = [{"t": 30, "v": 1}, {"t": 10, "v": 2}]
        assert [r["v"] for r in group_time_series(records, "t", "v")[0].values] == [2, 1]

    def test_unreadable_x_sorts_last(self):
        records = [{"t": "soon", "v": 1}, {"t": datetime(2023, 1, 1), "v": 2}]
        assert [r["v"] for r in group_time_series(records, "t", "v")[0].values] == [2, 1]

    def test_empty(self):
        assert group_time_series([], "d", "v") == []
        assert group_time_series([{"d": None, "v": 1}], "d", "v") == []


class TestNumericPairs:
    """Tests for scatter filtering."""

    def test_keeps_numeric_pairs_in_order(self):
        records = [
            {"x": 1, "y": 2},
            {"x": None, "y": 2},
            {"x": "3", "y": 2},
            {"x": 4, "y": float("nan")},
            {"x": 5.5, "y": -1},
            {"x": True, "y": 1},
        ]
        assert filter_numeric_pairs(records, "x", "y") == [records[0], records[4]]

    def test_empty(self):
        assert filter_numeric_pairs([], "x", "y") == []


class TestMatrixFill:
    """Tests for heatmap cells."""

    @pytest.fixture
    def grid(self):
        return [
            {"day": "Tue", "slot": "pm", "n": 4},
            {"day": "Mon", "slot": "am", "n": 2},
            {"day": "Mon", "slot": "am", "n": 6},
            {"day": "Tue", "slot": "am", "n": 1},
            {"day": "Wed", "slot": None, "n": 5},
            {"day": "Wed", "slot": "pm", "n": "?"},
        ]

    def test_full_cross_product(self, grid):
        cells = fill_matrix(grid, "day", "slot", "n")
        assert len(cells) == 2 * 2
        assert [(c.x, c.y) for c in cells] == [
            ("Mon", "am"), ("Tue", "am"),
            ("Mon", "pm"), ("Tue", "pm"),
        ]

    def test_averages_and_empty_cells(self, grid):
        cells = {(c.x, c.y): c for c in fill_matrix(grid, "day", "slot", "n")}
        assert cells[("Mon", "am")].value == 4.0
        assert cells[("Mon", "am")].count == 2
        assert len(cells[("Mon", "am")].source_records) == 2
        assert cells[("Mon", "pm")].value == 0.0
        assert cells[("Mon", "pm")].count == 0
        assert cells[("Mon", "pm")].source_records == []

    def test_length_is_product_of_axes(self):
        records = generate_sales()
        cells = fill_matrix(records, "category", "region", "sales")
        xs = {r["category"] for r in records}
        ys = {r["region"] for r in records}
        assert len(cells) == len(xs) * len(ys)
        assert sum(c.count for c in cells) == len(records)

    def test_numeric_axes_sort_as_text(self):
        records = [{"x": 10, "y": "a", "v": 1}, {"x": 9, "y": "a", "v": 1}]
        assert [c.x for c in fill_matrix(records, "x", "y", "v")] == [10, 9]

    def test_empty(self):
        assert fill_matrix([], "x", "y", "v") == []


class TestAggregateDispatch:
    """Tests for the chart type dispatch."""

    def test_bar(self):
        records = [{"c": "a", "v": 1}]
        rows = aggregate(ChartType.bar, records, FieldMapping(x="c", y="v"))
        assert rows[0].category == "a"

    def test_scatter(self):
        records = [{"a": 1, "b": 2}, {"a": "x", "b": 2}]
        assert aggregate("scatter", records, FieldMapping(x="a", y="b")) == records[:1]

    def test_heatmap(self):
        records = [{"a": "p", "b": "q", "v": 3}]
        cells = aggregate("heatmap", records, FieldMapping(x="a", y="b", value="v"))
        assert cells[0].value == 3.0

    @pytest.mark.parametrize("chart_type", list(ChartType))
    def test_empty_input(self, chart_type):
        mapping = FieldMapping(x="a", y="b", label="a", value="b")
        assert aggregate(chart_type, [], mapping) == []

    def test_unknown_chart_type(self):
        with pytest.raises(UnknownChartTypeError):
            aggregate("radar", [], FieldMapping())
