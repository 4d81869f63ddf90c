from __future__ import annotations

import random

import numpy as np
import pytest

from conftest import make_record
from mental_health_views.frequency import (
    CGPA_BIN_LABELS,
    UNKNOWN_BIN,
    FrequencyCell,
    aggregate_grid,
    aggregate_regions,
    cgpa_bin,
    cgpa_bin_index,
    grid_matrix,
)
from mental_health_views.regions import (
    REGION_CODES,
    classify,
    is_selectable_region,
    region_label,
    region_members,
    region_title,
)


@pytest.mark.parametrize(
    "flags, code",
    [
        ((True, False, True), "101"),
        ((False, False, False), "000"),
        ((True, True, True), "111"),
        ((False, True, False), "010"),
    ],
)
def test_classify_concatenates_flags_in_fixed_order(flags, code):
    depression, anxiety, panic = flags
    assert classify(make_record(depression=depression, anxiety=anxiety, panic_attack=panic)) == code


def test_region_helpers():
    assert len(REGION_CODES) == 7
    assert not is_selectable_region("000")
    assert not is_selectable_region("1010")
    assert not is_selectable_region(None)
    assert is_selectable_region("011")
    assert region_label("110") == "Depression & Anxiety"
    assert region_title(None) == "All students academic performance"
    assert region_title("111") == "All three conditions students academic performance"
    assert region_members("101") == (True, False, True)


@pytest.mark.parametrize(
    "cgpa, label",
    [
        (0.0, "0-1.99"),
        (1.99, "0-1.99"),
        (2.0, "2.0-2.49"),
        (2.49, "2.0-2.49"),
        (2.5, "2.5-2.99"),
        (3.0, "3.0-3.49"),
        (3.2, "3.0-3.49"),
        (3.5, "3.5-4.0"),
        (4.0, "3.5-4.0"),
        (4.2, UNKNOWN_BIN),
        (-0.1, UNKNOWN_BIN),
        (None, None),
    ],
)
def test_cgpa_bin_boundaries(cgpa, label):
    assert cgpa_bin(cgpa) == label


def test_cgpa_bin_index_orders_unknown_last():
    assert [cgpa_bin_index(label) for label in CGPA_BIN_LABELS] == [0, 1, 2, 3, 4]
    assert cgpa_bin_index(UNKNOWN_BIN) == 5


def test_region_counts_cover_every_record(sample_records):
    counts = aggregate_regions(sample_records)

    assert sum(counts.values()) == len(sample_records)
    assert set(REGION_CODES) <= set(counts)
    assert counts["101"] == 1
    assert counts["111"] == 1
    assert counts["000"] == 1


def test_region_counts_report_absent_codes_as_zero():
    counts = aggregate_regions([])

    assert all(counts[code] == 0 for code in REGION_CODES)


def test_scenario_single_record():
    record = make_record(depression=True, anxiety=False, panic_attack=True, cgpa=3.2, year=2, treatment=False)

    counts = aggregate_regions([record])
    cells = aggregate_grid([record], "101")

    assert counts["101"] == 1
    assert all(count == 0 for code, count in counts.items() if code != "101")
    non_zero = [cell for cell in cells if cell.count]
    assert non_zero == [FrequencyCell(cgpa_bin="3.0-3.49", year=2, count=1)]


def test_grid_is_dense(sample_records):
    cells = aggregate_grid(sample_records)

    assert len(cells) == 20
    assert [(cell.cgpa_bin, cell.year) for cell in cells[:4]] == [("0-1.99", year) for year in (1, 2, 3, 4)]


def test_grid_totals_match_region_counts(sample_records):
    counts = aggregate_regions(sample_records)

    assert sum(cell.count for cell in aggregate_grid(sample_records, None)) == len(sample_records)
    for code in REGION_CODES:
        assert sum(cell.count for cell in aggregate_grid(sample_records, code)) == counts[code]


def test_grid_is_order_independent_and_idempotent(sample_records):
    shuffled = list(sample_records)
    random.Random(7).shuffle(shuffled)

    first = aggregate_grid(sample_records, "100")
    assert aggregate_grid(sample_records, "100") == first
    assert aggregate_grid(shuffled, "100") == first
    assert aggregate_regions(shuffled) == aggregate_regions(sample_records)


def test_grid_drops_unrecognised_years_instead_of_bucketing_them():
    records = [make_record(cgpa=3.2, year=None), make_record(cgpa=3.2, year=1)]

    cells = aggregate_grid(records)

    assert sum(cell.count for cell in cells) == 1
    assert all(cell.cgpa_bin != UNKNOWN_BIN for cell in cells)


def test_grid_skips_missing_and_out_of_range_cgpa():
    records = [make_record(cgpa=None), make_record(cgpa=5.0), make_record(cgpa=2.2)]

    assert sum(cell.count for cell in aggregate_grid(records)) == 1


def test_grid_matrix_layout():
    cells = aggregate_grid([make_record(cgpa=3.6, year=4), make_record(cgpa=0.5, year=1)])

    matrix = grid_matrix(cells)

    assert matrix.shape == (5, 4)
    assert matrix[4, 3] == 1
    assert matrix[0, 0] == 1
    assert int(np.sum(matrix)) == 2
