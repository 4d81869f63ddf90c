from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .records import YEARS_OF_STUDY, Record
from .regions import ALL_CODES, RegionCode, classify

# (label, lower bound, upper bound); the last bin is closed on the right.
CGPA_BINS: Tuple[Tuple[str, float, float], ...] = (
    ("0-1.99", 0.0, 2.0),
    ("2.0-2.49", 2.0, 2.5),
    ("2.5-2.99", 2.5, 3.0),
    ("3.0-3.49", 3.0, 3.5),
    ("3.5-4.0", 3.5, 4.0),
)
CGPA_BIN_LABELS: Tuple[str, ...] = tuple(label for label, _, _ in CGPA_BINS)
UNKNOWN_BIN = "Unknown"


@dataclass(frozen=True)
class FrequencyCell:
    cgpa_bin: str
    year: int
    count: int


def cgpa_bin(cgpa: Optional[float]) -> Optional[str]:
    """
    Map a CGPA to its bin label.

    Values outside ``[0, 4]`` fall into ``UNKNOWN_BIN``; a missing CGPA has no bin.
    """
    if cgpa is None or np.isnan(cgpa):
        return None
    for label, low, high in CGPA_BINS:
        if low <= cgpa < high:
            return label
    if cgpa == CGPA_BINS[-1][2]:
        return CGPA_BINS[-1][0]
    return UNKNOWN_BIN


def cgpa_bin_index(label: str) -> int:
    """Ascending position of a bin label; the unknown bin sorts last."""
    try:
        return CGPA_BIN_LABELS.index(label)
    except ValueError:
        return len(CGPA_BIN_LABELS)


def aggregate_regions(records: Iterable[Record]) -> Dict[RegionCode, int]:
    counts: Dict[RegionCode, int] = {code: 0 for code in ALL_CODES}
    for record in records:
        counts[classify(record)] += 1
    return counts


def aggregate_grid(records: Iterable[Record], active_region: Optional[RegionCode] = None) -> List[FrequencyCell]:
    """
    Count records per (CGPA bin, year) pair, restricted to `active_region` when given.

    The result is dense: all bin/year combinations are present, bin-major.
    Records without a known bin or a recognised year are not counted.
    """
    buckets: Counter[Tuple[str, int]] = Counter()
    for record in records:
        if active_region is not None and classify(record) != active_region:
            continue
        label = cgpa_bin(record.cgpa)
        if label is None or label == UNKNOWN_BIN or record.year_of_study is None:
            continue
        buckets[(label, record.year_of_study)] += 1

    return [
        FrequencyCell(cgpa_bin=label, year=year, count=buckets.get((label, year), 0))
        for label in CGPA_BIN_LABELS
        for year in YEARS_OF_STUDY
    ]


def grid_matrix(cells: Sequence[FrequencyCell]) -> np.ndarray:
    """Arrange grid cells into a (bins x years) count matrix."""
    matrix = np.zeros((len(CGPA_BIN_LABELS), len(YEARS_OF_STUDY)), dtype=int)
    for cell in cells:
        row = cgpa_bin_index(cell.cgpa_bin)
        if row >= len(CGPA_BIN_LABELS) or cell.year not in YEARS_OF_STUDY:
            continue
        matrix[row, YEARS_OF_STUDY.index(cell.year)] = cell.count
    return matrix
