from __future__ import annotations

from typing import Dict, Optional, Tuple

from .records import Record

RegionCode = str

REGION_CODES: Tuple[RegionCode, ...] = ("100", "010", "001", "110", "101", "011", "111")
NO_CONDITION_CODE: RegionCode = "000"
ALL_CODES: Tuple[RegionCode, ...] = REGION_CODES + (NO_CONDITION_CODE,)

REGION_LABELS: Dict[RegionCode, str] = {
    "100": "Depression",
    "010": "Anxiety",
    "001": "Panic Attack",
    "110": "Depression & Anxiety",
    "101": "Depression & Panic Attack",
    "011": "Anxiety & Panic Attack",
    "111": "Depression & Anxiety & Panic Attack",
}

_REGION_TITLES: Dict[RegionCode, str] = {
    "100": "Depression students academic performance",
    "010": "Anxiety students academic performance",
    "001": "Panic Attack students academic performance",
    "110": "Depression & Anxiety students academic performance",
    "101": "Depression & Panic Attack students academic performance",
    "011": "Anxiety & Panic Attack students academic performance",
    "111": "All three conditions students academic performance",
}


def classify(record: Record) -> RegionCode:
    """Return the (depression, anxiety, panic attack) membership code of a record."""
    return "".join("1" if flag else "0" for flag in (record.depression, record.anxiety, record.panic_attack))


def is_selectable_region(code: object) -> bool:
    return isinstance(code, str) and code in REGION_LABELS


def region_label(code: RegionCode) -> str:
    return REGION_LABELS.get(code, "No condition")


def region_title(code: Optional[RegionCode]) -> str:
    if not code:
        return "All students academic performance"
    return _REGION_TITLES.get(code, "Selected students academic performance")


def region_members(code: RegionCode) -> Tuple[bool, bool, bool]:
    """Which of the three circles contain the region."""
    return tuple(digit == "1" for digit in code)  # type: ignore[return-value]
