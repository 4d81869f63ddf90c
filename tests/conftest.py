from __future__ import annotations

import csv
import io
import logging
import os
from typing import Dict, Iterable, Optional

import pytest
from PyQt6 import QtWidgets

from mental_health_views.records import (
    ANXIETY_COLUMN,
    CGPA_COLUMN,
    DEPRESSION_COLUMN,
    PANIC_ATTACK_COLUMN,
    REQUIRED_COLUMNS,
    TREATMENT_COLUMN,
    YEAR_COLUMN,
    Record,
)


def make_record(
    depression: bool = False,
    anxiety: bool = False,
    panic_attack: bool = False,
    cgpa: Optional[float] = 3.2,
    year: Optional[int] = 1,
    treatment: bool = False,
) -> Record:
    return Record(
        depression=depression,
        anxiety=anxiety,
        panic_attack=panic_attack,
        cgpa=cgpa,
        year_of_study=year,
        sought_treatment=treatment,
    )


def survey_csv(rows: Iterable[Dict[str, str]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(REQUIRED_COLUMNS))
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


def survey_row(
    depression: str = "No",
    anxiety: str = "No",
    panic: str = "No",
    cgpa: str = "3.00 - 3.49",
    year: str = "year 1",
    treatment: str = "No",
) -> Dict[str, str]:
    return {
        DEPRESSION_COLUMN: depression,
        ANXIETY_COLUMN: anxiety,
        PANIC_ATTACK_COLUMN: panic,
        CGPA_COLUMN: cgpa,
        YEAR_COLUMN: year,
        TREATMENT_COLUMN: treatment,
    }


@pytest.fixture
def sample_records():
    return [
        make_record(depression=True, panic_attack=True, cgpa=3.2, year=2),
        make_record(anxiety=True, cgpa=3.6, year=1, treatment=True),
        make_record(depression=True, anxiety=True, panic_attack=True, cgpa=2.1, year=3),
        make_record(cgpa=1.5, year=4),
        make_record(depression=True, cgpa=3.9, year=1, treatment=True),
        make_record(anxiety=True, panic_attack=True, cgpa=2.7, year=2),
        make_record(depression=True, anxiety=True, cgpa=3.4, year=3),
        make_record(panic_attack=True, cgpa=3.0, year=4),
    ]


@pytest.fixture(autouse=True)
def propagate_package_logs(monkeypatch):
    # The window module routes the package logger to its own file only.
    monkeypatch.setattr(logging.getLogger("mental_health_views"), "propagate", True)


@pytest.fixture(scope="session")
def qt_app():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app
