from __future__ import annotations

import io
import logging
import pathlib
import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

logger = logging.getLogger(__name__)

CGPA_COLUMN = "What is your CGPA?"
YEAR_COLUMN = "Your current year of Study"
DEPRESSION_COLUMN = "Do you have Depression?"
ANXIETY_COLUMN = "Do you have Anxiety?"
PANIC_ATTACK_COLUMN = "Do you have Panic attack?"
TREATMENT_COLUMN = "Did you seek any specialist for a treatment?"

REQUIRED_COLUMNS = (
    CGPA_COLUMN,
    YEAR_COLUMN,
    DEPRESSION_COLUMN,
    ANXIETY_COLUMN,
    PANIC_ATTACK_COLUMN,
    TREATMENT_COLUMN,
)

YEARS_OF_STUDY = (1, 2, 3, 4)

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")
_YEAR_LABEL = re.compile(r"^\s*(?:year\s*)?([1-4])\s*$", re.IGNORECASE)


class DatasetFormatError(Exception):
    """Raised when the survey dataset cannot be read or lacks required columns."""


@dataclass(frozen=True)
class Record:
    """One survey respondent."""

    depression: bool
    anxiety: bool
    panic_attack: bool
    cgpa: Optional[float]
    year_of_study: Optional[int]
    sought_treatment: bool


def parse_yes_no(value: object) -> bool:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "yes"


def parse_cgpa(value: object) -> Optional[float]:
    """
    Read the leading decimal number of a CGPA cell.

    The cleaned survey stores ranges such as ``"3.00 - 3.49"``; their lower bound
    is used. Returns None when the text does not start with a number.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return None if pd.isna(value) else float(value)
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def parse_year(value: object) -> Optional[int]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        year = int(value)
        return year if year in YEARS_OF_STUDY and year == value else None
    match = _YEAR_LABEL.match(str(value))
    if not match:
        return None
    return int(match.group(1))


@dataclass
class SurveyDataset:
    """
    Keeps the normalised dataframe and the typed records in sync.

    The dataframe carries canonical columns `depression`, `anxiety`, `panic_attack`,
    `cgpa`, `year_of_study` and `sought_treatment`; unparseable cells are NaN.
    """

    df: pd.DataFrame
    records: Tuple[Record, ...]

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "SurveyDataset":
        records = tuple(
            Record(
                depression=bool(row.depression),
                anxiety=bool(row.anxiety),
                panic_attack=bool(row.panic_attack),
                cgpa=None if pd.isna(row.cgpa) else float(row.cgpa),
                year_of_study=None if pd.isna(row.year_of_study) else int(row.year_of_study),
                sought_treatment=bool(row.sought_treatment),
            )
            for row in df.itertuples(index=False)
        )
        return cls(df=df, records=records)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    @property
    def malformed_cgpa_rows(self) -> int:
        return int(self.df["cgpa"].isna().sum())

    @property
    def malformed_year_rows(self) -> int:
        return int(self.df["year_of_study"].isna().sum())


def _normalise_dataframe(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Map the survey headers to canonical columns and parse every field.
    """
    raw = raw.rename(columns=lambda col: str(col).strip())
    missing = set(REQUIRED_COLUMNS) - set(raw.columns)
    if missing:
        raise DatasetFormatError(f"Missing required columns: {', '.join(sorted(missing))}")

    normalised = pd.DataFrame(
        {
            "depression": raw[DEPRESSION_COLUMN].map(parse_yes_no).astype(bool),
            "anxiety": raw[ANXIETY_COLUMN].map(parse_yes_no).astype(bool),
            "panic_attack": raw[PANIC_ATTACK_COLUMN].map(parse_yes_no).astype(bool),
            "cgpa": raw[CGPA_COLUMN].map(parse_cgpa).astype(float),
            "year_of_study": raw[YEAR_COLUMN].map(parse_year).astype("Int64"),
            "sought_treatment": raw[TREATMENT_COLUMN].map(parse_yes_no).astype(bool),
        }
    )

    bad_cgpa = normalised.index[normalised["cgpa"].isna()]
    for idx in bad_cgpa:
        logger.debug("Row %d: CGPA %r is not numeric.", idx, raw.at[idx, CGPA_COLUMN])
    if len(bad_cgpa):
        logger.warning("%d row(s) have a non-numeric CGPA; they are left out of CGPA bins.", len(bad_cgpa))

    bad_year = int(normalised["year_of_study"].isna().sum())
    if bad_year:
        logger.warning("%d row(s) have an unrecognised year of study; they are left out of the grid.", bad_year)

    return normalised.reset_index(drop=True)


def load_dataset_from_csv(file_bytes: bytes) -> SurveyDataset:
    """
    Load the survey CSV into a dataframe and typed records.
    """
    buffer = io.BytesIO(file_bytes)
    try:
        raw = pd.read_csv(buffer, dtype=str, keep_default_na=False)
    except EmptyDataError as exc:
        raise DatasetFormatError("The dataset file is empty.") from exc
    except ParserError:
        buffer.seek(0)
        try:
            raw = pd.read_csv(buffer, dtype=str, keep_default_na=False, sep=None, engine="python")
        except ParserError as exc_second:
            raise DatasetFormatError(
                "Unable to parse CSV content. Ensure the file uses a consistent delimiter (e.g., comma or semicolon) "
                "and that embedded commas are quoted."
            ) from exc_second
        except ValueError as exc_second:
            raise DatasetFormatError(f"Unable to read CSV content: {exc_second}") from exc_second
    except UnicodeDecodeError as exc:
        raise DatasetFormatError(f"The dataset file is not valid UTF-8 text: {exc}") from exc
    except ValueError as exc:
        raise DatasetFormatError(f"Unable to read CSV content: {exc}") from exc
    dataset = SurveyDataset.from_dataframe(_normalise_dataframe(raw))
    logger.info("Loaded %d survey responses.", len(dataset))
    return dataset


def load_dataset_from_path(path: Union[str, pathlib.Path]) -> SurveyDataset:
    path = pathlib.Path(path)
    try:
        file_bytes = path.read_bytes()
    except OSError as exc:
        raise DatasetFormatError(f"Unable to read dataset at {path}: {exc}") from exc
    return load_dataset_from_csv(file_bytes)
