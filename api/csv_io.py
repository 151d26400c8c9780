"""
CSV file I/O for the FastAPI backend.
Parses uploads into DataFrames, sanitizes cell values and writes exports.
"""

import re
import pandas as pd
from typing import Dict, List, Optional, Any, Tuple
from io import BytesIO
import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment
from dataclasses import dataclass
import structlog

logger = structlog.get_logger(__name__)


class CsvFormatError(ValueError):
    """Raised when an uploaded file cannot be parsed or has the wrong headers."""


@dataclass
class ColumnDefinition:
    """Definition for a single column in a CSV file."""
    name: str
    display_name: str
    data_type: str
    required: bool
    allowed_values: Optional[List[str]] = None
    help_text: str = ""


# ============================================================================
# STRINGS FILE CONFIGURATION
# ============================================================================

STRINGS_COLUMNS = {
    "Tier": ColumnDefinition(
        name="Tier", display_name="Tier", data_type="enum",
        required=True, allowed_values=["1", "2", "3"],
        help_text="Priority tier (1, 2 or 3)"
    ),
    "Industry": ColumnDefinition(
        name="Industry", display_name="Industry", data_type="string",
        required=True,
        help_text="Must match an Industry in classifications"
    ),
    "Topic": ColumnDefinition(
        name="Topic", display_name="Topic", data_type="string",
        required=True,
        help_text="Must match a Topic in classifications"
    ),
    "Subtopic": ColumnDefinition(
        name="Subtopic", display_name="Subtopic", data_type="string",
        required=True,
        help_text="Must match a SubTopic in classifications"
    ),
    "Prefix": ColumnDefinition(
        name="Prefix", display_name="Prefix", data_type="string",
        required=False,
        help_text="Short identifier prefix, e.g. Co-Au-"
    ),
    "Fuzzing-Idx": ColumnDefinition(
        name="Fuzzing-Idx", display_name="Fuzzing-Idx", data_type="numeric",
        required=False,
        help_text="Numeric fuzzing index"
    ),
    "Prompt": ColumnDefinition(
        name="Prompt", display_name="Prompt", data_type="string",
        required=False,
    ),
    "Risks": ColumnDefinition(
        name="Risks", display_name="Risks", data_type="string",
        required=False,
    ),
    "Keywords": ColumnDefinition(
        name="Keywords", display_name="Keywords", data_type="string",
        required=False,
    ),
}

STRINGS_COLUMN_ORDER = [
    "Tier", "Industry", "Topic", "Subtopic", "Prefix",
    "Fuzzing-Idx", "Prompt", "Risks", "Keywords"
]

# ============================================================================
# CLASSIFICATIONS FILE CONFIGURATION
# ============================================================================

CLASSIFICATIONS_COLUMNS = {
    "Topic": ColumnDefinition(
        name="Topic", display_name="Topic", data_type="string",
        required=True,
    ),
    "SubTopic": ColumnDefinition(
        name="SubTopic", display_name="SubTopic", data_type="string",
        required=True,
    ),
    "Industry": ColumnDefinition(
        name="Industry", display_name="Industry", data_type="string",
        required=True,
    ),
    "Classification": ColumnDefinition(
        name="Classification", display_name="Classification", data_type="string",
        required=True,
    ),
}

CLASSIFICATIONS_COLUMN_ORDER = ["Topic", "SubTopic", "Industry", "Classification"]

# ============================================================================
# FILE REGISTRY
# ============================================================================

AVAILABLE_FILES = {
    "strings": {
        "name": "Strings",
        "columns": STRINGS_COLUMNS,
        "column_order": STRINGS_COLUMN_ORDER,
        "description": "Prompt strings tagged with Topic, Subtopic and Industry.",
    },
    "classifications": {
        "name": "Classifications",
        "columns": CLASSIFICATIONS_COLUMNS,
        "column_order": CLASSIFICATIONS_COLUMN_ORDER,
        "description": "Valid Topic / SubTopic / Industry combinations.",
    },
}

ALLOWED_EXTENSIONS = (".csv",)

_HARMFUL_CHARS = re.compile(r"[<>]")


def get_column_order(file_type: str) -> list:
    """Get expected headers for a file type."""
    if file_type not in AVAILABLE_FILES:
        raise ValueError(f"Unknown file type: {file_type}")
    return AVAILABLE_FILES[file_type]["column_order"]


def get_column_definitions(file_type: str) -> dict:
    """Get column definitions for a file type."""
    if file_type not in AVAILABLE_FILES:
        raise ValueError(f"Unknown file type: {file_type}")
    return AVAILABLE_FILES[file_type]["columns"]


def get_empty_row(file_type: str) -> dict:
    """Get an empty row for a file type."""
    return {col: "" for col in get_column_order(file_type)}


# ============================================================================
# SANITIZING
# ============================================================================

def sanitize_value(value: Any) -> str:
    """Trim a cell and strip angle brackets. Missing values become ''."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return _HARMFUL_CHARS.sub("", str(value).strip())


def sanitize_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Sanitize every cell of every row, keeping column order."""
    return [
        {str(key).strip(): sanitize_value(value) for key, value in row.items()}
        for row in rows
    ]


def validate_headers(headers: List[str], expected_headers: List[str]) -> Dict[str, Any]:
    """Compare parsed headers against the expected headers for a file type."""
    missing = [h for h in expected_headers if h not in headers]
    extra = [h for h in headers if h not in expected_headers]
    return {
        "is_valid": len(missing) == 0,
        "missing_headers": missing,
        "extra_headers": extra,
        "headers": headers,
    }


def dataframe_to_records(df: pd.DataFrame) -> List[Dict[str, str]]:
    """Convert a stored DataFrame into JSON-ready row dicts."""
    df_clean = df.where(pd.notnull(df), "")
    return df_clean.to_dict(orient="records")


# ============================================================================
# CSV MANAGER
# ============================================================================

class CsvManager:
    """Parses uploaded CSV files and writes exports."""

    def parse(self, content: bytes, file_type: str) -> Tuple[List[str], pd.DataFrame]:
        """
        Parse, check headers and sanitize an uploaded CSV.

        Returns:
            Tuple of (headers, DataFrame of sanitized string cells)

        Raises:
            CsvFormatError: If the file cannot be parsed or misses expected headers
        """
        try:
            df = pd.read_csv(
                BytesIO(content),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                encoding="utf-8-sig",
            )
        except pd.errors.EmptyDataError:
            raise CsvFormatError(f"{file_type} file is empty")
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise CsvFormatError(f"CSV parsing error: {str(e)}")

        df.columns = [str(c).strip() for c in df.columns]
        headers = list(df.columns)

        validation = validate_headers(headers, get_column_order(file_type))
        if not validation["is_valid"]:
            raise CsvFormatError(
                f"Invalid headers for {file_type}. "
                f"Missing: {', '.join(validation['missing_headers'])}"
            )

        rows = sanitize_rows(df.to_dict(orient="records"))
        logger.info("csv_parsed", file_type=file_type, rows=len(rows), columns=len(headers))
        return headers, self.to_dataframe(rows, headers)

    def to_dataframe(self, rows: List[Dict[str, str]], headers: List[str]) -> pd.DataFrame:
        """Build a DataFrame holding every header, extra row keys appended."""
        df = pd.DataFrame(rows, dtype=str)
        for col in headers:
            if col not in df.columns:
                df[col] = ""
        ordered = headers + [c for c in df.columns if c not in headers]
        return df[ordered].fillna("")

    def to_csv_bytes(self, df: pd.DataFrame, headers: List[str]) -> bytes:
        """Write the rows under the given headers as UTF-8 CSV."""
        df = df.copy()
        for col in headers:
            if col not in df.columns:
                df[col] = ""
        return df[headers].to_csv(index=False).encode("utf-8")

    def to_workbook_bytes(self, datasets: Dict[str, Tuple[List[str], pd.DataFrame]]) -> bytes:
        """Write several datasets into one .xlsx, one sheet per file type."""
        workbook = openpyxl.Workbook()
        if 'Sheet' in workbook.sheetnames:
            del workbook['Sheet']

        for file_type, (headers, df) in datasets.items():
            sheet_name = AVAILABLE_FILES.get(file_type, {}).get("name", file_type)
            self._write_sheet(workbook, sheet_name, headers, df)

        output = BytesIO()
        workbook.save(output)
        output.seek(0)
        return output.read()

    def _write_sheet(self, workbook: openpyxl.Workbook, sheet_name: str,
                     headers: List[str], df: pd.DataFrame):
        """Write a DataFrame to a sheet with a styled header row."""
        ws = workbook.create_sheet(sheet_name)

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

        for col_idx, col_name in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=col_name)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment

        df = df.copy()
        for col in headers:
            if col not in df.columns:
                df[col] = ""

        for row_idx, row in enumerate(df[headers].itertuples(index=False), 2):
            for col_idx, value in enumerate(row, 1):
                ws.cell(row=row_idx, column=col_idx, value=value)

        ws.freeze_panes = "A2"
