"""Spreadsheet ingestion: workbook bytes to a header lookup plus data rows."""

import io
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from .constants import (
    DATA_SHEET_KEYWORD,
    HEADER_ROW_KEYWORDS,
    INSTRUCTION_SHEET_KEYWORDS,
    LogMessage,
    TrainingType,
    UserMessage,
)
from .errors import EmptySheetError, FileReadError, ParseError
from .models import ParsedSheet

Grid = list[list[Any]]


def read_file_bytes(path: Path | str) -> bytes:
    """Read the raw bytes of an uploaded spreadsheet.

    Args:
        path: Location of the file.

    Returns:
        bytes: File contents.

    Raises:
        FileReadError: If the file cannot be opened or read.
    """
    path = Path(path)
    logger.info(LogMessage.READING_FILE.format(path))
    try:
        return path.read_bytes()
    except OSError as e:
        raise FileReadError(f"{UserMessage.FILE_READ_ERROR} ({e})") from e


def _is_blank(value: Any) -> bool:
    if isinstance(value, str):
        return value == ""
    return value is None or bool(pd.isna(value))


def _frame_to_grid(frame: pd.DataFrame) -> Grid:
    """Convert a raw sheet frame to row-major cell values, None for blanks.

    Only empty cells are blank; text such as "NA" or "N/A" is kept as typed.
    """
    return [
        [None if _is_blank(value) else value for value in row]
        for row in frame.astype(object).values.tolist()
    ]


def decode_workbook(data: bytes) -> dict[str, Grid]:
    """Decode spreadsheet bytes into one grid per worksheet.

    No type inference happens here: cells keep the values stored in the file.

    Args:
        data: Raw xlsx/xls bytes.

    Returns:
        dict[str, Grid]: Worksheet name to grid, in workbook order.

    Raises:
        ParseError: If the bytes are not a readable workbook.
    """
    try:
        sheets = pd.read_excel(
            io.BytesIO(data),
            sheet_name=None,
            header=None,
            dtype=object,
            keep_default_na=False,
            na_values=[],
        )
    except Exception as e:
        raise ParseError(f"{UserMessage.UNREADABLE_WORKBOOK} ({e})") from e

    return {str(name): _frame_to_grid(frame) for name, frame in sheets.items()}


def select_sheet(sheet_names: list[str]) -> str:
    """Pick the worksheet holding the data.

    Prefers a sheet whose name contains "dados", then the first sheet that is
    not an instructions/guide sheet, then the first sheet.

    Args:
        sheet_names: Worksheet names in workbook order.

    Returns:
        str: The selected sheet name.

    Raises:
        EmptySheetError: If the workbook has no sheets.
    """
    if not sheet_names:
        raise EmptySheetError(UserMessage.EMPTY_SHEET)

    for name in sheet_names:
        if DATA_SHEET_KEYWORD in name.lower():
            return name

    for name in sheet_names:
        lowered = name.lower()
        if not any(keyword in lowered for keyword in INSTRUCTION_SHEET_KEYWORDS):
            return name

    return sheet_names[0]


def resolve_header_row(grid: Grid, training_type: TrainingType) -> int:
    """Find the header row of a sheet.

    Scans from the top for the first row holding a cell that contains one of
    the training type's header keywords. Leading title or instruction rows
    are skipped that way. Falls back to row 0 when nothing matches.

    Args:
        grid: Row-major cell values.
        training_type: Which keyword set to look for.

    Returns:
        int: Index of the header row.
    """
    keywords = HEADER_ROW_KEYWORDS[training_type]
    for index, row in enumerate(grid):
        for cell in row or []:
            if cell is None:
                continue
            text = str(cell).lower()
            if any(keyword in text for keyword in keywords):
                return index
    return 0


def build_header_lookup(header_row: list[Any]) -> list[str]:
    """Lowercase and trim every header cell; blanks become empty strings."""
    return [
        "" if cell is None else str(cell).lower().strip() for cell in header_row
    ]


def ingest(data: bytes, training_type: TrainingType) -> ParsedSheet:
    """Decode a workbook and split its data sheet into headers and rows.

    Args:
        data: Raw spreadsheet bytes.
        training_type: Training type used for header detection.

    Returns:
        ParsedSheet: Header lookup and the data rows below it.

    Raises:
        ParseError: If the workbook cannot be decoded.
        EmptySheetError: If the selected sheet has no rows.
    """
    sheets = decode_workbook(data)
    sheet_name = select_sheet(list(sheets))
    grid = sheets[sheet_name]

    if not grid:
        raise EmptySheetError(UserMessage.EMPTY_SHEET)

    logger.debug(LogMessage.SELECTED_SHEET.format(sheet_name, len(grid)))

    header_index = resolve_header_row(grid, training_type)
    logger.debug(LogMessage.HEADER_ROW.format(header_index))

    return ParsedSheet(
        sheet_name=sheet_name,
        header_row_index=header_index,
        headers=build_header_lookup(grid[header_index]),
        rows=[list(row) for row in grid[header_index + 1 :]],
    )
