"""CSV parsing for bulk imports."""

import csv
import io
from typing import Dict, List, NamedTuple

from ..exceptions import ErrorCode, ValidationError


class ParsedCsv(NamedTuple):
    """Lower-cased header plus one dict per data row, in file order."""

    headers: List[str]
    rows: List[Dict[str, str]]
    # 1-based file line on which each row starts; the header is line 1
    line_numbers: List[int]


def parse_csv(text: str) -> ParsedCsv:
    """
    Parse comma-separated text whose first line is the header row.

    Quoted fields may contain commas and doubled quotes (``""`` -> ``"``).
    Header names are stripped and lower-cased; cell values are stripped.
    Blank lines are skipped but still count towards line numbers.

    Raises:
        ValidationError: If the text has no data rows
    """
    reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True)
    records = []
    start = 1
    for row in reader:
        if any(cell.strip() for cell in row):
            records.append((start, row))
        start = reader.line_num + 1

    if len(records) < 2:
        raise ValidationError(
            "CSV file is empty or contains only headers",
            error_code=ErrorCode.MISSING_REQUIRED,
            field="file",
        )

    headers = [cell.strip().lower() for cell in records[0][1]]
    rows: List[Dict[str, str]] = []
    line_numbers: List[int] = []
    for line_number, record in records[1:]:
        cells = [cell.strip() for cell in record]
        # Short rows read as blank trailing cells
        cells += [""] * (len(headers) - len(cells))
        rows.append(dict(zip(headers, cells)))
        line_numbers.append(line_number)

    return ParsedCsv(headers=headers, rows=rows, line_numbers=line_numbers)
