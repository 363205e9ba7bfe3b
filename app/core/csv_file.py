"""
CSV encoding for the user export and import.
"""
import csv
import io
from typing import Any, Dict, Iterable, List, Sequence


class CSVFileError(ValueError):
    """Raised when an uploaded file cannot be read as CSV."""


def write_csv(rows: Iterable[Dict[str, Any]], fieldnames: Sequence[str]) -> str:
    """
    Render rows as CSV text with a header line.

    None becomes an empty cell; every other value is written with ``str``.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return buffer.getvalue()


def read_csv(content: bytes) -> List[Dict[str, str]]:
    """
    Parse UTF-8 CSV content (a BOM is accepted) into one dict per data row.

    Cells are stripped; empty cells are dropped so optional fields fall back to
    their defaults.

    Raises:
        CSVFileError: If the content is not UTF-8, has no header or no data row
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise CSVFileError("File is not UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise CSVFileError("File has no header line")

    rows = []
    for row in reader:
        cleaned = {
            key.strip(): value.strip()
            for key, value in row.items()
            if key and isinstance(value, str) and value.strip()
        }
        if cleaned:
            rows.append(cleaned)

    if not rows:
        raise CSVFileError("File has no data row")
    return rows
