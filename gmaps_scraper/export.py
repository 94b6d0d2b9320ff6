import csv
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

from .config import LOGGER_NAME, SENTINEL
from .exceptions import UnsupportedFormatError
from .models import EXPORT_FIELDS, RECORD_FIELDS, BusinessDetailRecord

EXPORT_BASENAME = "google_maps_data"
SHEET_NAME = "Businesses"

CONTENT_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "json": "application/json",
}
SUPPORTED_FORMATS = tuple(CONTENT_TYPES)

XLSX_HEADERS = {
    "name": "Name",
    "address": "Address",
    "phone": "Phone",
    "website": "Website",
    "email": "Email",
    "rating": "Rating",
    "reviews": "Reviews",
    "hours": "Hours",
    "category": "Category",
    "priceRange": "Price Range",
    "attributes": "Attributes",
}
HEADER_FILL = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
MAX_COLUMN_WIDTH = 50


@dataclass
class ExportPayload:
    content: bytes
    content_type: str
    filename: str


def normalize_format(fmt):
    fmt = (fmt or "").strip().lower()
    if fmt not in CONTENT_TYPES:
        raise UnsupportedFormatError(fmt)
    return fmt


def to_rows(records):
    """Serialised dicts; records are converted, plain dicts pass through as given"""
    return [record.to_dict() if isinstance(record, BusinessDetailRecord) else dict(record) for record in records]


def tabular_row(row):
    """Values in export column order; missing columns hold the sentinel"""
    values = []
    for attr, key in RECORD_FIELDS:
        value = row.get(key, row.get(attr))
        values.append(SENTINEL if value is None else value)
    return values


def encode_json(rows):
    return json.dumps(rows, indent=2, ensure_ascii=False).encode("utf-8")


def encode_csv(rows):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_FIELDS)
    writer.writerows(tabular_row(row) for row in rows)
    return buffer.getvalue().encode("utf-8")


def encode_xlsx(rows):
    """Excel workbook with a styled, frozen and filterable header row"""
    df = pd.DataFrame([tabular_row(row) for row in rows], columns=EXPORT_FIELDS).rename(columns=XLSX_HEADERS)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)
        worksheet = writer.sheets[SHEET_NAME]

        for cell in worksheet[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")

        worksheet.freeze_panes = 'A2'
        worksheet.auto_filter.ref = worksheet.dimensions

        # Auto-adjust column widths
        for column in worksheet.columns:
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            adjusted_width = max(max_length + 2, 10)
            worksheet.column_dimensions[column[0].column_letter].width = min(adjusted_width, MAX_COLUMN_WIDTH)
    return buffer.getvalue()


ENCODERS = {
    "xlsx": encode_xlsx,
    "csv": encode_csv,
    "json": encode_json,
}


def export_records(records, fmt):
    """Encode records as an in-memory download"""
    fmt = normalize_format(fmt)
    content = ENCODERS[fmt](to_rows(records))
    return ExportPayload(content=content, content_type=CONTENT_TYPES[fmt], filename=f"{EXPORT_BASENAME}.{fmt}")


def save_results(records, output_dir, session_id, formats=SUPPORTED_FORMATS):
    """Write session-specific and rolling result files; returns the paths written"""
    logger = logging.getLogger(LOGGER_NAME)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    rows = to_rows(records)

    written = []
    for fmt in formats:
        fmt = normalize_format(fmt)
        content = ENCODERS[fmt](rows)
        for filepath in (output_dir / f"{EXPORT_BASENAME}_{session_id}.{fmt}", output_dir / f"{EXPORT_BASENAME}.{fmt}"):
            filepath.write_bytes(content)
            written.append(filepath)
            logger.debug(f"{fmt.upper()} saved to {filepath}")

    logger.info(f"💾 Saved {len(rows)} results to {output_dir}")
    return written
