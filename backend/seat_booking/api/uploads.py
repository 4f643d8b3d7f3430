"""
CSV upload handling for the admin bulk-import endpoints.

The core only sees plain rows; this module turns an uploaded file into them.
"""

import csv
import io

from fastapi import UploadFile

from seat_booking.core.config import get_settings
from seat_booking.core.exceptions import ValidationError

settings = get_settings()


async def read_csv_rows(file: UploadFile) -> list[dict]:
    """Parse an uploaded CSV with a header row into a list of dicts."""
    filename = (file.filename or "").lower()
    content_type = (file.content_type or "").lower()
    if not filename.endswith(".csv") and "csv" not in content_type and content_type != "application/vnd.ms-excel":
        raise ValidationError("Only CSV files are allowed")

    raw = await file.read(settings.BULK_UPLOAD_MAX_BYTES + 1)
    if len(raw) > settings.BULK_UPLOAD_MAX_BYTES:
        raise ValidationError(
            f"File size must be under {settings.BULK_UPLOAD_MAX_BYTES // (1024 * 1024)} MB"
        )
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("File must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError("CSV file is empty")
    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
    return [
        {key: (value or "").strip() for key, value in row.items() if key}
        for row in reader
        if any((value or "").strip() for value in row.values() if isinstance(value, str))
    ]


async def read_seat_numbers(file: UploadFile) -> list[str]:
    rows = await read_csv_rows(file)
    if rows and "seat_number" not in rows[0]:
        raise ValidationError("CSV must have a 'seat_number' column")
    return [row.get("seat_number", "") for row in rows]
