"""
CSV lead import.

Rows are validated in file order against a growing set of
``firstname|lastname`` keys, persisted one savepoint at a time inside a
single transaction, and summarised in an ``ImportReport`` that is committed
together with the leads it created.
"""
import csv
import json
import os
import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from fastapi import UploadFile
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.logger import get_logger
from app.models.import_report import ImportReport, ImportReportError, ImportErrorType
from app.models.lead import Lead
from app.schemas.import_report import CsvImportResult

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

REQUIRED_COLUMNS = ('firstName', 'lastName', 'email')

# CSV column -> Lead attribute, copied only when non-blank
OPTIONAL_COLUMNS = {
    'jobTitle': 'job_title',
    'countryCode': 'country_code',
    'companyName': 'company_name',
    'gender': 'gender',
}

# The header occupies row 1, so the first data row is reported as row 2
FIRST_DATA_ROW = 2

UPLOAD_CHUNK_SIZE = 64 * 1024


class CsvParseError(Exception):
    """The uploaded file could not be read as CSV."""


class UploadTooLargeError(Exception):
    """The upload exceeded ``settings.MAX_UPLOAD_SIZE``."""


@dataclass
class RowOutcome:
    """Either the lead attributes of a valid row or the reason it was rejected."""
    lead_data: Optional[Dict[str, str]] = None
    error_type: Optional[ImportErrorType] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_type is None

    @classmethod
    def failure(cls, error_type: ImportErrorType, error_message: str) -> 'RowOutcome':
        return cls(error_type=error_type, error_message=error_message)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def duplicate_key(first_name: Optional[str], last_name: Optional[str]) -> str:
    return f"{(first_name or '').strip().lower()}|{(last_name or '').strip().lower()}"


def _clean(value: Any) -> str:
    # DictReader yields None for columns missing from a short row
    return value.strip() if isinstance(value, str) else ''


def validate_row(row: Dict[str, Any], known_keys: Set[str]) -> RowOutcome:
    """Apply the row rules in priority order, stopping at the first failure."""
    values = {column: _clean(row.get(column)) for column in REQUIRED_COLUMNS}
    for column in REQUIRED_COLUMNS:
        if not values[column]:
            return RowOutcome.failure(ImportErrorType.MISSING_FIELD, f"Missing required field: {column}")

    first_name, last_name, email = values['firstName'], values['lastName'], values['email']
    if not is_valid_email(email):
        return RowOutcome.failure(ImportErrorType.INVALID_EMAIL, f"Invalid email format: {email}")

    if duplicate_key(first_name, last_name) in known_keys:
        return RowOutcome.failure(
            ImportErrorType.DUPLICATE,
            f"Duplicate lead: {first_name} {last_name} already exists"
        )

    lead_data = {'first_name': first_name, 'last_name': last_name, 'email': email}
    for column, attribute in OPTIONAL_COLUMNS.items():
        value = _clean(row.get(column))
        if value:
            lead_data[attribute] = value
    return RowOutcome(lead_data=lead_data)


def read_csv_rows(path: str) -> List[Dict[str, Any]]:
    """Parse the whole file before any row is processed."""
    try:
        with open(path, newline='', encoding='utf-8-sig') as handle:
            reader = csv.DictReader(handle, strict=True)
            if reader.fieldnames:
                reader.fieldnames = [name.strip() for name in reader.fieldnames]
            return list(reader)
    except (csv.Error, UnicodeDecodeError, OSError) as e:
        raise CsvParseError(f"Failed to parse CSV file: {str(e)}") from e


def serialize_row(row: Dict[str, Any]) -> str:
    """Raw row content kept on the report for debugging; never parsed back."""
    return json.dumps(row, default=str, ensure_ascii=False)


def is_csv_upload(upload: UploadFile) -> bool:
    filename = (upload.filename or '').lower()
    return upload.content_type == 'text/csv' or filename.endswith('.csv')


async def save_upload(upload: UploadFile) -> Tuple[str, int]:
    """Stream *upload* to the upload directory, enforcing the size limit.

    Returns:
        Path of the temporary file and its size in bytes

    Raises:
        UploadTooLargeError: If the file is larger than ``MAX_UPLOAD_SIZE``
    """
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    path = os.path.join(settings.UPLOAD_DIR, f"{uuid.uuid4().hex}.csv")
    size = 0
    try:
        with open(path, 'wb') as out:
            while True:
                chunk = await upload.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.MAX_UPLOAD_SIZE:
                    raise UploadTooLargeError(
                        f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
                    )
                out.write(chunk)
    except Exception:
        remove_upload(path)
        raise
    return path, size


def remove_upload(path: Optional[str]) -> None:
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Could not remove upload {path}: {str(e)}", extra={'component': 'csv_import'})


class CsvImportService:
    """Imports leads from a CSV file and records an ImportReport for every attempt."""

    def __init__(self, db: Session):
        self.db = db

    def load_duplicate_keys(self) -> Set[str]:
        """Snapshot existing name pairs once per import.

        Concurrent imports do not see each other's inserts; that race is accepted.
        """
        return {
            duplicate_key(first_name, last_name)
            for first_name, last_name in self.db.query(Lead.first_name, Lead.last_name).all()
        }

    def _insert_lead(self, lead_data: Dict[str, str]) -> Lead:
        lead = Lead(**lead_data)
        # A failed row only rolls back its own savepoint
        with self.db.begin_nested():
            self.db.add(lead)
            self.db.flush()
        return lead

    def import_file(self, path: str, filename: str, file_size: int) -> CsvImportResult:
        """
        Import every row of the CSV at *path*.

        Row-level problems are recorded on the report and never abort the
        batch. Any error raised while saving a row, including driver errors
        that are not ``SQLAlchemyError``, is recorded as ``DATABASE_ERROR``.
        Leads, report, error rows and back-links are committed together.

        Raises:
            CsvParseError: If the file cannot be parsed
            SQLAlchemyError: If the final commit fails; nothing is persisted
        """
        logger.info(f"Starting CSV import of {filename} ({file_size} bytes)", extra={'component': 'csv_import'})

        known_keys = self.load_duplicate_keys()
        rows = read_csv_rows(path)

        created: List[Lead] = []
        error_entries: List[ImportReportError] = []
        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            outcome = validate_row(row, known_keys)
            if outcome.ok:
                try:
                    lead = self._insert_lead(outcome.lead_data)
                except Exception as e:
                    logger.error(
                        f"Database error importing row {row_number}: {str(e)}",
                        extra={'component': 'csv_import'}
                    )
                    reason = str(e).splitlines()[0] if str(e) else type(e).__name__
                    outcome = RowOutcome.failure(ImportErrorType.DATABASE_ERROR, f"Database error: {reason}")
                else:
                    known_keys.add(duplicate_key(lead.first_name, lead.last_name))
                    created.append(lead)
                    continue

            error_entries.append(ImportReportError(
                row_number=row_number,
                error_type=outcome.error_type,
                error_message=outcome.error_message,
                row_data=serialize_row(row)
            ))

        imported, errors = len(created), len(error_entries)
        message = f"Import completed. {imported} leads imported, {errors} errors."
        report = ImportReport(
            filename=filename,
            file_size=file_size,
            total_rows=len(rows),
            imported=imported,
            errors=errors,
            success=errors == 0,
            message=message,
            error_entries=error_entries,
            leads=created
        )
        try:
            self.db.add(report)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            f"CSV import {report.id} finished: {imported} imported, {errors} errors",
            extra={'component': 'csv_import', 'import_report_id': report.id}
        )
        return CsvImportResult(
            success=errors == 0,
            imported=imported,
            errors=errors,
            message=message,
            error_details=[f"Row {entry.row_number}: {entry.error_message}" for entry in error_entries] or None,
            import_report_id=report.id
        )

    def record_failure(self, filename: Optional[str], file_size: int, message: str,
                       error_message: Optional[str] = None) -> Optional[int]:
        """
        Persist a report for an import that failed before rows were processed.

        Returns:
            The report ID, or None if the report itself could not be written
        """
        self.db.rollback()
        report = ImportReport(
            filename=filename,
            file_size=file_size,
            total_rows=0,
            imported=0,
            errors=1,
            success=False,
            message=message,
            error_entries=[ImportReportError(
                row_number=0,
                error_type=ImportErrorType.FILE_ERROR,
                error_message=error_message or message
            )]
        )
        try:
            self.db.add(report)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not record failed import: {str(e)}", exc_info=True)
            return None
        return report.id
