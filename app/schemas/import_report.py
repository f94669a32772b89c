from datetime import datetime
from typing import List, Optional
from pydantic import Field

from app.models.import_report import ImportErrorType
from app.schemas.common import CamelModel


class CsvImportResult(CamelModel):
    """Outcome of one CSV import request, as returned to the client."""
    success: bool
    imported: int = 0
    errors: int = 0
    message: str
    error_details: Optional[List[str]] = Field(None, description="One line per rejected row")
    import_report_id: Optional[int] = Field(None, description="Persisted import report")


class ImportErrorEntry(CamelModel):
    row_number: int
    error_type: ImportErrorType
    error_message: str
    row_data: Optional[str] = None


class ImportReportResponse(CamelModel):
    id: int
    filename: Optional[str] = None
    file_size: int
    total_rows: int
    imported: int
    errors: int
    success: bool
    message: str
    timestamp: datetime


class ImportReportDetailResponse(ImportReportResponse):
    error_details: List[ImportErrorEntry] = []
    lead_ids: List[int] = []
