from app.models.lead import Lead
from app.models.import_report import ImportReport, ImportReportError, ImportErrorType

__all__ = ["Lead", "ImportReport", "ImportReportError", "ImportErrorType"]
