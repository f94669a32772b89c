from typing import Any, Dict, List
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status

from app.core.logger import get_logger
from app.models.import_report import ImportReport

logger = get_logger(__name__)


class ImportReportService:
    """Read access to the audit trail of CSV imports."""

    async def get_reports(self, db: Session) -> List[Dict[str, Any]]:
        try:
            reports = db.query(ImportReport).order_by(ImportReport.id.desc()).all()
            return [report.to_dict() for report in reports]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching import reports: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching import reports")

    async def get_report(self, report_id: int, db: Session) -> Dict[str, Any]:
        try:
            report = (
                db.query(ImportReport)
                .options(selectinload(ImportReport.error_entries), selectinload(ImportReport.leads))
                .filter(ImportReport.id == report_id)
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching import report: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching import report")
        if not report:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import report not found")
        return report.to_dict(include_details=True)
