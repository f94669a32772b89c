from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.import_report import ImportReportResponse, ImportReportDetailResponse
from app.services.import_report import ImportReportService

router = APIRouter()


@router.get("", response_model=List[ImportReportResponse])
async def list_import_reports(db: Session = Depends(get_db)):
    """List CSV import reports, newest first"""
    report_service = ImportReportService()
    reports = await report_service.get_reports(db)
    return [ImportReportResponse(**report) for report in reports]


@router.get("/{report_id}", response_model=ImportReportDetailResponse)
async def get_import_report(report_id: int, db: Session = Depends(get_db)):
    """Get one import report with its rejected rows and created lead IDs"""
    report_service = ImportReportService()
    report = await report_service.get_report(report_id, db)
    return ImportReportDetailResponse(**report)
