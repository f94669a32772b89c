from typing import List, Optional
from fastapi import APIRouter, Depends, File, UploadFile, status, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.logger import get_logger
from app.schemas.import_report import CsvImportResult
from app.schemas.lead import (
    LeadCreate,
    LeadUpdate,
    LeadResponse,
    LeadIdsRequest,
    GenerateMessagesRequest,
    BulkDeleteResponse,
    GenerateMessagesResponse,
    GuessGenderResponse
)
from app.services.csv_import import (
    CsvImportService,
    UploadTooLargeError,
    is_csv_upload,
    save_upload,
    remove_upload
)
from app.services.gender import GenderGuessService
from app.services.lead import LeadService
from app.services.templates import MessageTemplateService

logger = get_logger(__name__)

router = APIRouter()


def _import_failure(status_code: int, message: str, error_details: Optional[List[str]] = None,
                    import_report_id: Optional[int] = None) -> JSONResponse:
    result = CsvImportResult(
        success=False,
        imported=0,
        errors=1,
        message=message,
        error_details=error_details,
        import_report_id=import_report_id
    )
    return JSONResponse(status_code=status_code, content=result.model_dump(by_alias=True, exclude_none=True))


@router.get("", response_model=List[LeadResponse])
async def list_leads(db: Session = Depends(get_db)):
    """List all leads ordered by ID"""
    lead_service = LeadService()
    leads_data = await lead_service.get_leads(db)
    return [LeadResponse(**lead) for lead in leads_data]


@router.post("", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
async def create_lead(
    lead_in: LeadCreate,
    db: Session = Depends(get_db)
):
    """Create a new lead"""
    lead_service = LeadService()
    lead = await lead_service.create_lead(lead_in, db)
    return LeadResponse(**lead)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_leads(
    request: LeadIdsRequest,
    db: Session = Depends(get_db)
):
    """Delete several leads at once; unknown IDs are ignored"""
    lead_service = LeadService()
    result = await lead_service.bulk_delete(request.lead_ids, db)
    return BulkDeleteResponse(**result)


@router.post("/generate-messages", response_model=GenerateMessagesResponse, response_model_exclude_none=True)
async def generate_messages(
    request: GenerateMessagesRequest,
    db: Session = Depends(get_db)
):
    """Fill a {field} template from each selected lead and store it as the lead's message"""
    template_service = MessageTemplateService()
    results = await template_service.generate_messages(request.template, request.lead_ids, db)
    return GenerateMessagesResponse(results=results)


@router.post("/guess-gender", response_model=GuessGenderResponse, response_model_exclude_none=True)
async def guess_gender(
    request: LeadIdsRequest,
    db: Session = Depends(get_db)
):
    """Guess each selected lead's gender from their first name"""
    gender_service = GenderGuessService()
    results = await gender_service.guess_gender(request.lead_ids, db)
    return GuessGenderResponse(results=results)


@router.post("/import-csv", response_model=CsvImportResult, response_model_exclude_none=True)
async def import_csv(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db)
):
    """Import leads from an uploaded CSV file"""
    import_service = CsvImportService(db)

    if file is None or not file.filename:
        logger.warning("CSV import requested without a file", extra={'component': 'csv_import'})
        report_id = import_service.record_failure(None, 0, "No CSV file uploaded")
        return _import_failure(status.HTTP_400_BAD_REQUEST, "No CSV file uploaded", import_report_id=report_id)

    if not is_csv_upload(file):
        return _import_failure(status.HTTP_400_BAD_REQUEST, "Only CSV files are allowed")

    path = None
    file_size = 0
    try:
        path, file_size = await save_upload(file)
        return import_service.import_file(path, file.filename, file_size)
    except UploadTooLargeError as e:
        return _import_failure(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(e))
    except Exception as e:
        logger.error(f"CSV import failed: {str(e)}", exc_info=True, extra={'component': 'csv_import'})
        report_id = import_service.record_failure(file.filename, file_size, "CSV import failed", str(e))
        return _import_failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "CSV import failed",
            error_details=[str(e)],
            import_report_id=report_id
        )
    finally:
        remove_upload(path)


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: int,
    db: Session = Depends(get_db)
):
    """Get a specific lead by ID"""
    lead_service = LeadService()
    lead = await lead_service.get_lead(lead_id, db)
    return LeadResponse(**lead)


@router.patch("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: int,
    lead_update: LeadUpdate,
    db: Session = Depends(get_db)
):
    """Update a specific lead by ID"""
    lead_service = LeadService()
    lead = await lead_service.update_lead(lead_id, lead_update, db)
    return LeadResponse(**lead)


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lead(
    lead_id: int,
    db: Session = Depends(get_db)
):
    """Delete a specific lead by ID"""
    lead_service = LeadService()
    await lead_service.delete_lead(lead_id, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
