from typing import Any, Dict, List
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status

from app.core.exceptions import InvalidRequestError, BulkOperationError
from app.core.logger import get_logger
from app.models.lead import Lead
from app.schemas.lead import LeadCreate, LeadUpdate

logger = get_logger(__name__)


def parse_lead_ids(lead_ids: Any) -> List[int]:
    """Validate the ``leadIds`` array of a bulk request.

    The whole request is rejected if any element is not a positive integer.
    """
    if not lead_ids or not isinstance(lead_ids, list):
        raise InvalidRequestError(
            'Invalid request',
            'leadIds must be a non-empty array of numbers'
        )

    # bool is an int subclass but true/false are not lead IDs
    valid_ids = [
        lead_id for lead_id in lead_ids
        if isinstance(lead_id, int) and not isinstance(lead_id, bool) and lead_id > 0
    ]
    if len(valid_ids) != len(lead_ids):
        raise InvalidRequestError(
            'Invalid lead IDs',
            'All leadIds must be positive numbers'
        )
    return valid_ids


class LeadService:
    """Service for handling lead-related operations."""

    def _get_or_404(self, lead_id: int, db: Session) -> Lead:
        lead = db.query(Lead).filter(Lead.id == lead_id).first()
        if not lead:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
        return lead

    async def get_leads(self, db: Session) -> List[Dict[str, Any]]:
        try:
            leads = db.query(Lead).order_by(Lead.id.asc()).all()
            return [lead.to_dict() for lead in leads]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching leads: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching leads")

    async def get_lead(self, lead_id: int, db: Session) -> Dict[str, Any]:
        try:
            return self._get_or_404(lead_id, db).to_dict()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching lead: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching lead")

    async def create_lead(self, lead_data: LeadCreate, db: Session) -> Dict[str, Any]:
        # Unlike CSV import, plain creation performs no duplicate-name check
        try:
            lead = Lead(**lead_data.model_dump())
            db.add(lead)
            db.commit()
            db.refresh(lead)
            logger.info(f"Created lead {lead.id}", extra={'component': 'leads'})
            return lead.to_dict()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating lead: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error creating lead")

    async def update_lead(self, lead_id: int, update_data: LeadUpdate, db: Session) -> Dict[str, Any]:
        try:
            lead = self._get_or_404(lead_id, db)
            for key, value in update_data.model_dump(exclude_unset=True).items():
                setattr(lead, key, value)
            db.commit()
            db.refresh(lead)
            return lead.to_dict()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating lead: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error updating lead")

    async def delete_lead(self, lead_id: int, db: Session) -> None:
        try:
            lead = self._get_or_404(lead_id, db)
            db.delete(lead)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting lead: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error deleting lead")

    async def bulk_delete(self, lead_ids: Any, db: Session) -> Dict[str, Any]:
        """Delete every lead in ``lead_ids``; IDs matching no row are ignored."""
        valid_ids = parse_lead_ids(lead_ids)
        try:
            deleted_count = (
                db.query(Lead)
                .filter(Lead.id.in_(valid_ids))
                .delete(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Bulk delete error: {str(e)}", exc_info=True)
            raise BulkOperationError('Failed to delete leads')

        logger.info(
            f"Bulk deleted {deleted_count} of {len(valid_ids)} requested leads",
            extra={'component': 'leads'}
        )
        return {
            'deleted_count': deleted_count,
            'message': f'Successfully deleted {deleted_count} lead(s)'
        }
