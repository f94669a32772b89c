from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
import requests
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import BulkOperationError
from app.core.logger import get_logger
from app.models.lead import Lead
from app.services.lead import parse_lead_ids

logger = get_logger(__name__)


class GenderizeService:
    """
    Client for the genderize.io name -> gender inference API.

    One HTTP request is made per batch of names; there is no retry.
    """

    def __init__(self, api_url: Optional[str] = None, timeout: Optional[int] = None):
        self.api_url = api_url or settings.GENDERIZE_API_URL
        self.timeout = timeout or settings.GENDERIZE_TIMEOUT

    def predict(self, names: List[str]) -> List[Dict[str, Any]]:
        """
        Predict genders for up to ten first names.

        Args:
            names: First names, already trimmed

        Returns:
            One prediction dict per name, in request order

        Raises:
            requests.RequestException: On transport errors or non-2xx answers
            ValueError: If the body is not JSON
        """
        response = requests.get(
            self.api_url,
            params=[('name[]', name) for name in names],
            timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, list) else [data]


class GenderGuessService:
    """Enriches leads with a gender guessed from their first name."""

    def __init__(self, client: Optional[GenderizeService] = None, batch_size: Optional[int] = None):
        self.client = client or GenderizeService()
        self.batch_size = batch_size or settings.GENDERIZE_BATCH_SIZE

    async def _predict_batch(self, named: List[Tuple[int, str]], leads: Dict[int, Lead]) -> List[Dict[str, Any]]:
        try:
            # requests blocks, so keep it off the event loop
            predictions = await run_in_threadpool(self.client.predict, [name for _, name in named])
        except (requests.RequestException, ValueError) as e:
            logger.error(
                f"Genderize API error: {str(e)}",
                extra={'component': 'gender', 'batch_size': len(named)}
            )
            return [
                {'lead_id': lead_id, 'success': False, 'error': 'Gender prediction service unavailable'}
                for lead_id, _ in named
            ]

        results = []
        for index, (lead_id, _) in enumerate(named):
            prediction = predictions[index] if index < len(predictions) else None
            if isinstance(prediction, dict) and prediction.get('gender'):
                leads[lead_id].gender = prediction['gender']
                results.append({
                    'lead_id': lead_id,
                    'success': True,
                    'gender': prediction['gender'],
                    'probability': prediction.get('probability')
                })
            else:
                results.append({'lead_id': lead_id, 'success': False, 'error': 'No gender prediction available'})
        return results

    async def guess_gender(self, lead_ids: Any, db: Session) -> List[Dict[str, Any]]:
        valid_ids = parse_lead_ids(lead_ids)

        try:
            leads = {lead.id: lead for lead in db.query(Lead).filter(Lead.id.in_(valid_ids)).all()}
            results = []
            for start in range(0, len(valid_ids), self.batch_size):
                named = []
                for lead_id in valid_ids[start:start + self.batch_size]:
                    lead = leads.get(lead_id)
                    if lead is None:
                        results.append({'lead_id': lead_id, 'success': False, 'error': 'Lead not found'})
                    elif not lead.first_name or not lead.first_name.strip():
                        results.append({'lead_id': lead_id, 'success': False, 'error': 'Missing firstName'})
                    else:
                        named.append((lead_id, lead.first_name.strip()))

                if named:
                    results.extend(await self._predict_batch(named, leads))
                    db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Guess gender error: {str(e)}", exc_info=True)
            raise BulkOperationError('Failed to guess gender')

        results.sort(key=lambda result: result['lead_id'])
        logger.info(
            f"Guessed gender for {sum(1 for r in results if r['success'])} of {len(valid_ids)} leads",
            extra={'component': 'gender'}
        )
        return results
