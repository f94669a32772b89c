import re
from typing import Any, Dict, List, Set

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import InvalidRequestError, BulkOperationError
from app.core.logger import get_logger
from app.models.lead import Lead
from app.services.lead import parse_lead_ids

logger = get_logger(__name__)

# Lead fields a template may reference, in the order they are reported
TEMPLATE_FIELDS = ('firstName', 'lastName', 'email', 'jobTitle', 'countryCode', 'companyName', 'message')

PLACEHOLDER_PATTERN = re.compile(r'\{(\w+)\}')


def _plural(count: int) -> str:
    return 's' if count > 1 else ''


def extract_placeholders(template: str) -> List[str]:
    """Return the distinct placeholder names of *template* in first-seen order."""
    seen: Set[str] = set()
    names = []
    for name in PLACEHOLDER_PATTERN.findall(template):
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def render_template(template: str, values: Dict[str, str]) -> str:
    """Replace every ``{field}`` occurrence whose name is in *values*."""
    return PLACEHOLDER_PATTERN.sub(
        lambda match: str(values[match.group(1)]) if match.group(1) in values else match.group(0),
        template
    )


class MessageTemplateService:
    """Fills a message template from each selected lead and stores the result."""

    def validate_template(self, template: Any) -> List[str]:
        if not template or not isinstance(template, str):
            raise InvalidRequestError('Invalid request', 'template must be a non-empty string')
        return extract_placeholders(template)

    def check_fields(self, fields: List[str]) -> None:
        invalid_fields = [field for field in fields if field not in TEMPLATE_FIELDS]
        if invalid_fields:
            raise InvalidRequestError(
                'Invalid template fields',
                f"Field{_plural(len(invalid_fields))} not available: {', '.join(invalid_fields)}. "
                f"Valid fields are: {', '.join(TEMPLATE_FIELDS)}"
            )

    async def generate_messages(self, template: Any, lead_ids: Any, db: Session) -> List[Dict[str, Any]]:
        fields = self.validate_template(template)
        valid_ids = parse_lead_ids(lead_ids)
        # Reject unknown placeholders before touching the database
        self.check_fields(fields)

        try:
            leads = {lead.id: lead for lead in db.query(Lead).filter(Lead.id.in_(valid_ids)).all()}
            results = []
            for lead_id in valid_ids:
                lead = leads.get(lead_id)
                if lead is None:
                    results.append({'lead_id': lead_id, 'success': False, 'error': 'Lead not found'})
                    continue

                values = {field: lead.get_field(field) for field in fields}
                missing_fields = [field for field, value in values.items() if value is None or value == '']
                if missing_fields:
                    results.append({
                        'lead_id': lead_id,
                        'success': False,
                        'error': f"Missing field{_plural(len(missing_fields))}: {', '.join(missing_fields)}"
                    })
                    continue

                message = render_template(template, values)
                lead.message = message
                db.commit()
                results.append({'lead_id': lead_id, 'success': True, 'message': message})
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Generate messages error: {str(e)}", exc_info=True)
            raise BulkOperationError('Failed to generate messages')

        generated = sum(1 for result in results if result['success'])
        logger.info(
            f"Generated {generated} messages for {len(valid_ids)} requested leads",
            extra={'component': 'templates'}
        )
        return results
