from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from typing import Dict, Any

from app.core.database import Base

# Lead attributes addressable by their wire (camelCase) names
LEAD_FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'email': 'email',
    'jobTitle': 'job_title',
    'countryCode': 'country_code',
    'companyName': 'company_name',
    'gender': 'gender',
    'message': 'message',
}


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    job_title = Column(String(255), nullable=True)
    country_code = Column(String(16), nullable=True)
    company_name = Column(String(255), nullable=True)
    gender = Column(String(32), nullable=True)
    message = Column(Text, nullable=True)
    import_report_id = Column(Integer, ForeignKey('import_reports.id'), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Report of the CSV import that created this lead, if any
    import_report = relationship('ImportReport', back_populates='leads')

    def get_field(self, field_name: str) -> Any:
        """Return the value of a lead attribute by its camelCase name."""
        return getattr(self, LEAD_FIELD_MAP[field_name])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'jobTitle': self.job_title,
            'countryCode': self.country_code,
            'companyName': self.company_name,
            'gender': self.gender,
            'message': self.message,
            'importReportId': self.import_report_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<Lead {self.id}>'
