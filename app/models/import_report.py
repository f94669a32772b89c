from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from typing import Dict, Any

from app.core.database import Base


class ImportErrorType(str, enum.Enum):
    """Outcome kinds recorded for a rejected CSV row or a failed import."""
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_EMAIL = "INVALID_EMAIL"
    DUPLICATE = "DUPLICATE"
    DATABASE_ERROR = "DATABASE_ERROR"
    FILE_ERROR = "FILE_ERROR"


class ImportReport(Base):
    """Audit record of one CSV import attempt. Never updated once written."""
    __tablename__ = 'import_reports'

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    filename = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    total_rows = Column(Integer, nullable=False, default=0)
    imported = Column(Integer, nullable=False, default=0)
    errors = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False, default=False)
    message = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    error_entries = relationship(
        'ImportReportError',
        back_populates='report',
        cascade='all, delete-orphan',
        order_by='ImportReportError.row_number',
    )
    leads = relationship('Lead', back_populates='import_report')

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'filename': self.filename,
            'fileSize': self.file_size,
            'totalRows': self.total_rows,
            'imported': self.imported,
            'errors': self.errors,
            'success': self.success,
            'message': self.message,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
        if include_details:
            data['errorDetails'] = [entry.to_dict() for entry in self.error_entries]
            data['leadIds'] = sorted(lead.id for lead in self.leads)
        return data

    def __repr__(self):
        return f'<ImportReport {self.id}>'


class ImportReportError(Base):
    """One rejected row (or the whole-file failure) of an import attempt."""
    __tablename__ = 'import_errors'

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    import_report_id = Column(Integer, ForeignKey('import_reports.id', ondelete='CASCADE'), nullable=False, index=True)
    row_number = Column(Integer, nullable=False)
    error_type = Column(Enum(ImportErrorType), nullable=False)
    error_message = Column(Text, nullable=False)
    row_data = Column(Text, nullable=True)

    report = relationship('ImportReport', back_populates='error_entries')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rowNumber': self.row_number,
            'errorType': self.error_type.value if self.error_type else None,
            'errorMessage': self.error_message,
            'rowData': self.row_data,
        }
