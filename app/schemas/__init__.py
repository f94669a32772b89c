from app.schemas.common import CamelModel
from app.schemas.lead import (
    LeadCreate,
    LeadUpdate,
    LeadResponse,
    LeadIdsRequest,
    GenerateMessagesRequest,
    BulkDeleteResponse,
    MessageResult,
    GenerateMessagesResponse,
    GenderResult,
    GuessGenderResponse
)
from app.schemas.import_report import (
    CsvImportResult,
    ImportErrorEntry,
    ImportReportResponse,
    ImportReportDetailResponse
)

__all__ = [
    "CamelModel",
    "LeadCreate",
    "LeadUpdate",
    "LeadResponse",
    "LeadIdsRequest",
    "GenerateMessagesRequest",
    "BulkDeleteResponse",
    "MessageResult",
    "GenerateMessagesResponse",
    "GenderResult",
    "GuessGenderResponse",
    "CsvImportResult",
    "ImportErrorEntry",
    "ImportReportResponse",
    "ImportReportDetailResponse"
]
