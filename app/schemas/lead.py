from datetime import datetime
from typing import Any, List, Optional
from pydantic import ConfigDict, Field, field_validator

from app.schemas.common import CamelModel


class LeadBase(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=255, description="First name")
    last_name: Optional[str] = Field(None, max_length=255, description="Last name")
    email: Optional[str] = Field(None, max_length=255, description="Email address")
    job_title: Optional[str] = Field(None, max_length=255, description="Job title")
    country_code: Optional[str] = Field(None, max_length=16, description="Country code")
    company_name: Optional[str] = Field(None, max_length=255, description="Company name")


class LeadCreate(LeadBase):
    pass


class LeadUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = Field(None, min_length=1, max_length=255, description="First name")
    last_name: Optional[str] = Field(None, max_length=255, description="Last name")
    email: Optional[str] = Field(None, max_length=255, description="Email address")
    job_title: Optional[str] = Field(None, max_length=255, description="Job title")
    country_code: Optional[str] = Field(None, max_length=16, description="Country code")
    company_name: Optional[str] = Field(None, max_length=255, description="Company name")

    @field_validator("first_name")
    def first_name_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("firstName cannot be empty")
        return v


class LeadResponse(CamelModel):
    id: int = Field(..., description="Lead ID")
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    job_title: Optional[str] = None
    country_code: Optional[str] = None
    company_name: Optional[str] = None
    gender: Optional[str] = None
    message: Optional[str] = None
    import_report_id: Optional[int] = None
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class LeadIdsRequest(CamelModel):
    # Validated by parse_lead_ids so malformed input yields 400
    lead_ids: Any = Field(None, description="Lead IDs to operate on")


class GenerateMessagesRequest(LeadIdsRequest):
    template: Any = Field(None, description="Template with {field} placeholders")


class BulkDeleteResponse(CamelModel):
    deleted_count: int
    message: str


class MessageResult(CamelModel):
    lead_id: int
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class GenerateMessagesResponse(CamelModel):
    results: List[MessageResult]


class GenderResult(CamelModel):
    lead_id: int
    success: bool
    gender: Optional[str] = None
    probability: Optional[float] = None
    error: Optional[str] = None


class GuessGenderResponse(CamelModel):
    results: List[GenderResult]
