"""Worker schemas."""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List
from datetime import date, datetime

from app.models.user import PyObjectId


class WorkerFields(BaseModel):
    """Personal and assignment fields required to register a worker."""

    model_config = ConfigDict(str_strip_whitespace=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, max_length=100)
    dob: date
    passport_number: str = Field(..., min_length=1, max_length=30)
    citizenship_number: Optional[str] = None
    contact: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    country: str = "Nepal"
    employer_id: PyObjectId
    job_demand_id: Optional[PyObjectId] = None
    sub_agent_id: Optional[PyObjectId] = None
    notes: Optional[str] = None


class UpdateWorkerRequest(BaseModel):
    """Bulk field edit. Passport number and pipeline state are not editable here."""

    model_config = ConfigDict(str_strip_whitespace=True, arbitrary_types_allowed=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    dob: Optional[date] = None
    citizenship_number: Optional[str] = None
    contact: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    country: Optional[str] = None
    employer_id: Optional[PyObjectId] = None
    job_demand_id: Optional[PyObjectId] = None
    sub_agent_id: Optional[PyObjectId] = None
    notes: Optional[str] = None


class UpdateStageRequest(BaseModel):
    """Request to change one stage's status."""
    status: str
    notes: Optional[str] = None


class ApproveDocumentRequest(BaseModel):
    """Request to approve a stored document."""
    locator: str


class StageEntryResponse(BaseModel):
    """Response schema for a stage entry."""
    stage: str
    status: str
    date: datetime
    notes: Optional[str] = None


class DocumentResponse(BaseModel):
    """Response schema for a document entry."""
    name: str
    category: str
    locator: str
    size: int
    content_type: Optional[str] = None
    status: str
    uploaded_at: datetime


class WorkerResponse(BaseModel):
    """Response schema for worker."""
    id: str
    company_id: str
    created_by: str
    name: str
    dob: datetime
    passport_number: str
    citizenship_number: Optional[str]
    contact: str
    address: str
    email: Optional[str]
    country: str
    employer_id: str
    job_demand_id: Optional[str]
    sub_agent_id: Optional[str]
    notes: Optional[str]
    status: str
    current_stage: str
    stage_timeline: List[StageEntryResponse]
    documents: List[DocumentResponse]
    created_at: datetime
    updated_at: datetime
