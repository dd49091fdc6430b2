"""Worker database models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from enum import Enum
from bson import ObjectId

from app.models.user import PyObjectId
from app.models.stage import (
    PIPELINE_STAGES,
    StageStatus,
    WorkerStatus,
    derive_status,
    first_incomplete_stage,
)


class DocumentCategory(str, Enum):
    """Categories a worker document can be filed under."""
    PASSPORT = "Passport"
    BIRTH_CERTIFICATE = "Birth Certificate"
    CITIZENSHIP_CERTIFICATE = "Citizenship Certificate"
    MEDICAL_CERTIFICATE = "Medical Certificate"
    POLICE_CLEARANCE = "Police Clearance"
    EDUCATIONAL_CERTIFICATE = "Educational Certificate"
    PASSPORT_PHOTOS = "Passport Photos"
    OTHER = "Other"


class DocumentStatus(str, Enum):
    """Approval status of an uploaded document."""
    PENDING = "pending"
    APPROVED = "approved"


class StageEntry(BaseModel):
    """One step of a worker's deployment timeline."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    stage: str
    status: StageStatus = StageStatus.PENDING
    date: datetime = Field(default_factory=datetime.utcnow)
    notes: Optional[str] = None


class DocumentEntry(BaseModel):
    """Metadata for a document stored in the blob store."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    name: str
    category: DocumentCategory = DocumentCategory.OTHER
    locator: str                     # Opaque reference returned by the blob store
    size: int = 0
    content_type: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PENDING
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)


def initial_timeline() -> List[StageEntry]:
    """All stages, in pipeline order, at pending."""
    now = datetime.utcnow()
    return [StageEntry(stage=stage_id, date=now) for stage_id in PIPELINE_STAGES]


class WorkerModel(BaseModel):
    """Worker (recruitment candidate) model."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    company_id: PyObjectId
    created_by: PyObjectId

    # Personal info
    name: str
    dob: datetime
    passport_number: str
    citizenship_number: Optional[str] = None
    contact: str
    address: str
    email: Optional[str] = None
    country: str = "Nepal"

    # Assignment
    employer_id: PyObjectId
    job_demand_id: Optional[PyObjectId] = None
    sub_agent_id: Optional[PyObjectId] = None
    notes: Optional[str] = None

    # Pipeline state
    status: WorkerStatus = WorkerStatus.PENDING
    current_stage: str = PIPELINE_STAGES[0]
    stage_timeline: List[StageEntry] = Field(default_factory=initial_timeline)
    documents: List[DocumentEntry] = Field(default_factory=list)

    # Incremented on every write; used for compare-and-swap
    version: int = 0

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def find_stage(self, stage_id: str) -> Optional[StageEntry]:
        for entry in self.stage_timeline:
            if entry.stage == stage_id:
                return entry
        return None

    def refresh_pipeline_state(self) -> None:
        """Recompute status and current stage from the timeline."""
        self.status = derive_status(self.stage_timeline).value
        self.current_stage = first_incomplete_stage(self.stage_timeline) or PIPELINE_STAGES[-1]

    def find_document(self, locator: str) -> Optional[DocumentEntry]:
        for document in self.documents:
            if document.locator == locator:
                return document
        return None
