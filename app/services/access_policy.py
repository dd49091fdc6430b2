"""Access policy: record visibility and sensitive-field masking.

Every read path consults this module instead of branching on the caller's
role itself. Visibility is expressed as a Mongo query predicate so it is
applied by the database for list and single-record reads alike; a record
the caller may not see is indistinguishable from one that does not exist.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bson import ObjectId

from app.config import settings
from app.models.user import CompanySettings, UserModel, UserRole
from app.models.worker import WorkerModel
from app.schemas.worker import WorkerResponse, DocumentResponse, StageEntryResponse


ADMIN_ROLES = frozenset({UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value})


@dataclass(frozen=True)
class Caller:
    """Authenticated principal on whose behalf an operation runs."""
    user_id: ObjectId
    company_id: ObjectId
    role: str
    full_name: str = ""

    @classmethod
    def from_user(cls, user: UserModel) -> "Caller":
        role = user.role.value if isinstance(user.role, UserRole) else user.role
        return cls(
            user_id=user.id,
            company_id=user.company_id,
            role=role,
            full_name=user.full_name,
        )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def display_name(self) -> str:
        return self.full_name or "A team member"


def visibility_filter(role: str, caller_id: ObjectId, company_id: ObjectId) -> Dict[str, Any]:
    """Query predicate selecting the records a caller may see."""
    query: Dict[str, Any] = {"company_id": company_id}
    if role == UserRole.EMPLOYEE.value:
        query["created_by"] = caller_id
    return query


def caller_filter(caller: Caller) -> Dict[str, Any]:
    return visibility_filter(caller.role, caller.user_id, caller.company_id)


def should_mask(role: str, company_settings: Optional[CompanySettings]) -> bool:
    """Mask iff the tenant made passports private and the caller is an employee."""
    if company_settings is None:
        return False
    return bool(company_settings.is_passport_private) and role == UserRole.EMPLOYEE.value


def mask_passport(value: Optional[str]) -> Optional[str]:
    """Keep the leading characters and replace the rest, preserving length."""
    if not value:
        return value
    visible = settings.passport_visible_chars
    return value[:visible] + settings.passport_mask_char * max(len(value) - visible, 0)


def can_manage_company_settings(caller: Caller) -> bool:
    return caller.is_admin


def can_approve_documents(caller: Caller) -> bool:
    return caller.is_admin


def render_worker(
    worker: WorkerModel,
    caller: Caller,
    company_settings: Optional[CompanySettings],
) -> WorkerResponse:
    """Build the caller-facing view of a worker. The stored record is never altered."""
    passport = worker.passport_number
    if should_mask(caller.role, company_settings):
        passport = mask_passport(passport)

    return WorkerResponse(
        id=str(worker.id),
        company_id=str(worker.company_id),
        created_by=str(worker.created_by),
        name=worker.name,
        dob=worker.dob,
        passport_number=passport,
        citizenship_number=worker.citizenship_number,
        contact=worker.contact,
        address=worker.address,
        email=worker.email,
        country=worker.country,
        employer_id=str(worker.employer_id),
        job_demand_id=str(worker.job_demand_id) if worker.job_demand_id else None,
        sub_agent_id=str(worker.sub_agent_id) if worker.sub_agent_id else None,
        notes=worker.notes,
        status=worker.status,
        current_stage=worker.current_stage,
        stage_timeline=[StageEntryResponse(**entry.model_dump()) for entry in worker.stage_timeline],
        documents=[DocumentResponse(**document.model_dump()) for document in worker.documents],
        created_at=worker.created_at,
        updated_at=worker.updated_at,
    )
