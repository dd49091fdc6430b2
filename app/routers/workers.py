"""Worker router."""
import json
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import List, Optional

from app.config import settings
from app.models.user import CompanySettings
from app.schemas.worker import (
    ApproveDocumentRequest,
    UpdateStageRequest,
    UpdateWorkerRequest,
    WorkerFields,
    WorkerResponse,
)
from app.services.access_policy import Caller, render_worker
from app.services.blob_store import IncomingFile
from app.services.pipeline_service import PipelineService
from app.services.settings_service import SettingsService
from app.utils.dependencies import get_current_caller, get_pipeline_service, get_settings_service
from app.utils.errors import ValidationError


router = APIRouter(prefix="/api/v1/workers", tags=["Workers"])


async def get_company_settings(
    caller: Caller = Depends(get_current_caller),
    settings_service: SettingsService = Depends(get_settings_service),
) -> CompanySettings:
    """Company settings as of request start, used for masking."""
    return await settings_service.get_company_settings(caller.company_id)


def _parse_json_list(raw: Optional[str], field: str) -> Optional[List[str]]:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(f"{field}: must be a JSON array")
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{field}: must be a JSON array of strings")
    return value


def _parse_json_object(raw: str, field: str) -> dict:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(f"{field}: must be a JSON object")
    if not isinstance(value, dict):
        raise ValidationError(f"{field}: must be a JSON object")
    return value


async def _read_uploads(files: List[UploadFile], categories: Optional[List[str]]) -> List[IncomingFile]:
    if categories is not None and len(categories) != len(files):
        raise ValidationError("categories: must have one entry per uploaded file")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    incoming = []
    for index, upload in enumerate(files):
        content = await upload.read()
        if len(content) > max_bytes:
            raise ValidationError(f"{upload.filename}: exceeds {settings.max_upload_size_mb} MB")
        incoming.append(IncomingFile(
            filename=upload.filename or "document",
            content=content,
            content_type=upload.content_type,
            category=categories[index] if categories else "Other",
        ))
    return incoming


@router.post("/", response_model=WorkerResponse, status_code=status.HTTP_201_CREATED)
async def create_worker(
    request: WorkerFields,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Register a worker with every pipeline stage pending."""
    worker = await service.create_worker(caller, request.model_dump())
    return render_worker(worker, caller, company_settings)


@router.post("/with-documents", response_model=WorkerResponse, status_code=status.HTTP_201_CREATED)
async def create_worker_with_documents(
    worker: str = Form(...),
    files: List[UploadFile] = File(default=[]),
    categories: Optional[str] = Form(default=None),
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Register a worker and upload its documents in one multipart request.

    `worker` is a JSON object with the registration fields, `categories` a
    JSON array with one category per uploaded file.
    """
    fields = _parse_json_object(worker, "worker")
    incoming = await _read_uploads(files, _parse_json_list(categories, "categories"))
    created = await service.create_worker(caller, fields, incoming)
    return render_worker(created, caller, company_settings)


@router.get("/", response_model=List[WorkerResponse])
async def list_workers(
    status: Optional[str] = None,
    job_demand_id: Optional[str] = None,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """List the workers visible to the caller, newest first."""
    workers = await service.list_workers(caller, status=status, job_demand_id=job_demand_id)
    return [render_worker(w, caller, company_settings) for w in workers]


@router.get("/{worker_id}", response_model=WorkerResponse)
async def get_worker(
    worker_id: str,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Get a specific worker."""
    worker = await service.get_worker(caller, worker_id)
    return render_worker(worker, caller, company_settings)


@router.patch("/{worker_id}", response_model=WorkerResponse)
async def update_worker(
    worker_id: str,
    request: UpdateWorkerRequest,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Edit a worker's personal and assignment fields."""
    worker = await service.update_worker(caller, worker_id, request.model_dump(exclude_unset=True))
    return render_worker(worker, caller, company_settings)


@router.delete("/{worker_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_worker(
    worker_id: str,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Delete a worker and retract it from its job demand."""
    await service.delete_worker(caller, worker_id)
    return None


@router.put("/{worker_id}/stages/{stage_id}", response_model=WorkerResponse)
async def update_stage(
    worker_id: str,
    stage_id: str,
    request: UpdateStageRequest,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Change the status of one pipeline stage."""
    worker = await service.update_stage(caller, worker_id, stage_id, request.status, notes=request.notes)
    return render_worker(worker, caller, company_settings)


@router.post("/{worker_id}/documents", response_model=WorkerResponse)
async def append_documents(
    worker_id: str,
    files: List[UploadFile] = File(default=[]),
    existing: Optional[str] = Form(default=None),
    categories: Optional[str] = Form(default=None),
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Upload documents and choose which stored ones to keep.

    `existing` is a JSON array of locators to keep (omit to keep all),
    `categories` a JSON array with one category per uploaded file.
    """
    keep = _parse_json_list(existing, "existing")
    incoming = await _read_uploads(files, _parse_json_list(categories, "categories"))
    worker = await service.append_documents(caller, worker_id, keep, incoming)
    return render_worker(worker, caller, company_settings)


@router.post("/{worker_id}/documents/approve", response_model=WorkerResponse)
async def approve_document(
    worker_id: str,
    request: ApproveDocumentRequest,
    caller: Caller = Depends(get_current_caller),
    service: PipelineService = Depends(get_pipeline_service),
    company_settings: CompanySettings = Depends(get_company_settings),
):
    """Approve a stored document (administrators only)."""
    worker = await service.approve_document(caller, worker_id, request.locator)
    return render_worker(worker, caller, company_settings)
