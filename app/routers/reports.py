"""Report router."""
from fastapi import APIRouter, Depends

from app.schemas.report import WorkerStatusReport
from app.services.access_policy import Caller
from app.services.report_service import ReportService
from app.utils.dependencies import get_current_caller, get_report_service


router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.get("/worker-status", response_model=WorkerStatusReport)
async def worker_status(
    caller: Caller = Depends(get_current_caller),
    service: ReportService = Depends(get_report_service),
):
    """Worker counts by status and current stage for the caller's visible workers."""
    return await service.worker_status_summary(caller)
