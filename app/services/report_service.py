"""Worker pipeline reporting."""
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.stage import PIPELINE_STAGES, WorkerStatus
from app.schemas.report import WorkerStatusReport
from app.services.access_policy import Caller, caller_filter
from app.utils.errors import storage_guard


class ReportService:
    """Aggregates over the workers a caller can see."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def worker_status_summary(self, caller: Caller) -> WorkerStatusReport:
        match = caller_filter(caller)
        with storage_guard("build worker report"):
            by_status = await self.db.workers.aggregate([
                {"$match": match},
                {"$group": {"_id": "$status", "count": {"$sum": 1}}},
            ]).to_list(length=None)
            by_stage = await self.db.workers.aggregate([
                {"$match": match},
                {"$group": {"_id": "$current_stage", "count": {"$sum": 1}}},
            ]).to_list(length=None)

        status_counts = {row["_id"]: row["count"] for row in by_status}
        stage_counts = {row["_id"]: row["count"] for row in by_stage}

        return WorkerStatusReport(
            total=sum(status_counts.values()),
            pending=status_counts.get(WorkerStatus.PENDING.value, 0),
            processing=status_counts.get(WorkerStatus.PROCESSING.value, 0),
            deployed=status_counts.get(WorkerStatus.DEPLOYED.value, 0),
            by_stage={stage_id: stage_counts.get(stage_id, 0) for stage_id in PIPELINE_STAGES},
        )
