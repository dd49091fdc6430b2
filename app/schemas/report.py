"""Report schemas."""
from pydantic import BaseModel
from typing import Dict


class WorkerStatusReport(BaseModel):
    """Worker counts by derived status and by current stage."""
    total: int
    pending: int
    processing: int
    deployed: int
    by_stage: Dict[str, int]
