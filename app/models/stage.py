"""Pipeline stage definitions and status derivation."""
from enum import Enum
from typing import Iterable, Optional


PIPELINE_STAGES = (
    "document-collection",
    "document-verification",
    "interview",
    "medical-examination",
    "police-clearance",
    "training",
    "visa-application",
    "visa-approval",
    "ticket-booking",
    "pre-departure-orientation",
    "deployed",
)

STAGE_INDEX = {stage_id: index for index, stage_id in enumerate(PIPELINE_STAGES)}


class StageStatus(str, Enum):
    """Status of a single stage entry."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class WorkerStatus(str, Enum):
    """Aggregate worker status, derived from the timeline."""
    PENDING = "pending"
    PROCESSING = "processing"
    DEPLOYED = "deployed"


def is_known_stage(stage_id: str) -> bool:
    return stage_id in STAGE_INDEX


def stage_label(stage_id: str) -> str:
    """Human-readable stage name, e.g. "medical-examination" -> "Medical Examination"."""
    return stage_id.replace("-", " ").replace("_", " ").title()


def _status_of(entry) -> str:
    value = entry["status"] if isinstance(entry, dict) else entry.status
    return value.value if isinstance(value, Enum) else value


def _stage_of(entry) -> str:
    return entry["stage"] if isinstance(entry, dict) else entry.stage


def completed_count(timeline: Iterable) -> int:
    return sum(1 for entry in timeline if _status_of(entry) == StageStatus.COMPLETED.value)


def derive_status(timeline: Iterable) -> WorkerStatus:
    """Worker status as a pure function of how many stages are completed.

    0 completed -> pending, all completed -> deployed, anything between -> processing.
    """
    done = completed_count(timeline)
    if done == 0:
        return WorkerStatus.PENDING
    if done >= len(PIPELINE_STAGES):
        return WorkerStatus.DEPLOYED
    return WorkerStatus.PROCESSING


def first_incomplete_stage(timeline: Iterable) -> Optional[str]:
    """First stage in pipeline order that is not completed, None when all are."""
    statuses = {_stage_of(entry): _status_of(entry) for entry in timeline}
    for stage_id in PIPELINE_STAGES:
        if statuses.get(stage_id) != StageStatus.COMPLETED.value:
            return stage_id
    return None
