"""Pipeline engine: worker lifecycle, stage progression and document updates.

Worker writes are read-modify-write cycles guarded by a compare-and-swap on
the record's version field, so concurrent updates to the same worker never
lose each other's changes while different workers proceed independently.
Notifications are emitted only after a write has committed and can never
undo it.
"""
import logging
from datetime import datetime, time
from typing import Callable, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.config import settings
from app.models.notification import NotificationCategory
from app.models.stage import StageStatus, is_known_stage, stage_label
from app.models.worker import WorkerModel
from app.schemas.worker import UpdateWorkerRequest, WorkerFields
from app.services import document_ledger
from app.services.access_policy import Caller, can_approve_documents, caller_filter
from app.services.blob_store import BlobStore, IncomingFile
from app.services.notification_service import NotificationService
from app.utils.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
    storage_guard,
)


logger = logging.getLogger(__name__)

Mutation = Callable[[WorkerModel], Optional[Dict]]

# Stored as non-null on every worker; a partial update may change but not clear them
NON_NULLABLE_FIELDS = ("name", "dob", "contact", "address", "country", "employer_id")


def _object_id(value, what: str = "Worker") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise NotFoundError(f"{what} not found")


def _describe(error: PydanticValidationError) -> str:
    parts = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "body"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def _as_datetime(value):
    """BSON has no date type; store dates as midnight UTC datetimes."""
    return datetime.combine(value, time.min) if value is not None else None


class PipelineService:
    """Applies pipeline operations to worker records on behalf of a caller."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        notifications: NotificationService,
        blob_store: Optional[BlobStore] = None,
    ):
        self.db = db
        self.notifications = notifications
        self.blob_store = blob_store

    # -- reads -----------------------------------------------------------

    async def _load(self, caller: Caller, worker_id) -> WorkerModel:
        query = {"_id": _object_id(worker_id), **caller_filter(caller)}
        with storage_guard("load worker"):
            doc = await self.db.workers.find_one(query)
        if not doc:
            raise NotFoundError("Worker not found")
        return WorkerModel(**doc)

    async def get_worker(self, caller: Caller, worker_id) -> WorkerModel:
        """Single worker, subject to the same visibility rule as listing."""
        return await self._load(caller, worker_id)

    async def list_workers(
        self,
        caller: Caller,
        status: Optional[str] = None,
        job_demand_id: Optional[str] = None,
    ) -> List[WorkerModel]:
        query = caller_filter(caller)
        if status:
            query["status"] = status
        if job_demand_id:
            query["job_demand_id"] = _object_id(job_demand_id, "Job demand")
        with storage_guard("list workers"):
            docs = await self.db.workers.find(query).sort("created_at", -1).to_list(length=None)
        return [WorkerModel(**d) for d in docs]

    # -- write plumbing --------------------------------------------------

    async def _mutate(self, caller: Caller, worker_id, operation: str, mutate: Mutation) -> Tuple[WorkerModel, bool]:
        """Load, mutate and conditionally write back, retrying on version conflicts.

        `mutate` returns the $set document, or None when there is nothing to write.
        Returns the resulting worker and whether a write happened.
        """
        for attempt in range(1, settings.stage_update_max_retries + 1):
            worker = await self._load(caller, worker_id)
            changes = mutate(worker)
            if changes is None:
                return worker, False

            changes["updated_at"] = datetime.utcnow()
            with storage_guard(operation):
                doc = await self.db.workers.find_one_and_update(
                    {"_id": worker.id, "version": worker.version},
                    {"$set": changes, "$inc": {"version": 1}},
                    return_document=ReturnDocument.AFTER,
                )
            if doc:
                return WorkerModel(**doc), True
            logger.debug("Version conflict on worker %s during %s (attempt %d)", worker.id, operation, attempt)

        raise StorageError("Worker is being modified concurrently, please retry")

    async def _job_demand_exists(self, caller: Caller, job_demand_id: ObjectId) -> bool:
        with storage_guard("load job demand"):
            demand = await self.db.job_demands.find_one(
                {"_id": job_demand_id, "company_id": caller.company_id}, {"_id": 1}
            )
        return demand is not None

    async def _attach_to_demand(self, job_demand_id: Optional[ObjectId], worker_id: ObjectId) -> None:
        if job_demand_id:
            with storage_guard("attach worker to job demand"):
                await self.db.job_demands.update_one(
                    {"_id": job_demand_id}, {"$addToSet": {"workers": worker_id}}
                )

    async def _retract_from_demand(self, job_demand_id: Optional[ObjectId], worker_id: ObjectId) -> None:
        if job_demand_id:
            with storage_guard("retract worker from job demand"):
                await self.db.job_demands.update_one(
                    {"_id": job_demand_id}, {"$pull": {"workers": worker_id}}
                )

    @staticmethod
    def _report_orphans(entries, worker_id, reason: str) -> None:
        """Blobs are stored before the worker write; log the ones left unreferenced."""
        if entries:
            logger.warning(
                "Orphaned blobs for worker %s after %s: %s",
                worker_id, reason, ", ".join(e.locator for e in entries),
            )

    async def _undo_insert(self, worker_id: ObjectId) -> None:
        try:
            with storage_guard("roll back worker creation"):
                await self.db.workers.delete_one({"_id": worker_id})
        except StorageError:
            logger.error("Could not roll back creation of worker %s", worker_id)

    async def _undo_delete(self, doc: Dict) -> None:
        try:
            with storage_guard("restore deleted worker"):
                await self.db.workers.insert_one(doc)
        except StorageError:
            logger.error("Could not restore worker %s after a failed delete", doc["_id"])

    async def _announce(self, caller: Caller, content: str) -> None:
        await self.notifications.emit(
            caller.company_id, caller.user_id, NotificationCategory.WORKER.value, content
        )

    # -- operations ------------------------------------------------------

    async def create_worker(
        self,
        caller: Caller,
        fields: Dict,
        documents: Optional[List[IncomingFile]] = None,
    ) -> WorkerModel:
        """Register a worker with every stage pending."""
        try:
            data = WorkerFields.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(_describe(e))

        with storage_guard("check passport number"):
            existing = await self.db.workers.find_one(
                {"passport_number": data.passport_number}, {"_id": 1}
            )
        if existing:
            raise ConflictError("Passport number already exists.")

        if data.job_demand_id and not await self._job_demand_exists(caller, data.job_demand_id):
            raise ValidationError("Job demand not found")

        worker_id = ObjectId()
        entries = []
        if documents:
            if self.blob_store is None:
                raise StorageError("No blob store configured for document uploads")
            entries = await document_ledger.store_files(
                self.blob_store, documents, str(caller.company_id), str(worker_id)
            )

        values = data.model_dump()
        values["dob"] = _as_datetime(data.dob)
        worker = WorkerModel(
            id=worker_id,
            company_id=caller.company_id,
            created_by=caller.user_id,
            documents=entries,
            **values,
        )

        try:
            with storage_guard("create worker"):
                await self.db.workers.insert_one(worker.model_dump(by_alias=True))
        except DuplicateKeyError:
            self._report_orphans(entries, worker_id, "a passport conflict")
            raise ConflictError("Passport number already exists.")
        except StorageError:
            self._report_orphans(entries, worker_id, "a failed insert")
            raise

        # The worker exists only together with its job demand link
        try:
            await self._attach_to_demand(worker.job_demand_id, worker.id)
        except StorageError:
            await self._undo_insert(worker.id)
            self._report_orphans(entries, worker_id, "a failed job demand link")
            raise

        logger.info("Worker %s created in company %s by %s", worker.id, caller.company_id, caller.user_id)

        await self._announce(caller, f"{caller.display_name} added a new worker: {worker.name}")
        return worker

    async def update_stage(
        self,
        caller: Caller,
        worker_id,
        stage_id: str,
        new_status: str,
        notes: Optional[str] = None,
    ) -> WorkerModel:
        """Set one stage's status and re-derive the worker's status and current stage.

        An unknown stage id leaves the worker untouched unless strict stage ids
        are configured.
        """
        try:
            new_status = StageStatus(new_status).value
        except ValueError:
            raise ValidationError(
                f"Invalid stage status '{new_status}'. Expected one of: "
                + ", ".join(s.value for s in StageStatus)
            )
        if not is_known_stage(stage_id) and settings.strict_stage_ids:
            raise ValidationError(f"Unknown stage '{stage_id}'")

        before: Dict[str, str] = {}

        def apply(worker: WorkerModel) -> Optional[Dict]:
            entry = worker.find_stage(stage_id)
            if entry is None:
                logger.warning("Ignoring update for unknown stage %r on worker %s", stage_id, worker.id)
                return None
            before["status"] = worker.status
            entry.status = new_status
            entry.date = datetime.utcnow()
            if notes is not None:
                entry.notes = notes
            worker.refresh_pipeline_state()
            return {
                "stage_timeline": [e.model_dump() for e in worker.stage_timeline],
                "status": worker.status,
                "current_stage": worker.current_stage,
            }

        worker, written = await self._mutate(caller, worker_id, "update stage", apply)
        if not written:
            return worker

        logger.info(
            "Worker %s stage %s -> %s (status %s, current stage %s)",
            worker.id, stage_id, new_status, worker.status, worker.current_stage,
        )
        content = (
            f"{caller.display_name} marked {stage_label(stage_id)} as {new_status} "
            f"for worker {worker.name}"
        )
        if before.get("status") != worker.status:
            content += f" (now {worker.status})"
        await self._announce(caller, content)
        return worker

    async def update_worker(self, caller: Caller, worker_id, fields: Dict) -> WorkerModel:
        """Edit personal and assignment fields."""
        try:
            data = UpdateWorkerRequest.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(_describe(e))

        changes = data.model_dump(exclude_unset=True)
        for required in NON_NULLABLE_FIELDS:
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required}: cannot be cleared")
        if "dob" in changes:
            changes["dob"] = _as_datetime(changes["dob"])

        new_demand = changes.get("job_demand_id")
        if new_demand and not await self._job_demand_exists(caller, new_demand):
            raise ValidationError("Job demand not found")

        previous: Dict[str, Optional[ObjectId]] = {}

        def apply(worker: WorkerModel) -> Optional[Dict]:
            if not changes:
                return None
            previous["job_demand_id"] = worker.job_demand_id
            return dict(changes)

        worker, written = await self._mutate(caller, worker_id, "update worker", apply)
        if not written:
            return worker

        if "job_demand_id" in changes and previous.get("job_demand_id") != worker.job_demand_id:
            await self._retract_from_demand(previous.get("job_demand_id"), worker.id)
            await self._attach_to_demand(worker.job_demand_id, worker.id)

        logger.info("Worker %s updated fields %s", worker.id, sorted(changes))
        await self._announce(caller, f"{caller.display_name} updated worker details for {worker.name}")
        return worker

    async def append_documents(
        self,
        caller: Caller,
        worker_id,
        existing_locators: Optional[List[str]],
        new_files: Optional[List[IncomingFile]] = None,
    ) -> WorkerModel:
        """Merge the documents to keep with freshly uploaded files."""
        worker = await self._load(caller, worker_id)
        new_files = new_files or []

        new_entries = []
        if new_files:
            if self.blob_store is None:
                raise StorageError("No blob store configured for document uploads")
            new_entries = await document_ledger.store_files(
                self.blob_store, new_files, str(caller.company_id), str(worker.id)
            )

        def apply(current: WorkerModel) -> Optional[Dict]:
            merged = document_ledger.merge_documents(current.documents, existing_locators, new_entries)
            if [d.locator for d in merged] == [d.locator for d in current.documents]:
                return None
            return {"documents": [d.model_dump() for d in merged]}

        try:
            worker, written = await self._mutate(caller, worker.id, "update documents", apply)
        except DomainError:
            self._report_orphans(new_entries, worker.id, "a failed document update")
            raise
        if not written:
            return worker

        logger.info("Worker %s documents now %d (%d new)", worker.id, len(worker.documents), len(new_entries))
        if new_entries:
            content = f"{caller.display_name} uploaded {len(new_entries)} document(s) for worker {worker.name}"
        else:
            content = f"{caller.display_name} updated the documents of worker {worker.name}"
        await self._announce(caller, content)
        return worker

    async def approve_document(self, caller: Caller, worker_id, locator: str) -> WorkerModel:
        """Approve one document. Admins only."""
        if not can_approve_documents(caller):
            raise ForbiddenError("Only administrators can approve documents")

        def apply(worker: WorkerModel) -> Optional[Dict]:
            changed = document_ledger.approve(worker.documents, locator)
            if changed is None:
                raise NotFoundError("Document not found")
            if not changed:
                return None
            return {"documents": [d.model_dump() for d in worker.documents]}

        worker, written = await self._mutate(caller, worker_id, "approve document", apply)
        if written:
            document = worker.find_document(locator)
            logger.info("Document %s of worker %s approved by %s", locator, worker.id, caller.user_id)
            await self._announce(
                caller, f"{caller.display_name} approved {document.name} for worker {worker.name}"
            )
        return worker

    async def delete_worker(self, caller: Caller, worker_id) -> None:
        """Remove a worker and retract it from its job demand."""
        worker = await self._load(caller, worker_id)

        with storage_guard("delete worker"):
            deleted = await self.db.workers.find_one_and_delete({"_id": worker.id, **caller_filter(caller)})
        if not deleted:
            raise NotFoundError("Worker not found")

        try:
            await self._retract_from_demand(worker.job_demand_id, worker.id)
        except StorageError:
            await self._undo_delete(deleted)
            raise

        logger.info("Worker %s deleted by %s", worker.id, caller.user_id)
        await self._announce(caller, f"{caller.display_name} removed worker {worker.name}")
