"""Worker registry mapping job types to handler classes."""

from ratedeck.models.enums import JobType
from ratedeck.workers.base import BaseWorker


def _build_registry() -> dict[JobType, type[BaseWorker]]:
    from ratedeck.workers.az_delete_worker import AzDestinationDeleteAllWorker
    from ratedeck.workers.az_import_worker import AzDestinationImportWorker

    return {
        JobType.AZ_DESTINATION_IMPORT: AzDestinationImportWorker,
        JobType.AZ_DESTINATION_DELETE_ALL: AzDestinationDeleteAllWorker,
    }


_registry: dict[JobType, type[BaseWorker]] = {}


def _ensure_registry() -> None:
    if not _registry:
        _registry.update(_build_registry())


def register_worker(job_type: JobType | str, worker_class: type[BaseWorker]) -> None:
    """Register (or replace) the handler class for a job type."""
    _ensure_registry()
    _registry[JobType(job_type)] = worker_class


def unregister_worker(job_type: JobType | str) -> None:
    _ensure_registry()
    _registry.pop(JobType(job_type), None)


def get_worker(job_type: JobType | str) -> BaseWorker | None:
    """Get a handler instance for a job type, or None if none is registered."""
    _ensure_registry()
    try:
        cls = _registry.get(JobType(job_type))
    except ValueError:
        return None
    return cls() if cls else None
