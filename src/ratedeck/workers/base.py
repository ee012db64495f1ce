"""Base worker interface for typed job handlers."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.models.job_payloads import BaseJobPayload


class JobCancelledError(Exception):
    """Raised by a handler that noticed its job was cancelled."""


class JobContext:
    """Per-execution handle given to handlers."""

    def __init__(
        self,
        job_id: int,
        attempt: int,
        cancel_check: Callable[[], Awaitable[bool]],
    ):
        self.job_id = job_id
        self.attempt = attempt
        self._cancel_check = cancel_check

    async def is_cancelled(self) -> bool:
        return await self._cancel_check()

    async def raise_if_cancelled(self) -> None:
        if await self.is_cancelled():
            raise JobCancelledError(f"Job {self.job_id} was cancelled")


class BaseWorker(ABC):
    """Abstract base class for job handlers.

    Subclasses declare the payload model they accept; the runner validates
    the stored payload into that model before calling process().
    """

    payload_model: type[BaseJobPayload] = BaseJobPayload

    @abstractmethod
    async def process(
        self,
        job_id: int,
        payload: BaseJobPayload,
        session: AsyncSession,
        context: JobContext,
    ) -> dict | None:
        """Do the work. Raising marks the attempt as failed.

        Returns an optional summary dict that is logged on success.
        """
        ...
