"""Lifecycle owner for the job worker.

Start and stop requests are messages on a command queue, served one at a
time by the supervisor task. Whether the worker runs is derived from the
loop task itself rather than from a shared flag.
"""

import asyncio
import contextlib
import logging
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ratedeck.config import settings
from ratedeck.errors.exceptions import WorkerControlError
from ratedeck.repositories.job_repo import JobRepository
from ratedeck.workers.runner import JobRunner

logger = logging.getLogger(__name__)


class WorkerCommand(StrEnum):
    START = "start"
    STOP = "stop"


class WorkerSupervisor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        poll_interval: float | None = None,
        stuck_timeout_minutes: int | None = None,
    ):
        self._session_factory = session_factory
        self._poll_interval = poll_interval
        self._stuck_timeout_minutes = (
            settings.stuck_job_timeout_minutes
            if stuck_timeout_minutes is None
            else stuck_timeout_minutes
        )
        self._commands: asyncio.Queue[tuple[WorkerCommand, asyncio.Future]] | None = None
        self._command_task: asyncio.Task | None = None
        self._loop_task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    def _loop_alive(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def running(self) -> bool:
        """True while the worker is claiming jobs."""
        return self._loop_alive() and not self._stop_event.is_set()

    @property
    def stopping(self) -> bool:
        """True after stop() while the last claimed job is still finishing."""
        return self._loop_alive() and self._stop_event.is_set()

    async def open(self) -> None:
        """Start serving commands. Does not start the worker itself."""
        if self._command_task is not None:
            return
        self._commands = asyncio.Queue()
        self._command_task = asyncio.create_task(self._serve(), name="job-worker-supervisor")

    async def close(self) -> None:
        """Stop the worker, wait for its current job, then stop the command task."""
        if self._command_task is None:
            return
        await self.stop()
        self._command_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._command_task
        self._command_task = None
        self._commands = None
        await self._drain()

    async def start(self) -> bool:
        """Start the worker. Returns False if it was already running."""
        return await self._send(WorkerCommand.START)

    async def stop(self) -> bool:
        """Stop claiming jobs without waiting for the job in flight.

        Returns False if the worker was not running.
        """
        return await self._send(WorkerCommand.STOP)

    async def _send(self, command: WorkerCommand) -> bool:
        if self._command_task is None or self._commands is None:
            raise WorkerControlError("Worker supervisor is not open")
        reply: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._commands.put((command, reply))
        return await reply

    async def _serve(self) -> None:
        while True:
            command, reply = await self._commands.get()
            try:
                if command == WorkerCommand.START:
                    changed = await self._start_loop()
                else:
                    changed = await self._stop_loop()
            except Exception as exc:
                logger.exception("Failed to %s job worker", command)
                if not reply.done():
                    reply.set_exception(WorkerControlError(f"Failed to {command} worker: {exc}"))
            else:
                if not reply.done():
                    reply.set_result(changed)

    async def _start_loop(self) -> bool:
        if self.running:
            logger.info("Job worker already running")
            return False

        if self.stopping:
            # Still finishing its last job; the loop has not exited yet
            self._stop_event.clear()
            logger.info("Job worker resumed")
            return True

        async with self._session_factory() as session:
            reclaimed = await JobRepository(session).reclaim_stuck(self._stuck_timeout_minutes)
            await session.commit()
        if reclaimed.total:
            logger.info(
                "Recovered %d stale jobs (%d requeued, %d failed)",
                reclaimed.total, reclaimed.requeued, reclaimed.failed,
            )

        self._stop_event = asyncio.Event()
        runner = JobRunner(self._session_factory, poll_interval=self._poll_interval)
        self._loop_task = asyncio.create_task(runner.run(self._stop_event), name="job-worker")
        logger.info("Job worker started")
        return True

    async def _stop_loop(self) -> bool:
        """Halt claiming and return; the job in flight finishes in the background."""
        if not self.running:
            return False
        logger.info("Stopping job worker...")
        self._stop_event.set()
        return True

    async def _drain(self) -> None:
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None
