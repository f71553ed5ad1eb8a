"""
Durable background delivery of detailed reports

Jobs are stored in the report_jobs table before the HTTP response is sent,
and drained by a small pool of asyncio workers started with the application.
"""
import asyncio
from typing import Any, List, Optional
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.config import get_settings
from app.database import db_manager
from app.errors import NotFound, PersistenceError, Refused, SchemaViolation
from app.logging_config import logger
from app.models import Analysis, ReportJob, ReportJobStatus, utcnow
from app.services.access_gate import AccessTokenGate
from app.services.email_service import EmailService
from app.services.report_service import ReportService


# Retrying cannot change the outcome of these
PERMANENT_ERRORS = (NotFound, Refused, SchemaViolation)


class ReportWorker:
    """Generates reports and emails access links for queued jobs"""

    def __init__(
        self,
        report_service: ReportService,
        gate: AccessTokenGate,
        email_service: EmailService,
        session_factory=None,
        base_url: Optional[str] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        concurrency: Optional[int] = None,
    ):
        settings = get_settings()
        self.report_service = report_service
        self.gate = gate
        self.email_service = email_service
        self.session_factory = session_factory or db_manager.get_session
        self.base_url = (base_url or settings.APP_BASE_URL).rstrip("/")
        self.max_attempts = max_attempts if max_attempts is not None else settings.REPORT_MAX_ATTEMPTS
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.REPORT_RETRY_BACKOFF_SECONDS
        )
        self.concurrency = concurrency if concurrency is not None else settings.REPORT_WORKER_CONCURRENCY

        self.queue: asyncio.Queue = asyncio.Queue()
        self.is_running = False
        self._tasks: List[asyncio.Task] = []
        self._retry_handles: List[asyncio.TimerHandle] = []

    async def enqueue(self, analysis_id: Any, email: str, db: AsyncSession) -> ReportJob:
        """
        Persist a pending job and hand it to the workers

        The analysis id is stored as submitted; an unknown analysis fails the
        job when it runs.

        Raises:
            PersistenceError: The job could not be stored
        """
        job = ReportJob(analysis_id=str(analysis_id), email=email)
        try:
            db.add(job)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to queue report job: {str(e)}", extra={"analysis_id": analysis_id})
            raise PersistenceError("Failed to queue report")

        self.queue.put_nowait(job.id)
        logger.info("Report job queued", extra={"job_id": job.id, "analysis_id": analysis_id})
        return job

    async def start(self) -> None:
        """Re-queue unfinished jobs and start the worker tasks"""
        if self.is_running:
            return

        recovered = await self.recover_pending()
        self._tasks = [
            asyncio.create_task(self._run(i), name=f"report-worker-{i}")
            for i in range(self.concurrency)
        ]
        self.is_running = True
        logger.info(f"Report worker started with {self.concurrency} task(s), {recovered} job(s) recovered")

    async def stop(self) -> None:
        """Cancel workers and pending retries; unfinished jobs stay in the table"""
        for handle in self._retry_handles:
            handle.cancel()
        self._retry_handles.clear()

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.is_running = False
        logger.info("Report worker stopped")

    async def recover_pending(self) -> int:
        """Queue PENDING and RUNNING jobs left over from a previous process"""
        async with self.session_factory() as db:
            result = await db.execute(
                select(ReportJob.id)
                .where(ReportJob.status.in_([ReportJobStatus.PENDING.value, ReportJobStatus.RUNNING.value]))
                .order_by(ReportJob.created_at)
            )
            job_ids = result.scalars().all()

        for job_id in job_ids:
            self.queue.put_nowait(job_id)
        return len(job_ids)

    async def _run(self, worker_number: int) -> None:
        while True:
            job_id = await self.queue.get()
            try:
                await self.process_job(job_id)
            except Exception as e:
                # Store failures while recording the outcome; the job stays
                # unfinished in the table and is recovered on restart
                logger.error(f"Report worker {worker_number} could not record job outcome: {str(e)}",
                             extra={"job_id": job_id})
            finally:
                self.queue.task_done()

    async def process_job(self, job_id: UUID) -> Optional[ReportJobStatus]:
        """
        Run one attempt of a job

        Pipeline errors are recorded on the job and never propagated.

        Returns:
            The job status after this attempt, or None if there was nothing to run
        """
        async with self.session_factory() as db:
            job = await db.get(ReportJob, job_id)
            if job is None or job.status in (ReportJobStatus.SUCCEEDED.value, ReportJobStatus.FAILED.value):
                return None

            job.status = ReportJobStatus.RUNNING.value
            job.attempts += 1
            job.updated_at = utcnow()
            await db.commit()
            logger.info(f"Report job attempt {job.attempts}", extra={"job_id": job.id, "analysis_id": job.analysis_id})

            try:
                await self._execute(job, db)
            except Exception as e:
                await db.rollback()
                await db.refresh(job)
                return await self._handle_failure(job, e, db)

            job.status = ReportJobStatus.SUCCEEDED.value
            job.last_error = None
            job.updated_at = utcnow()
            await db.commit()
            logger.info("Report job succeeded", extra={"job_id": job.id, "analysis_id": job.analysis_id})
            return ReportJobStatus.SUCCEEDED

    async def _execute(self, job: ReportJob, db: AsyncSession) -> None:
        # Each step is recorded so a retry resumes after the last completed one
        if job.report_completed_at is None:
            await self.report_service.generate_report(job.analysis_id, job.email, db)
            job.report_completed_at = utcnow()
            await db.commit()

        if job.delivered_at is None:
            access = await self.gate.issue(job.analysis_id, job.email, db)
            analysis = await db.get(Analysis, access.analysis_id)
            await self.email_service.send_report_ready(
                job.email,
                self.report_url(access.token),
                analysis.total_score,
                analysis.validation_status,
            )
            job.delivered_at = utcnow()
            await db.commit()

    def report_url(self, token: str) -> str:
        return f"{self.base_url}/report/access?{urlencode({'token': token})}"

    async def _handle_failure(self, job: ReportJob, error: Exception, db: AsyncSession) -> ReportJobStatus:
        job.last_error = f"{type(error).__name__}: {str(error)}"[:1000]
        job.updated_at = utcnow()

        if isinstance(error, PERMANENT_ERRORS) or job.attempts >= self.max_attempts:
            job.status = ReportJobStatus.FAILED.value
            await db.commit()
            logger.error(
                f"Report job failed after {job.attempts} attempt(s): {job.last_error}",
                extra={"job_id": job.id, "analysis_id": job.analysis_id, "alert": True},
            )
            return ReportJobStatus.FAILED

        job.status = ReportJobStatus.PENDING.value
        await db.commit()

        delay = self.backoff_seconds * 2 ** (job.attempts - 1)
        logger.warning(
            f"Report job attempt {job.attempts} failed, retrying in {delay:g}s: {job.last_error}",
            extra={"job_id": job.id, "analysis_id": job.analysis_id},
        )
        self._schedule_retry(job.id, delay)
        return ReportJobStatus.PENDING

    def _schedule_retry(self, job_id: UUID, delay: float) -> None:
        if delay <= 0:
            self.queue.put_nowait(job_id)
            return
        loop = asyncio.get_running_loop()
        self._retry_handles = [h for h in self._retry_handles if not h.cancelled() and h.when() > loop.time()]
        self._retry_handles.append(loop.call_later(delay, self.queue.put_nowait, job_id))
