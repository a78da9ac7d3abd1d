"""
Retry policy for accounting-system sync jobs.

The forecast core performs no I/O and never retries. Upstream ingestion of
invoices, bills, payments and projects does, and it must follow one backoff
contract so the core's assumptions about data freshness hold:

    delay = base_delay_ms * multiplier ** retry_count

A job is attempted once plus at most max_retries more times, after which it
is marked failed.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from cashline.config import settings

logger = logging.getLogger(__name__)


class SyncJobType(str, Enum):
    INVOICES = "invoices"
    BILLS = "bills"
    PAYMENTS = "payments"
    PROJECTS = "projects"


class SyncJobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncJobFailed(Exception):
    """Raised when a sync job exhausts its retries."""

    def __init__(self, job: "SyncJob", cause: Exception):
        self.job = job
        self.cause = cause
        super().__init__(f"Sync job {job.id} failed after {job.retry_count} retries: {cause}")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: base_delay_ms * multiplier ** retry_count."""
    base_delay_ms: int = 1000
    multiplier: float = 2
    max_retries: int = 3

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            base_delay_ms=settings.SYNC_BASE_DELAY_MS,
            multiplier=settings.SYNC_BACKOFF_MULTIPLIER,
            max_retries=settings.SYNC_MAX_RETRIES,
        )

    def delay_for(self, retry_count: int) -> float:
        """Delay in milliseconds before retry number retry_count + 1."""
        return self.base_delay_ms * (self.multiplier ** retry_count)

    def should_retry(self, retry_count: int) -> bool:
        return retry_count < self.max_retries


@dataclass
class SyncJob:
    """One upstream sync job and its retry bookkeeping."""
    id: str
    organization_id: str
    type: SyncJobType
    status: SyncJobStatus = SyncJobStatus.PENDING
    retry_count: int = 0
    max_retries: int = 3
    last_sync: Optional[datetime] = None
    last_error: Optional[str] = None
    errors: List[str] = field(default_factory=list)


def build_sync_jobs(
    organization_id: str,
    policy: Optional[RetryPolicy] = None,
    now: Optional[datetime] = None,
) -> List[SyncJob]:
    """Create one pending job per sync type for an organisation."""
    policy = policy or RetryPolicy.from_settings()
    stamp = int((now or datetime.utcnow()).timestamp() * 1000)
    return [
        SyncJob(
            id=f"{organization_id}-{job_type.value}-{stamp}",
            organization_id=organization_id,
            type=job_type,
            max_retries=policy.max_retries,
        )
        for job_type in SyncJobType
    ]


class RetryingExecutor:
    """
    Runs an async sync operation under a RetryPolicy.

    The sleep function is injectable so callers (and tests) control timing.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def run(self, job: SyncJob, operation: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run operation for job, retrying failures with exponential backoff.

        Returns the operation's result and marks the job completed, or marks
        the job failed and raises SyncJobFailed once retries run out.
        """
        while True:
            job.status = SyncJobStatus.RUNNING
            try:
                result = await operation()
            except Exception as e:
                job.last_error = str(e)
                job.errors.append(str(e))

                if not self.policy.should_retry(job.retry_count):
                    job.status = SyncJobStatus.FAILED
                    logger.error(f"Sync job {job.id} ({job.type.value}) failed permanently: {e}")
                    raise SyncJobFailed(job, e) from e

                delay_ms = self.policy.delay_for(job.retry_count)
                job.retry_count += 1
                job.status = SyncJobStatus.PENDING
                logger.warning(
                    f"Sync job {job.id} failed (attempt {job.retry_count}/{self.policy.max_retries}), "
                    f"retrying in {delay_ms:.0f}ms: {e}"
                )
                await self._sleep(delay_ms / 1000)
                continue

            job.status = SyncJobStatus.COMPLETED
            job.last_sync = datetime.utcnow()
            logger.info(f"Sync job {job.id} ({job.type.value}) completed")
            return result
