"""Integrations module - contracts shared with the accounting sync collaborator."""
from cashline.integrations.retry import (
    RetryPolicy,
    RetryingExecutor,
    SyncJob,
    SyncJobFailed,
    SyncJobStatus,
    SyncJobType,
    build_sync_jobs,
)

__all__ = [
    "RetryPolicy",
    "RetryingExecutor",
    "SyncJob",
    "SyncJobFailed",
    "SyncJobStatus",
    "SyncJobType",
    "build_sync_jobs",
]
