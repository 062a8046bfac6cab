"""
Orders services package.

- OrderSyncEngine: active orders kept in step with the server's event stream
- OrderSubmissionService: optimistic order placement with draft backup/restore
"""

# Synchronization
from .sync_service import OrderSyncEngine, VisualDiffState

# Submission
from .submission_service import OrderSubmissionService, SubmissionStatus

__all__ = [
    # Sync
    'OrderSyncEngine',
    'VisualDiffState',
    # Submission
    'OrderSubmissionService',
    'SubmissionStatus',
]
