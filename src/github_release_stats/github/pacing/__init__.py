"""Request queueing for GitHub API.

This module serializes GitHub calls so that they are paced, retried
on transient failure, and held back while the quota is critical.

Components:
- RequestQueue: FIFO queue with a single worker, backoff and admission control
- QueuedRequest: A submitted request and the future its caller awaits
"""

from .queue import QueuedRequest, RequestQueue

__all__ = [
    "QueuedRequest",
    "RequestQueue",
]
