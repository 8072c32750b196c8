"""
application.context - Request-scoped context.

Every service call receives its context explicitly. Two concurrent requests
get two different ResolutionContext instances, so nothing request-specific
lives on the services themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4


@dataclass
class ResolutionContext:
    """Per-request context passed through the application layer.

    Attributes:
        user_id:          Caller's user ID (provided by the adapter).
        conversation_id:  Conversation the request belongs to, if any.
        request_id:       Unique per request, for tracing/logging.
    """
    user_id: str
    conversation_id: Optional[str] = None
    request_id: str = field(default_factory=lambda: uuid4().hex)
