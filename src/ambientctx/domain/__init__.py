"""Domain models for ambientctx.

This package contains the core data structures, enumerations, and value
objects shared by the capture scheduler and the context store. All
models use Pydantic v2 for validation and serialization.
"""

from ambientctx.domain.models import (
    CaptureConfig,
    CaptureConfigUpdate,
    ChatMessage,
    ChatReply,
    ChatRole,
    ContextLimits,
    LifecycleState,
    Observation,
)

__all__ = [
    "CaptureConfig",
    "CaptureConfigUpdate",
    "ChatMessage",
    "ChatReply",
    "ChatRole",
    "ContextLimits",
    "LifecycleState",
    "Observation",
]
