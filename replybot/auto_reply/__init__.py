"""
Auto-reply system for replybot.

Provides:
- Rate-limited, priority-ordered outbound request scheduling
- Retry on rate limits and transient failures
- Reply candidate selection and style normalization
- The polling reply loop
"""

from replybot.auto_reply.errors import (
    ReplyBotError,
    RateLimited,
    TransientNetworkError,
    PermanentError,
    RetryExhausted,
    SchedulerClosed,
    ConfigError,
    StartupError,
)
from replybot.auto_reply.retry import (
    RetryConfig,
    RetryPolicy,
)
from replybot.auto_reply.queue import (
    QueuedRequest,
    RequestKind,
    RequestScheduler,
    SchedulerConfig,
)
from replybot.auto_reply.selector import (
    CandidateSelector,
    SelectorConfig,
)
from replybot.auto_reply.dispatch import (
    AutoReplyLoop,
    DispatchConfig,
    LoopState,
)

__all__ = [
    # Errors
    "ReplyBotError",
    "RateLimited",
    "TransientNetworkError",
    "PermanentError",
    "RetryExhausted",
    "SchedulerClosed",
    "ConfigError",
    "StartupError",
    # Scheduling
    "RetryConfig",
    "RetryPolicy",
    "QueuedRequest",
    "RequestKind",
    "RequestScheduler",
    "SchedulerConfig",
    # Selection
    "CandidateSelector",
    "SelectorConfig",
    # Loop
    "AutoReplyLoop",
    "DispatchConfig",
    "LoopState",
]
