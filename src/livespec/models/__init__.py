from .spec_diff import ChangeSeverity, ChangeType, DiffSummary, SpecChange, SpecDiffResult
from .error_context import ErrorContext, ErrorType
from .collaborators import FetchResult, NotificationEvent, NotificationKind, SyncResult
from .live_source import LiveSpecSource
from .polling_state import PollHandle, PollingState

__all__ = [
    "ChangeSeverity",
    "ChangeType",
    "DiffSummary",
    "SpecChange",
    "SpecDiffResult",
    "ErrorContext",
    "ErrorType",
    "FetchResult",
    "NotificationEvent",
    "NotificationKind",
    "SyncResult",
    "LiveSpecSource",
    "PollHandle",
    "PollingState",
]
