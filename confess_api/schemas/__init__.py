from .confession import (
    ConfessionCreate,
    ConfessionResponse,
    PublicConfessionResponse,
    ApproveRequest,
    RollbackRequest,
    RejectRequest,
    SyncPushRequest,
    OverviewResponse,
    NextIdResponse,
)

__all__ = [
    "ConfessionCreate", "ConfessionResponse", "PublicConfessionResponse",
    "ApproveRequest", "RollbackRequest", "RejectRequest",
    "SyncPushRequest",
    "OverviewResponse", "NextIdResponse",
]
