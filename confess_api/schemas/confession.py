from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ConfessionBase(BaseModel):
    content: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1, max_length=250)
    push_id: str = Field(..., min_length=1, max_length=250)


class ConfessionCreate(ConfessionBase):
    pass


class ConfessionResponse(ConfessionBase):
    id: int
    status: int
    approver: Optional[int] = 0
    reason: Optional[str] = ""
    cfs_id: Optional[int] = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicConfessionResponse(BaseModel):
    """Approved confession as shown on the public feed. No submitter details."""
    id: int
    content: str
    cfs_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApproveRequest(BaseModel):
    approver_id: int


class RollbackRequest(BaseModel):
    approver_id: int


class RejectRequest(BaseModel):
    approver_id: int
    reason: str = Field("", max_length=250)


class SyncPushRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    push_id: str = Field(..., min_length=1, max_length=250)


class OverviewResponse(BaseModel):
    total: int
    pending: int
    rejected: int


class NextIdResponse(BaseModel):
    next_id: int
