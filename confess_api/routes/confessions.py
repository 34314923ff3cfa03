"""
Confession routes: anonymous submission, public feeds and moderation.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List

from ..cache import TTLStore, get_cache
from ..config import get_settings
from ..database import get_db
from ..limiter import limiter
from ..models.confession import Confession
from ..push import PushNotifier, get_notifier
from ..responses import success
from ..schemas.confession import (
    ApproveRequest,
    ConfessionCreate,
    ConfessionResponse,
    NextIdResponse,
    OverviewResponse,
    PublicConfessionResponse,
    RejectRequest,
    RollbackRequest,
    SyncPushRequest,
)
from ..services.confessions import ConfessionService

settings = get_settings()

router = APIRouter(prefix="/api/confessions", tags=["confessions"])

OVERVIEW_KEY = "confessions:overview"
APPROVED_PREFIX = "confessions:approved:"


def _invalidate_listings(cache: TTLStore):
    """Drop cached feeds after anything that changes a status."""
    cache.delete(OVERVIEW_KEY)
    for key in cache.keys():
        if isinstance(key, str) and key.startswith(APPROVED_PREFIX):
            cache.delete(key)


@router.get("", response_model=List[ConfessionResponse])
def list_confessions(
    limit: int = Query(settings.default_page_size, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Newest confessions in any state (moderation queue)."""
    return ConfessionService(db).fetch_all(limit)


@router.post("", response_model=ConfessionResponse)
@limiter.limit(settings.submit_rate_limit)
def submit_confession(
    request: Request,
    payload: ConfessionCreate,
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
):
    """Submit a new anonymous confession. It starts out pending."""
    confession = ConfessionService(db).create(Confession(**payload.model_dump()))
    cache.delete(OVERVIEW_KEY)
    return confession


@router.get("/overview", response_model=OverviewResponse)
def get_overview(
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
):
    """Total, pending and rejected counts."""
    cached = cache.get(OVERVIEW_KEY)
    if cached is not None:
        return cached

    overview = OverviewResponse(**ConfessionService(db).fetch_overview()._asdict())
    cache.set(OVERVIEW_KEY, overview, cache.default_expiration())
    return overview


@router.get("/approved", response_model=List[PublicConfessionResponse])
def get_approved(
    limit: int = Query(settings.default_page_size, ge=1, le=500),
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
):
    """Public feed of approved confessions."""
    key = f"{APPROVED_PREFIX}{limit}"
    cached = cache.get(key)
    if cached is not None:
        return cached

    confessions = [
        PublicConfessionResponse.model_validate(c)
        for c in ConfessionService(db).fetch_approved(limit)
    ]
    cache.set(key, confessions, cache.default_expiration())
    return confessions


@router.get("/search", response_model=List[PublicConfessionResponse])
def search_confessions(
    q: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Search approved confessions by content."""
    return ConfessionService(db).search(q)


@router.get("/next-id", response_model=NextIdResponse)
def get_next_id(db: Session = Depends(get_db)):
    """Public number the next approval will receive."""
    return NextIdResponse(next_id=ConfessionService(db).get_next_confession_id())


@router.put("/push-id")
def sync_push_id(
    payload: SyncPushRequest,
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
):
    """Re-point a sender's confessions at a new device token."""
    ConfessionService(db).sync_push_id(payload.sender, payload.push_id)
    _invalidate_listings(cache)
    return success(message="Push id synced")


@router.get("/sender/{sender}", response_model=List[ConfessionResponse])
def get_by_sender(
    sender: str,
    limit: int = Query(settings.default_page_size, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """A sender's own confessions in any state."""
    return ConfessionService(db).fetch_by_sender(sender, limit)


@router.get("/{confession_id}", response_model=ConfessionResponse)
def get_confession(confession_id: int, db: Session = Depends(get_db)):
    return ConfessionService(db).fetch_by_id(confession_id)


@router.delete("/{confession_id}")
def delete_confession(
    confession_id: int,
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
):
    """Soft delete a confession."""
    ConfessionService(db).delete(confession_id)
    _invalidate_listings(cache)
    return success(message=f"Confession {confession_id} deleted")


@router.post("/{confession_id}/approve", response_model=ConfessionResponse)
def approve_confession(
    confession_id: int,
    body: ApproveRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
    notifier: PushNotifier = Depends(get_notifier),
):
    """Approve a pending confession and assign its public number."""
    confession, outbox = ConfessionService(db).approve(confession_id, body.approver_id)
    background_tasks.add_task(notifier.deliver, outbox.id)
    _invalidate_listings(cache)
    return confession


@router.post("/{confession_id}/reject", response_model=ConfessionResponse)
def reject_confession(
    confession_id: int,
    body: RejectRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
    notifier: PushNotifier = Depends(get_notifier),
):
    """Reject a pending confession with a reason."""
    confession, outbox = ConfessionService(db).reject(confession_id, body.approver_id, body.reason)
    background_tasks.add_task(notifier.deliver, outbox.id)
    _invalidate_listings(cache)
    return confession


@router.post("/{confession_id}/rollback", response_model=ConfessionResponse)
def rollback_confession(
    confession_id: int,
    body: RollbackRequest,
    db: Session = Depends(get_db),
    cache: TTLStore = Depends(get_cache),
):
    """Return an approved confession to the pending queue."""
    confession = ConfessionService(db).rollback_approve(confession_id, body.approver_id)
    _invalidate_listings(cache)
    return confession
