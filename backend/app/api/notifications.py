"""HTTP endpoints for reading and acknowledging notifications."""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from app.api.deps import get_current_user
from app.config import get_settings
from app.database import get_db
from app.models import Notification, User
from app.schemas import (
    MarkAllReadResult,
    NotificationPage,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    NotificationRead,
    Pagination,
    UnreadCount,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

settings = get_settings()


@router.get("", response_model=NotificationPage)
def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationPage:
    """Return the current user's notifications, newest first."""

    per_page = min(limit or settings.notifications_default_page_size, settings.notifications_max_page_size)
    total = db.scalar(
        select(func.count()).select_from(Notification).where(Notification.recipient_id == current_user.id)
    ) or 0
    stmt = (
        select(Notification)
        .where(Notification.recipient_id == current_user.id)
        .options(selectinload(Notification.sender))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    notifications = db.execute(stmt).scalars().all()
    return NotificationPage(
        notifications=[NotificationRead.model_validate(item) for item in notifications],
        pagination=Pagination(
            total=total,
            pages=math.ceil(total / per_page),
            current_page=page,
            per_page=per_page,
        ),
    )


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UnreadCount:
    count = db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == current_user.id, Notification.is_read.is_(False))
    )
    return UnreadCount(count=count or 0)


@router.post("/mark-all-read", response_model=MarkAllReadResult)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkAllReadResult:
    result = db.execute(
        update(Notification)
        .where(Notification.recipient_id == current_user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    db.commit()
    return MarkAllReadResult(updated=result.rowcount or 0)


@router.post("/{notification_id}/mark-read", response_model=NotificationRead)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationRead:
    stmt = select(Notification).where(
        Notification.id == notification_id,
        Notification.recipient_id == current_user.id,
    )
    notification = db.execute(stmt).scalar_one_or_none()
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return NotificationRead.model_validate(notification)


@router.get("/preferences", response_model=NotificationPreferences)
def get_preferences(current_user: User = Depends(get_current_user)) -> NotificationPreferences:
    return NotificationPreferences.model_validate(current_user)


@router.put("/preferences", response_model=NotificationPreferences)
def update_preferences(
    payload: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationPreferences:
    """Update e-mail and push toggles; omitted fields are left unchanged."""

    for field_name, value in payload.model_dump(exclude_none=True).items():
        setattr(current_user, field_name, value)
    db.commit()
    db.refresh(current_user)
    return NotificationPreferences.model_validate(current_user)
