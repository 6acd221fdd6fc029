"""Likes, comments and follows: CRUD actions that notify the affected user.

A failed notification write surfaces as ``PersistenceFailure``, which the
application maps to HTTP 500.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.database import get_db
from app.models import Comment, Follow, Like, NotificationType, Poem, User
from app.schemas import CommentCreate, CommentRead, FollowResult, LikeToggleResult
from app.services.realtime import RealtimeServices, get_realtime

router = APIRouter(tags=["social"])


def _get_poem(poem_id: int, db: Session) -> Poem:
    poem = db.get(Poem, poem_id)
    if poem is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Poem not found")
    return poem


@router.post("/poems/{poem_id}/like", response_model=LikeToggleResult)
async def toggle_poem_like(
    poem_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    services: RealtimeServices = Depends(get_realtime),
) -> LikeToggleResult:
    """Like or unlike a poem; a new like on someone else's poem notifies its author."""

    poem = _get_poem(poem_id, db)
    author_id, title = poem.author_id, poem.title
    user_id, user_name = current_user.id, current_user.name

    existing = db.execute(
        select(Like).where(Like.poem_id == poem_id, Like.user_id == user_id)
    ).scalar_one_or_none()
    if existing is not None:
        db.delete(existing)
        db.commit()
    else:
        db.add(Like(poem_id=poem_id, user_id=user_id))
        db.commit()
        if author_id != user_id:
            await services.dispatcher.dispatch(
                kind=NotificationType.LIKE,
                content=f'{user_name} liked your poem "{title}"',
                recipient_id=author_id,
                sender_id=user_id,
                related={"poem_id": poem_id},
                link=f"/poem/{poem_id}",
            )

    like_count = db.scalar(select(func.count()).select_from(Like).where(Like.poem_id == poem_id)) or 0
    return LikeToggleResult(liked=existing is None, like_count=like_count)


@router.post(
    "/poems/{poem_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    poem_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    services: RealtimeServices = Depends(get_realtime),
) -> CommentRead:
    poem = _get_poem(poem_id, db)
    comment = Comment(poem_id=poem.id, user_id=current_user.id, content=payload.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    result = CommentRead.model_validate(comment)

    if poem.author_id != current_user.id:
        await services.dispatcher.dispatch(
            kind=NotificationType.COMMENT,
            content=f'{current_user.name} commented on your poem "{poem.title}"',
            recipient_id=poem.author_id,
            sender_id=current_user.id,
            related={"poem_id": poem.id, "comment_id": comment.id},
            link=f"/poem/{poem.id}#comment-{comment.id}",
        )
    return result


@router.post("/follow/{user_id}", response_model=FollowResult)
async def follow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    services: RealtimeServices = Depends(get_realtime),
) -> FollowResult:
    follower_id = current_user.id
    if user_id == follower_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")
    if db.get(User, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    existing = db.execute(
        select(Follow.id).where(Follow.follower_id == follower_id, Follow.following_id == user_id)
    ).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already following this user")

    follower_name = current_user.name
    db.add(Follow(follower_id=follower_id, following_id=user_id))
    db.commit()

    await services.dispatcher.dispatch(
        kind=NotificationType.FOLLOW,
        content=f"{follower_name} started following you",
        recipient_id=user_id,
        sender_id=follower_id,
        link=f"/profile/{follower_id}",
    )
    return FollowResult(is_following=True)


@router.delete("/follow/{user_id}", response_model=FollowResult)
def unfollow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FollowResult:
    follow = db.execute(
        select(Follow).where(Follow.follower_id == current_user.id, Follow.following_id == user_id)
    ).scalar_one_or_none()
    if follow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not following this user")
    db.delete(follow)
    db.commit()
    return FollowResult(is_following=False)
