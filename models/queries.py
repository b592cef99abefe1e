"""
Read-side aggregations over users, videos and subscription edges.

Each function runs explicit SQLAlchemy queries and returns plain dataclasses,
so the HTTP layer never sees ORM rows or join internals.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, and_
from sqlalchemy.orm import Session

from models.user import User
from models.video import Video
from models.subscription import Subscription


@dataclass(frozen=True)
class ChannelProfile:
    full_name: str
    username: str
    email: str
    subscriber_count: int
    channel_subscribed_to_count: int
    is_subscribed: bool


@dataclass(frozen=True)
class VideoOwner:
    full_name: str
    email: str
    username: str


@dataclass(frozen=True)
class WatchedVideo:
    id: str
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    owner: VideoOwner


def channel_profile(session: Session, username: str, viewer_id: Optional[str]) -> Optional[ChannelProfile]:
    """Counts and subscription flag for the channel named ``username``.

    The username match is case-insensitive. Returns None when no user matches.
    """
    subscriber_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    is_subscribed = (
        select(Subscription.id)
        .where(and_(Subscription.channel_id == User.id, Subscription.subscriber_id == viewer_id))
        .correlate(User)
        .exists()
    )

    stmt = select(
        User.full_name,
        User.username,
        User.email,
        subscriber_count.label("subscriber_count"),
        subscribed_to_count.label("channel_subscribed_to_count"),
        is_subscribed.label("is_subscribed"),
    ).where(func.lower(User.username) == username.strip().lower())

    row = session.execute(stmt).first()
    if row is None:
        return None
    return ChannelProfile(
        full_name=row.full_name,
        username=row.username,
        email=row.email,
        subscriber_count=int(row.subscriber_count or 0),
        channel_subscribed_to_count=int(row.channel_subscribed_to_count or 0),
        is_subscribed=bool(row.is_subscribed) if viewer_id else False,
    )


def watch_history(
    session: Session, user_id: str, offset: int = 0, limit: Optional[int] = None
) -> List[WatchedVideo]:
    """Videos from the user's watch history, in stored order, each with its owner.

    Ids that no longer resolve to a video are skipped before paging.
    """
    user = session.get(User, user_id)
    if user is None:
        return []
    video_ids = list(user.watch_history or [])
    if not video_ids:
        return []

    stmt = (
        select(Video, User.full_name, User.email, User.username)
        .join(User, Video.owner_id == User.id)
        .where(Video.id.in_(list(dict.fromkeys(video_ids))))
    )
    by_id = {}
    for video, full_name, email, username in session.execute(stmt):
        by_id[video.id] = WatchedVideo(
            id=video.id,
            video_file=video.video_file,
            thumbnail=video.thumbnail,
            title=video.title,
            description=video.description,
            duration=video.duration,
            views=video.views,
            is_published=video.is_published,
            created_at=video.created_at,
            updated_at=video.updated_at,
            owner=VideoOwner(full_name=full_name, email=email, username=username),
        )

    ordered = [by_id[vid] for vid in video_ids if vid in by_id]
    end = None if limit is None else offset + limit
    return ordered[offset:end]
