"""
Subscription edge: ``subscriber`` follows ``channel`` (both are users).

No uniqueness constraint on (subscriber_id, channel_id); every row is one
edge and is counted once by the channel profile query.
"""
from sqlalchemy import Column, String, ForeignKey, Index

from models.base_model import BaseModel, Base


class Subscription(BaseModel, Base):
    __tablename__ = "subscriptions"

    subscriber_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    channel_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        Index("ix_subscriptions_channel_subscriber", "channel_id", "subscriber_id"),
        Index("ix_subscriptions_subscriber", "subscriber_id"),
    )
