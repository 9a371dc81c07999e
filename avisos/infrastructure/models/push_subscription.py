"""SQLAlchemy model for Web Push subscriptions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from avisos.infrastructure.database import Base
from avisos.utils import stored_now


class PushSubscriptionModel(Base):
    """Device registration able to receive push messages."""

    __tablename__ = "push_subscription"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    endpoint = Column(String(500), nullable=False, unique=True)
    p256dh = Column(Text, nullable=False)
    auth = Column(String(255), nullable=False)
    user_agent = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=stored_now)
    last_used_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_push_subscription_user_active", "user_id", "is_active"),)


__all__ = ["PushSubscriptionModel"]
