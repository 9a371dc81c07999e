"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.sql import expression

from avisos.infrastructure.database import Base
from avisos.utils import stored_now


def _flag_column() -> Column:
    return Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = Column(String(20), nullable=False)
    message = Column(String(500), nullable=False)
    priority = Column(String(10), nullable=False, default="medium")
    read = _flag_column()
    created_at = Column(DateTime(), nullable=False, default=stored_now)
    reference_model = Column(String(20), nullable=True)
    reference_id = Column(Integer, nullable=True)
    payload = Column("metadata", JSON, nullable=False, default=dict)
    group_key = Column(String(120), nullable=True, index=True)
    delivered_realtime = _flag_column()
    delivered_push = _flag_column()
    delivered_whatsapp = _flag_column()
    delivered_email = _flag_column()

    __table_args__ = (
        Index("ix_notification_recipient_created", "recipient_id", "created_at"),
        Index("ix_notification_recipient_read", "recipient_id", "read"),
        Index("ix_notification_kind_created", "kind", "created_at"),
    )


__all__ = ["NotificationModel"]
