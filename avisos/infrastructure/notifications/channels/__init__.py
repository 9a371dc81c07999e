"""Delivery channels for stored notifications."""

from .base import ChannelSender, DeliveryOutcome, OutcomeStatus, SessionFactory
from .email import EmailChannel
from .push import PushChannel
from .realtime import RealtimeChannel
from .whatsapp import WhatsAppChannel

__all__ = [
    "ChannelSender",
    "DeliveryOutcome",
    "EmailChannel",
    "OutcomeStatus",
    "PushChannel",
    "RealtimeChannel",
    "SessionFactory",
    "WhatsAppChannel",
]
