"""Priority escalation policy: which channels each priority reaches."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from avisos.domain.entities import DeliveryChannel, NotificationPriority
from avisos.domain.entities.notification import parse_channels, parse_priority
from avisos.domain.exceptions import ValidationError

# Ordered from least to most severe.
PRIORITY_ORDER: tuple[NotificationPriority, ...] = (
    NotificationPriority.LOW,
    NotificationPriority.MEDIUM,
    NotificationPriority.HIGH,
    NotificationPriority.CRITICAL,
)

DEFAULT_CHANNEL_POLICY: dict[NotificationPriority, tuple[DeliveryChannel, ...]] = {
    NotificationPriority.LOW: (DeliveryChannel.REALTIME,),
    NotificationPriority.MEDIUM: (DeliveryChannel.REALTIME, DeliveryChannel.PUSH),
    NotificationPriority.HIGH: (
        DeliveryChannel.REALTIME,
        DeliveryChannel.PUSH,
        DeliveryChannel.EMAIL,
    ),
    NotificationPriority.CRITICAL: (
        DeliveryChannel.REALTIME,
        DeliveryChannel.PUSH,
        DeliveryChannel.WHATSAPP,
        DeliveryChannel.EMAIL,
    ),
}


class ChannelPolicy:
    """Map each priority to the channels attempted for it.

    Channel sets must be nested: every channel used by a priority is also
    used by every more severe priority.
    """

    def __init__(
        self,
        mapping: Mapping[NotificationPriority | str, Sequence[DeliveryChannel | str]] | None = None,
    ) -> None:
        source = DEFAULT_CHANNEL_POLICY if mapping is None else mapping
        try:
            resolved = {
                parse_priority(priority): tuple(parse_channels(channels))
                for priority, channels in source.items()
            }
        except ValidationError as exc:
            raise ValueError(f"Invalid channel policy: {exc}") from exc

        missing = [priority.value for priority in PRIORITY_ORDER if priority not in resolved]
        if missing:
            raise ValueError(f"Invalid channel policy: missing priorities {missing}")

        for lower, higher in zip(PRIORITY_ORDER, PRIORITY_ORDER[1:]):
            if not set(resolved[lower]) <= set(resolved[higher]):
                raise ValueError(
                    "Invalid channel policy: channels for "
                    f"'{lower.value}' must also be used for '{higher.value}'"
                )
        self._mapping = resolved

    def channels_for(self, priority: NotificationPriority | str) -> tuple[DeliveryChannel, ...]:
        return self._mapping[parse_priority(priority)]

    def as_dict(self) -> dict[str, list[str]]:
        return {
            priority.value: [channel.value for channel in self._mapping[priority]]
            for priority in PRIORITY_ORDER
        }


__all__ = ["ChannelPolicy", "DEFAULT_CHANNEL_POLICY", "PRIORITY_ORDER"]
