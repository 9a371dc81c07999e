"""Persistence helpers for Web Push subscriptions."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from avisos.domain.entities import PushSubscription
from avisos.infrastructure.models import PushSubscriptionModel
from avisos.utils import to_local, stored_now


class PushSubscriptionRepository:
    """Manage the device registrations used by the push channel."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def register(
        self,
        *,
        user_id: int,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> PushSubscription:
        """Create or refresh the subscription identified by ``endpoint``.

        Endpoints are unique; registering an existing one moves it to
        ``user_id`` and re-activates it.
        """

        model = (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.endpoint == endpoint)
            .first()
        )
        if model is None:
            model = PushSubscriptionModel(endpoint=endpoint)
            self.session.add(model)
        model.user_id = user_id
        model.p256dh = p256dh
        model.auth = auth
        model.user_agent = user_agent
        model.is_active = True
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_active_for_user(self, user_id: int) -> Sequence[PushSubscription]:
        query = (
            self.session.query(PushSubscriptionModel)
            .filter(
                PushSubscriptionModel.user_id == user_id,
                PushSubscriptionModel.is_active.is_(True),
            )
            .order_by(PushSubscriptionModel.id)
        )
        return [self._to_entity(model) for model in query.all()]

    def deactivate(self, subscription_id: int) -> None:
        self.session.query(PushSubscriptionModel).filter(
            PushSubscriptionModel.id == subscription_id
        ).update({PushSubscriptionModel.is_active: False}, synchronize_session=False)
        self.session.commit()

    def deactivate_by_endpoint(self, user_id: int, endpoint: str) -> bool:
        updated = (
            self.session.query(PushSubscriptionModel)
            .filter(
                PushSubscriptionModel.user_id == user_id,
                PushSubscriptionModel.endpoint == endpoint,
            )
            .update({PushSubscriptionModel.is_active: False}, synchronize_session=False)
        )
        self.session.commit()
        return bool(updated)

    def touch(self, subscription_id: int) -> None:
        self.session.query(PushSubscriptionModel).filter(
            PushSubscriptionModel.id == subscription_id
        ).update(
            {PushSubscriptionModel.last_used_at: stored_now()},
            synchronize_session=False,
        )
        self.session.commit()

    @staticmethod
    def _to_entity(model: PushSubscriptionModel) -> PushSubscription:
        return PushSubscription(
            id=model.id,
            user_id=model.user_id,
            endpoint=model.endpoint,
            p256dh=model.p256dh,
            auth=model.auth,
            user_agent=model.user_agent,
            is_active=bool(model.is_active),
            created_at=to_local(model.created_at),
            last_used_at=to_local(model.last_used_at),
        )


__all__ = ["PushSubscriptionRepository"]
