"""Tests for the owner-scoped notification store."""

from __future__ import annotations

import random
from datetime import timedelta

import pytest

from avisos.domain.entities import (
    DeliveryChannel,
    Notification,
    NotificationKind,
    NotificationPriority,
    NotificationReference,
    ReferenceModel,
)
from avisos.domain.exceptions import NotFoundError, ValidationError
from avisos.infrastructure.models import NotificationModel
from avisos.infrastructure.repositories import NotificationRepository
from avisos.utils import local_now


def _notification(recipient_id: int, /, **overrides) -> Notification:
    values = {
        "id": None,
        "recipient_id": recipient_id,
        "kind": NotificationKind.TASK,
        "message": "Nueva tarea asignada",
    }
    values.update(overrides)
    return Notification(**values)


def test_create_assigns_identity_and_defaults(session, make_user) -> None:
    user = make_user()
    repository = NotificationRepository(session)

    saved = repository.create(
        _notification(
            user.id,
            kind="grade",
            message="  Tu entrega fue calificada  ",
            reference=NotificationReference(ReferenceModel.SUBMISSION, 12),
            metadata={"grade": 95, "due": local_now()},
        )
    )

    assert saved.id is not None
    assert saved.created_at is not None
    assert saved.kind is NotificationKind.GRADE
    assert saved.priority is NotificationPriority.MEDIUM
    assert saved.message == "Tu entrega fue calificada"
    assert saved.read is False
    assert saved.delivery_flags() == {
        "realtime": False,
        "push": False,
        "whatsapp": False,
        "email": False,
    }
    assert saved.reference == NotificationReference(ReferenceModel.SUBMISSION, 12)
    assert isinstance(saved.metadata["due"], str)


@pytest.mark.parametrize(
    "overrides",
    [
        {"message": "   "},
        {"message": "x" * 501},
        {"kind": "homework"},
        {"priority": "urgent"},
        {"recipient_id": 0},
        {"reference": NotificationReference("forum", 1)},
        {"group_key": "g" * 121},
        {"group_key": 42},
    ],
)
def test_create_rejects_invalid_input_without_writing(session, make_user, overrides) -> None:
    user = make_user()
    repository = NotificationRepository(session)

    with pytest.raises(ValidationError):
        repository.create(_notification(user.id, **overrides))

    assert session.query(NotificationModel).count() == 0


def test_message_of_exactly_max_length_is_accepted(session, make_user) -> None:
    user = make_user()

    saved = NotificationRepository(session).create(_notification(user.id, message="x" * 500))

    assert len(saved.message) == 500


def test_list_for_user_is_newest_first_and_paginated(session, make_user) -> None:
    user = make_user()
    other = make_user()
    repository = NotificationRepository(session)
    base = local_now()
    for index in range(5):
        repository.create(
            _notification(
                user.id,
                message=f"mensaje {index}",
                created_at=base - timedelta(minutes=5 - index),
            )
        )
    repository.create(_notification(other.id, message="ajeno"))

    first_page = repository.list_for_user(user.id, page=1, page_size=2)
    last_page = repository.list_for_user(user.id, page=3, page_size=2)

    assert [item.message for item in first_page.items] == ["mensaje 4", "mensaje 3"]
    assert [item.message for item in last_page.items] == ["mensaje 0"]
    assert first_page.total == 5
    assert first_page.unread == 5
    assert first_page.pages == 3


def test_list_for_user_filters_by_kind_and_read(session, make_user) -> None:
    user = make_user()
    repository = NotificationRepository(session)
    task = repository.create(_notification(user.id, kind="task"))
    repository.create(_notification(user.id, kind="forum"))
    repository.mark_read(task.id, user.id)

    assert [item.id for item in repository.list_for_user(user.id, kind="task").items] == [task.id]
    assert repository.list_for_user(user.id, read=True).total == 1
    assert repository.list_for_user(user.id, read=False).total == 1
    assert repository.list_for_user(user.id, kind="forum", read=True).total == 0


@pytest.mark.parametrize(("page", "page_size"), [(0, 20), (1, 0), (1, 101)])
def test_list_for_user_rejects_out_of_range_paging(session, make_user, page, page_size) -> None:
    user = make_user()

    with pytest.raises(ValidationError):
        NotificationRepository(session).list_for_user(user.id, page=page, page_size=page_size)


def test_mark_read_is_idempotent(session, make_user) -> None:
    user = make_user()
    repository = NotificationRepository(session)
    saved = repository.create(_notification(user.id))

    first = repository.mark_read(saved.id, user.id)
    second = repository.mark_read(saved.id, user.id)

    assert first.read is True
    assert second.read is True
    assert repository.count_unread(user.id) == 0


def test_foreign_and_missing_ids_are_indistinguishable(session, make_user) -> None:
    owner = make_user()
    intruder = make_user()
    repository = NotificationRepository(session)
    saved = repository.create(_notification(owner.id))

    with pytest.raises(NotFoundError) as foreign:
        repository.mark_read(saved.id, intruder.id)
    with pytest.raises(NotFoundError) as missing:
        repository.mark_read(saved.id + 100, intruder.id)
    with pytest.raises(NotFoundError):
        repository.delete(saved.id, intruder.id)
    with pytest.raises(NotFoundError):
        repository.get_for_user(saved.id, intruder.id)

    assert str(foreign.value) == str(missing.value)
    assert repository.get_for_user(saved.id, owner.id).read is False


def test_bulk_mark_read_is_scoped_to_the_recipient(session, make_user) -> None:
    owner = make_user()
    other = make_user()
    repository = NotificationRepository(session)
    own = [repository.create(_notification(owner.id)) for _ in range(3)]
    foreign = repository.create(_notification(other.id))

    updated = repository.mark_many_read([own[0].id, own[1].id, foreign.id], owner.id)

    assert updated == 2
    assert repository.count_unread(owner.id) == 1
    assert repository.count_unread(other.id) == 1
    assert repository.mark_all_read(owner.id) == 1
    assert repository.mark_all_read(owner.id) == 0
    assert repository.count_unread(other.id) == 1


def test_delete_is_permanent(session, make_user) -> None:
    user = make_user()
    repository = NotificationRepository(session)
    saved = repository.create(_notification(user.id))

    repository.delete(saved.id, user.id)

    assert repository.get(saved.id) is None
    with pytest.raises(NotFoundError):
        repository.delete(saved.id, user.id)


def test_purge_old_removes_only_old_read_notifications(session, make_user) -> None:
    user = make_user()
    other = make_user()
    repository = NotificationRepository(session)
    old = local_now() - timedelta(days=31)
    old_read = repository.create(_notification(user.id, read=True, created_at=old))
    old_unread = repository.create(_notification(user.id, created_at=old))
    recent_read = repository.create(_notification(user.id, read=True))
    foreign_old_read = repository.create(_notification(other.id, read=True, created_at=old))

    deleted = repository.purge_old(user.id, 30)

    assert deleted == 1
    assert repository.get(old_read.id) is None
    assert repository.get(old_unread.id) is not None
    assert repository.get(recent_read.id) is not None
    assert repository.get(foreign_old_read.id) is not None


def test_purge_old_rejects_negative_days(session, make_user) -> None:
    user = make_user()

    with pytest.raises(ValidationError):
        NotificationRepository(session).purge_old(user.id, -1)


def test_purge_expired_applies_retention_to_every_user(session, make_user) -> None:
    first = make_user()
    second = make_user()
    repository = NotificationRepository(session)
    expired = local_now() - timedelta(days=91)
    repository.create(_notification(first.id, created_at=expired))
    repository.create(_notification(second.id, created_at=expired, read=True))
    kept = repository.create(_notification(first.id))

    assert repository.purge_expired(90) == 2
    assert [item.id for item in repository.list_for_user(first.id).items] == [kept.id]


def test_mark_channels_delivered_sets_only_given_flags(session, make_user) -> None:
    user = make_user()
    repository = NotificationRepository(session)
    saved = repository.create(_notification(user.id))

    repository.mark_channels_delivered(saved.id, [DeliveryChannel.REALTIME, "email"])

    flags = repository.get(saved.id).delivery_flags()
    assert flags == {"realtime": True, "push": False, "whatsapp": False, "email": True}


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_unread_count_matches_projection_after_random_operations(
    session, make_user, seed
) -> None:
    rng = random.Random(seed)
    users = [make_user(), make_user()]
    repository = NotificationRepository(session)
    live: dict[int, tuple[int, bool]] = {}

    for _ in range(60):
        action = rng.choice(["create", "create", "read", "delete", "read_all"])
        user = rng.choice(users)
        owned = [nid for nid, (owner, _) in live.items() if owner == user.id]
        if action == "create" or not owned:
            saved = repository.create(_notification(user.id, message=f"m{rng.random()}"))
            live[saved.id] = (user.id, False)
        elif action == "read":
            target = rng.choice(owned)
            repository.mark_read(target, user.id)
            live[target] = (user.id, True)
        elif action == "delete":
            target = rng.choice(owned)
            repository.delete(target, user.id)
            del live[target]
        else:
            repository.mark_all_read(user.id)
            for nid in owned:
                live[nid] = (user.id, True)

        for candidate in users:
            expected = sum(
                1 for owner, read in live.values() if owner == candidate.id and not read
            )
            assert repository.count_unread(candidate.id) == expected
