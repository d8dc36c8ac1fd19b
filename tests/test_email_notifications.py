"""Tests for the per-user email notification flows."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta

import pytest

from app.application.use_cases.notification_logs import list_notification_logs
from app.application.use_cases.notifications import (
    build_unique_key,
    calculate_notify_at,
    register_judicial_movement,
    send_calendar_notifications,
    send_due_date_notifications,
    send_folder_inactivity_notifications,
    send_judicial_movement_notifications,
    send_movement_notifications,
    send_task_notifications,
)
from app.domain.entities import (
    ALERT_TYPE_CADUCITY,
    ALERT_TYPE_PRESCRIPTION,
    CHANNEL_EMAIL,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_MOVEMENT,
    JUDICIAL_STATUS_FAILED,
    JUDICIAL_STATUS_PENDING,
    JUDICIAL_STATUS_SENT,
    OUTCOME_DELIVERY_FAILED,
    OUTCOME_DISABLED,
    OUTCOME_INVALID_CONFIGURATION,
    OUTCOME_NOTHING_DUE,
    OUTCOME_NOTIFIED,
    OUTCOME_USER_NOT_FOUND,
)
from app.infrastructure.repositories import JudicialMovementRepository, NotifiableRepository
from app.utils import utcnow
from conftest import preferences


def test_due_movement_is_emailed_once(session, outbox, make_user, make_movement, today) -> None:
    user = make_user()
    due = make_movement(user.id, today + timedelta(days=5), title="Honorarios")
    make_movement(user.id, today + timedelta(days=9), title="Fuera de plazo")

    first = send_movement_notifications(session, user.id, today=today)
    second = send_movement_notifications(session, user.id, today=today)

    assert first.status == OUTCOME_NOTIFIED
    assert first.entity_ids == [due]
    assert second.status == OUTCOME_NOTHING_DUE
    [message] = outbox.sent
    assert message["to"] == user.email
    assert message["subject"] == "Tienes 1 movimiento(s) próximo(s) a expirar"
    assert "Honorarios" in message["html"]
    assert "Fuera de plazo" not in message["html"]

    entity = NotifiableRepository(session, ENTITY_MOVEMENT).get(due)
    assert [record.channel for record in entity.notifications] == [CHANNEL_EMAIL]
    assert entity.notifications[0].success is True
    assert entity.notification_settings is not None


def test_transport_failure_is_recorded_and_retried(
    session, outbox, make_user, make_movement, today
) -> None:
    user = make_user()
    movement = make_movement(user.id, today + timedelta(days=1))
    outbox.result = False

    failed = send_movement_notifications(session, user.id, today=today)

    assert failed.status == OUTCOME_DELIVERY_FAILED
    entity = NotifiableRepository(session, ENTITY_MOVEMENT).get(movement)
    assert [record.success for record in entity.notifications] == [False]

    outbox.result = True
    retried = send_movement_notifications(session, user.id, today=today)
    assert retried.status == OUTCOME_NOTIFIED
    assert len(outbox.sent) == 2


def test_transport_exception_becomes_failed_record(
    session, outbox, make_user, make_task, today
) -> None:
    user = make_user()
    make_task(user.id, today + timedelta(days=2))
    outbox.result = RuntimeError("SMTP caído")

    outcome = send_task_notifications(session, user.id, today=today)

    assert outcome.status == OUTCOME_DELIVERY_FAILED
    assert "SMTP caído" in outcome.message
    [entry] = list_notification_logs(session, user_id=user.id)
    assert entry.status == "failed"
    assert entry.delivery["last_error"] == "SMTP caído"
    assert entry.sent_at is None


def test_closed_tasks_are_ignored(session, outbox, make_user, make_task, today) -> None:
    user = make_user()
    make_task(user.id, today + timedelta(days=2), status="completada")
    make_task(user.id, today + timedelta(days=2), checked=True)

    assert send_task_notifications(session, user.id, today=today).status == OUTCOME_NOTHING_DUE
    assert outbox.sent == []


def test_configuration_errors_are_reported(session, outbox, make_user) -> None:
    user = make_user()

    missing = send_calendar_notifications(session, 999)
    invalid = send_calendar_notifications(session, user.id, days=0)

    assert missing.status == OUTCOME_USER_NOT_FOUND
    assert missing.is_configuration_error
    assert invalid.status == OUTCOME_INVALID_CONFIGURATION
    assert "0" in invalid.message
    assert outbox.sent == []


def test_disabled_kind_or_channel_sends_nothing(
    session, outbox, make_user, make_event, today
) -> None:
    no_email = make_user("a@example.com", prefs=preferences(channels={"email": False}))
    no_calendar = make_user("b@example.com", prefs=preferences(user={"calendar": False}))
    for user in (no_email, no_calendar):
        make_event(user.id, today + timedelta(days=1))

    for user in (no_email, no_calendar):
        outcome = send_calendar_notifications(session, user.id, today=today)
        assert outcome.status == OUTCOME_DISABLED
    assert outbox.sent == []


def test_days_argument_widens_the_window(session, outbox, make_user, make_event, today) -> None:
    user = make_user()
    make_event(user.id, today + timedelta(days=8))

    assert send_calendar_notifications(session, user.id, today=today).status == OUTCOME_NOTHING_DUE
    outcome = send_due_date_notifications(session, "event", user.id, days=10, today=today)
    assert outcome.status == OUTCOME_NOTIFIED


def test_force_daily_repeats_on_following_days(
    session, outbox, make_user, make_movement, today
) -> None:
    user = make_user()
    make_movement(user.id, today + timedelta(days=3))

    send_movement_notifications(session, user.id, today=today)
    blocked = send_movement_notifications(session, user.id, today=today + timedelta(days=1))
    forced = send_movement_notifications(
        session, user.id, today=today + timedelta(days=1), force_daily=True
    )

    assert blocked.status == OUTCOME_NOTHING_DUE
    assert forced.status == OUTCOME_NOTIFIED
    assert len(outbox.sent) == 2


def test_folder_inactivity_sends_one_email_per_alert_type(
    session, outbox, make_user, make_folder, today
) -> None:
    user = make_user()
    caducity = make_folder(user.id, today - timedelta(days=175), folder_name="Caduca pronto")
    prescription = make_folder(user.id, today - timedelta(days=725), folder_name="Prescribe")
    make_folder(user.id, today - timedelta(days=10), folder_name="Activa")
    make_folder(user.id, None, folder_name="Sin fechas")

    outcome = send_folder_inactivity_notifications(session, user.id, today=today)

    assert outcome.status == OUTCOME_NOTIFIED
    assert outcome.entity_ids == sorted([caducity, prescription])
    subjects = sorted(message["subject"] for message in outbox.sent)
    assert subjects == [
        "1 carpeta(s) próxima(s) a caducar",
        "1 carpeta(s) próxima(s) a prescribir",
    ]
    folder = NotifiableRepository(session, ENTITY_FOLDER).get(caducity)
    assert [record.alert_type for record in folder.notifications] == [ALERT_TYPE_CADUCITY]

    again = send_folder_inactivity_notifications(session, user.id, today=today)
    assert again.status == OUTCOME_NOTHING_DUE


def test_folder_due_for_both_alert_types_is_emailed_once_per_type(
    session, outbox, make_user, make_folder, today
) -> None:
    user = make_user(
        prefs=preferences(
            user={
                "inactivitySettings": {
                    "caducityDays": 180,
                    "prescriptionDays": 182,
                    "notifyOnceOnly": False,
                    "daysInAdvance": 5,
                }
            }
        )
    )
    folder_id = make_folder(user.id, today - timedelta(days=177))

    first = send_folder_inactivity_notifications(session, user.id, today=today)
    second = send_folder_inactivity_notifications(session, user.id, today=today)

    assert first.status == OUTCOME_NOTIFIED
    assert second.status == OUTCOME_NOTHING_DUE
    assert len(outbox.sent) == 2
    session.expire_all()
    folder = NotifiableRepository(session, ENTITY_FOLDER).get(folder_id)
    assert sorted((record.channel, record.alert_type) for record in folder.notifications) == [
        (CHANNEL_EMAIL, ALERT_TYPE_CADUCITY),
        (CHANNEL_EMAIL, ALERT_TYPE_PRESCRIPTION),
    ]


def test_delivery_is_written_to_the_audit_log(
    session, outbox, make_user, make_movement, today
) -> None:
    user = make_user()
    movement = make_movement(user.id, today + timedelta(days=1))

    send_movement_notifications(session, user.id, today=today)

    [entry] = list_notification_logs(session, user_id=user.id)
    assert entry.entity_type == ENTITY_MOVEMENT
    assert entry.entity_id == movement
    assert entry.method == CHANNEL_EMAIL
    assert entry.status == "sent"
    assert entry.delivery["recipient"] == user.email
    assert entry.entity_snapshot["id"] == movement
    assert entry.expires_at > entry.created_at


def _status(session, movement_id: int) -> str:
    session.expire_all()
    movement = JudicialMovementRepository(session).get(movement_id)
    return movement.attributes["notification_status"]


def test_judicial_movements_are_sent_and_closed(
    session, outbox, make_user, make_judicial_movement
) -> None:
    user = make_user()
    first = make_judicial_movement(user.id, expediente_id="exp-1")
    second = make_judicial_movement(user.id, expediente_id="exp-2", movement_type="Sentencia")
    later = make_judicial_movement(user.id, notify_at=utcnow() + timedelta(hours=3))

    outcome = send_judicial_movement_notifications(session, user.id)

    assert outcome.status == OUTCOME_NOTIFIED
    assert sorted(outcome.entity_ids) == sorted([first, second])
    [message] = outbox.sent
    assert message["subject"].startswith("Nuevos movimientos judiciales")
    assert "Sentencia" in message["html"]
    assert _status(session, first) == JUDICIAL_STATUS_SENT
    assert _status(session, second) == JUDICIAL_STATUS_SENT
    assert _status(session, later) == JUDICIAL_STATUS_PENDING

    again = send_judicial_movement_notifications(session, user.id)
    assert again.status == OUTCOME_NOTHING_DUE


def test_judicial_movements_stay_pending_after_transport_failure(
    session, outbox, make_user, make_judicial_movement
) -> None:
    user = make_user()
    movement = make_judicial_movement(user.id)
    outbox.result = False

    outcome = send_judicial_movement_notifications(session, user.id)

    assert outcome.status == OUTCOME_DELIVERY_FAILED
    assert _status(session, movement) == JUDICIAL_STATUS_PENDING


def test_judicial_movements_of_missing_user_fail(
    session, outbox, make_user, make_judicial_movement
) -> None:
    user = make_user()
    movement = make_judicial_movement(user.id)
    orphan = make_judicial_movement(4242)

    outcome = send_judicial_movement_notifications(session, 4242)

    assert outcome.status == OUTCOME_USER_NOT_FOUND
    assert _status(session, orphan) == JUDICIAL_STATUS_FAILED
    assert _status(session, movement) == JUDICIAL_STATUS_PENDING
    history = JudicialMovementRepository(session).get(orphan).notifications
    assert [(record.channel, record.success) for record in history] == [("system", False)]
    assert outbox.sent == []


def test_judicial_movements_fail_when_user_opted_out(
    session, outbox, make_user, make_judicial_movement
) -> None:
    user = make_user(prefs=preferences(user={"judicial": False}))
    movement = make_judicial_movement(user.id)

    outcome = send_judicial_movement_notifications(session, user.id)

    assert outcome.status == OUTCOME_DISABLED
    assert _status(session, movement) == JUDICIAL_STATUS_FAILED
    assert outbox.sent == []


def test_build_unique_key() -> None:
    digest = hashlib.md5("Se tiene presente".encode("utf-8")).hexdigest()[:8]

    key = build_unique_key(7, "exp-1", datetime(2024, 3, 10, 15, 30), "Despacho", "Se tiene presente")

    assert key == f"7_exp-1_2024-03-10_Despacho_{digest}"


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (datetime(2024, 3, 10, 10, 0), datetime(2024, 3, 10, 19, 0)),
        (datetime(2024, 3, 10, 20, 30), datetime(2024, 3, 10, 20, 30)),
    ],
)
def test_calculate_notify_at(now, expected) -> None:
    assert calculate_notify_at(now) == expected


def test_register_judicial_movement_is_idempotent(session, make_user) -> None:
    user = make_user()
    expediente = {
        "id": "exp-9",
        "number": 555,
        "year": 2023,
        "fuero": "CIV",
        "caratula": "Gómez c/ Ruiz s/ cobro",
    }
    movement = {
        "date": datetime(2024, 3, 10, 11, 0),
        "type": "Cédula",
        "detail": "Notifíquese",
    }

    created, is_new = register_judicial_movement(
        session, user_id=user.id, expediente=expediente, movement=movement
    )
    repeated, repeated_is_new = register_judicial_movement(
        session, user_id=user.id, expediente=expediente, movement=movement
    )

    assert is_new is True
    assert repeated_is_new is False
    assert repeated.id == created.id
    assert created.kind == ENTITY_JUDICIAL_MOVEMENT
    assert created.attributes["notification_status"] == JUDICIAL_STATUS_PENDING
    assert created.attributes["channels"] == ["email", "browser"]


def test_register_judicial_movement_requires_user(session) -> None:
    with pytest.raises(ValueError):
        register_judicial_movement(
            session,
            user_id=999,
            expediente={"id": "x", "number": 1, "year": 2024, "fuero": "CIV", "caratula": "c"},
            movement={"date": datetime(2024, 3, 10), "type": "t", "detail": "d"},
        )
