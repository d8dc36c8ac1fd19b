"""Tests for the duplicate-safe notification recorder."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta
from threading import Barrier

import pytest

from app.domain.entities import (
    ALERT_TYPE_CADUCITY,
    ALERT_TYPE_PRESCRIPTION,
    CHANNEL_BROWSER,
    CHANNEL_EMAIL,
    CHANNEL_SYSTEM,
    ENTITY_FOLDER,
    ENTITY_MOVEMENT,
    NotificationRecord,
    NotificationSettings,
    ResolvedSettings,
)
from app.infrastructure.database import SessionLocal
from app.infrastructure.notifications import NotificationRecorder
from app.infrastructure.repositories import NotifiableRepository
from app.utils import utcnow


def _record(channel: str = CHANNEL_EMAIL, *, success: bool = True, when=None):
    return NotificationRecord(
        date=when or utcnow(), channel=channel, success=success, details="Enviado"
    )


@pytest.fixture
def movements(make_user, make_movement, today):
    user = make_user()
    return [make_movement(user.id, today + timedelta(days=offset)) for offset in (1, 2, 3)]


def test_second_call_inside_window_skips_everything(session, movements) -> None:
    recorder = NotificationRecorder(session, window_seconds=5)
    record = _record()

    first = recorder.record(ENTITY_MOVEMENT, movements, record)
    second = recorder.record(ENTITY_MOVEMENT, movements, record)

    assert (first.modified, first.skipped, first.total) == (3, 0, 3)
    assert (second.modified, second.skipped, second.total) == (0, 3, 3)
    history = NotifiableRepository(session, ENTITY_MOVEMENT).history_for(movements)
    assert all(len(history[entity_id]) == 1 for entity_id in movements)


def test_interleaved_callers_append_exactly_once(session, movements) -> None:
    sessions = [SessionLocal() for _ in range(4)]
    try:
        results = [
            NotificationRecorder(other, window_seconds=60).record(
                ENTITY_MOVEMENT, list(reversed(movements)), _record()
            )
            for other in sessions
        ]
    finally:
        for other in sessions:
            other.close()

    assert sum(result.modified for result in results) == len(movements)
    assert sum(result.skipped for result in results) == len(movements) * 3
    history = NotifiableRepository(session, ENTITY_MOVEMENT).history_for(movements)
    assert sorted(len(records) for records in history.values()) == [1, 1, 1]


def test_concurrent_callers_in_threads_append_exactly_once(session, movements) -> None:
    workers = 4
    barrier = Barrier(workers)

    def claim(_):
        own_session = SessionLocal()
        try:
            barrier.wait(timeout=5)
            return NotificationRecorder(own_session, window_seconds=60).record(
                ENTITY_MOVEMENT, movements, _record()
            )
        finally:
            own_session.close()

    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(claim, range(workers)))

    assert sum(result.modified for result in results) == len(movements)
    assert sum(result.skipped for result in results) == len(movements) * (workers - 1)
    history = NotifiableRepository(session, ENTITY_MOVEMENT).history_for(movements)
    assert sorted(len(records) for records in history.values()) == [1, 1, 1]


def test_channels_are_claimed_independently(session, movements) -> None:
    recorder = NotificationRecorder(session)

    email = recorder.record(ENTITY_MOVEMENT, movements, _record(CHANNEL_EMAIL))
    browser = recorder.record(ENTITY_MOVEMENT, movements, _record(CHANNEL_BROWSER))

    assert email.modified == 3
    assert browser.modified == 3


def test_folder_alert_types_are_claimed_independently(
    session, make_user, make_folder, today
) -> None:
    user = make_user()
    folder_id = make_folder(user.id, today - timedelta(days=177))
    recorder = NotificationRecorder(session, window_seconds=60)

    caducity = recorder.record(
        ENTITY_FOLDER, [folder_id], replace(_record(), alert_type=ALERT_TYPE_CADUCITY)
    )
    prescription = recorder.record(
        ENTITY_FOLDER, [folder_id], replace(_record(), alert_type=ALERT_TYPE_PRESCRIPTION)
    )
    repeated = recorder.record(
        ENTITY_FOLDER, [folder_id], replace(_record(), alert_type=ALERT_TYPE_PRESCRIPTION)
    )

    assert (caducity.modified, prescription.modified, repeated.modified) == (1, 1, 0)
    history = NotifiableRepository(session, ENTITY_FOLDER).history_for([folder_id])
    assert sorted(record.alert_type for record in history[folder_id]) == [
        ALERT_TYPE_CADUCITY,
        ALERT_TYPE_PRESCRIPTION,
    ]


def test_alert_types_are_rejected_for_entities_without_them(session, movements) -> None:
    with pytest.raises(ValueError, match="no caducity alerts"):
        NotificationRecorder(session).record(
            ENTITY_MOVEMENT, movements, replace(_record(), alert_type=ALERT_TYPE_CADUCITY)
        )


def test_window_expiry_allows_a_new_record(session, movements) -> None:
    recorder = NotificationRecorder(session, window_seconds=5)
    start = utcnow()

    recorder.record(ENTITY_MOVEMENT, movements[:1], _record(when=start))
    inside = recorder.record(ENTITY_MOVEMENT, movements[:1], _record(when=start + timedelta(seconds=3)))
    after = recorder.record(ENTITY_MOVEMENT, movements[:1], _record(when=start + timedelta(seconds=6)))

    assert inside.modified == 0
    assert after.modified == 1


def test_duplicate_ids_in_one_batch_count_once(session, movements) -> None:
    result = NotificationRecorder(session).record(
        ENTITY_MOVEMENT, [movements[0], movements[0], None], _record()
    )

    assert result.total == 1
    assert result.recorded_ids == [movements[0]]
    assert len(result.notification_ids[movements[0]]) == 32


def test_missing_settings_are_backfilled(session, make_user, make_movement, today) -> None:
    user = make_user()
    plain = make_movement(user.id, today)
    custom = make_movement(
        user.id, today, notification_settings={"notifyOnceOnly": False, "daysInAdvance": 2}
    )

    NotificationRecorder(session).record(
        ENTITY_MOVEMENT,
        [plain, custom],
        _record(),
        settings_to_backfill=ResolvedSettings(notify_once_only=True, days_in_advance=5),
    )

    repository = NotifiableRepository(session, ENTITY_MOVEMENT)
    assert repository.get(plain).notification_settings == NotificationSettings(True, 5)
    assert repository.get(custom).notification_settings == NotificationSettings(False, 2)


def test_browser_success_sets_latch_and_failure_does_not(session, movements) -> None:
    recorder = NotificationRecorder(session)
    recorder.record(ENTITY_MOVEMENT, movements[:1], _record(CHANNEL_BROWSER))
    recorder.record(ENTITY_MOVEMENT, movements[1:2], _record(CHANNEL_BROWSER, success=False))

    repository = NotifiableRepository(session, ENTITY_MOVEMENT)
    assert repository.get(movements[0]).browser_alert_sent is True
    assert repository.get(movements[1]).browser_alert_sent is False
    assert repository.get(movements[2]).browser_alert_sent is False


def test_failed_delivery_is_stored_as_unsuccessful(session, movements) -> None:
    NotificationRecorder(session).record(
        ENTITY_MOVEMENT, movements[:1], _record(success=False)
    )

    entity = NotifiableRepository(session, ENTITY_MOVEMENT).get(movements[0])
    assert [record.success for record in entity.notifications] == [False]
    assert entity.records_for(CHANNEL_EMAIL) == []


def test_system_channel_cannot_be_claimed(session, movements) -> None:
    with pytest.raises(ValueError):
        NotificationRecorder(session).record(ENTITY_MOVEMENT, movements, _record(CHANNEL_SYSTEM))


def test_unknown_kind_is_rejected(session) -> None:
    with pytest.raises(ValueError):
        NotificationRecorder(session).record("invoice", [1], _record())


def test_sequential_isolates_failing_items(session, movements) -> None:
    delivered: list[int] = []

    def deliver(entity_id: int) -> str:
        if entity_id == movements[1]:
            raise RuntimeError("socket closed")
        delivered.append(entity_id)
        return f"alert-{entity_id}"

    recorder = NotificationRecorder(session)
    recorder.record(ENTITY_MOVEMENT, movements[2:], _record(CHANNEL_BROWSER))
    report = recorder.record_sequential(
        ENTITY_MOVEMENT, movements, _record(CHANNEL_BROWSER), before_record=deliver
    )

    assert report.to_dict() == {
        "total": 3,
        "successful": 1,
        "skipped": 1,
        "failed": 1,
        "errors": [{"item_id": movements[1], "error": "socket closed"}],
    }
    assert report.recorded_ids == [movements[0]]
    assert report.skipped_ids == [movements[2]]
    assert report.delivered == {
        movements[0]: f"alert-{movements[0]}",
        movements[2]: f"alert-{movements[2]}",
    }
    assert delivered == [movements[0], movements[2]]


def test_append_record_is_unconditional(session, movements) -> None:
    recorder = NotificationRecorder(session)
    record = NotificationRecord(
        date=utcnow(), channel=CHANNEL_SYSTEM, success=False, details="Usuario no encontrado"
    )

    assert recorder.append_record(ENTITY_MOVEMENT, movements[:1] + [999], record) == 1
    assert recorder.append_record(ENTITY_MOVEMENT, movements[:1], record) == 1

    entity = NotifiableRepository(session, ENTITY_MOVEMENT).get(movements[0])
    assert len(entity.notifications) == 2


def test_clean_duplicate_records_keeps_first_of_window(session, movements) -> None:
    recorder = NotificationRecorder(session, window_seconds=5)
    start = utcnow()
    for seconds in (0, 1, 2, 10):
        recorder.append_record(
            ENTITY_MOVEMENT,
            movements[:1],
            _record(when=start + timedelta(seconds=seconds)),
        )

    removed = recorder.clean_duplicate_records(ENTITY_MOVEMENT, movements[0])

    assert removed == 2
    entity = NotifiableRepository(session, ENTITY_MOVEMENT).get(movements[0])
    assert [record.date for record in entity.notifications] == [
        start,
        start + timedelta(seconds=10),
    ]
