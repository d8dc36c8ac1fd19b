"""Tests for authentication, pushes and catch-up on the browser channel."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from app.domain.entities import Alert
from app.infrastructure.notifications import BrowserChannel, ConnectionRegistry
from app.infrastructure.repositories import AlertRepository
from app.infrastructure.security import create_user_token, verify_user_token
from app.utils import utcnow
from conftest import FakeConnection

pytestmark = pytest.mark.anyio


class Credentials:
    """Credential validator whose accepted tokens can be revoked."""

    def __init__(self, *tokens: str) -> None:
        self.valid = set(tokens)

    def __call__(self, token: str, user_id: int) -> bool:
        return token in self.valid


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def create_alert(session):
    def _create_alert(user_id: int, text: str = "Vence un plazo", *, age_minutes: int = 0) -> Alert:
        return AlertRepository(session).create(
            Alert(
                id=None,
                user_id=user_id,
                primary_text=text,
                secondary_text="Pago de tasa - 12/03/2024",
                action_text="Ver movimiento",
                avatar_icon="TableDocument",
                created_at=utcnow() - timedelta(minutes=age_minutes),
            )
        )

    return _create_alert


def _channel(credentials=None, **options) -> BrowserChannel:
    return BrowserChannel(
        ConnectionRegistry(),
        credential_validator=credentials or Credentials("valid"),
        **options,
    )


async def test_invalid_credential_is_rejected(session, user) -> None:
    channel = _channel()
    connection = FakeConnection()

    assert await channel.authenticate(connection, user.id, "forged") is False

    assert connection.messages == [
        {"type": "authentication_error", "message": "Token inválido o expirado"}
    ]
    assert channel.is_user_connected(user.id) is False


async def test_non_numeric_user_id_is_rejected(session) -> None:
    channel = _channel()
    connection = FakeConnection()

    assert await channel.authenticate(connection, "abc", "valid") is False
    assert await channel.authenticate(connection, True, "valid") is False
    assert len(connection.of_type("authentication_error")) == 2


async def test_authentication_registers_and_flushes_pending(session, user, create_alert) -> None:
    create_alert(user.id, "Primera", age_minutes=10)
    create_alert(user.id, "Segunda", age_minutes=5)
    channel = _channel()
    connection = FakeConnection()

    assert await channel.authenticate(connection, str(user.id), "valid") is True

    assert connection.messages[0] == {"type": "authenticated", "userId": user.id}
    [batch] = connection.of_type("pending_alerts")
    assert [alert["primary_text"] for alert in batch["data"]] == ["Segunda", "Primera"]
    assert channel.get_connection_count(user.id) == 1
    assert channel.user_for(connection) == user.id
    await channel.disconnect(connection)


async def test_pending_catch_up_is_idempotent(session, user, create_alert) -> None:
    for index in range(3):
        create_alert(user.id, f"Alerta {index}", age_minutes=index)
    channel = _channel()
    connection = FakeConnection()
    channel.registry.add(user.id, connection)

    first = await channel.deliver_pending_alerts(user.id)
    second = await channel.deliver_pending_alerts(user.id)

    assert len(first) == 3
    assert second == []
    assert len(connection.of_type("pending_alerts")) == 1
    assert AlertRepository(session).list_pending(user.id) == []


async def test_pending_catch_up_is_bounded(session, user, create_alert) -> None:
    for index in range(4):
        create_alert(user.id, f"Alerta {index}", age_minutes=index)
    channel = _channel(pending_limit=2)
    connection = FakeConnection()
    channel.registry.add(user.id, connection)

    delivered = await channel.deliver_pending_alerts(user.id)

    assert [alert.primary_text for alert in delivered] == ["Alerta 0", "Alerta 1"]
    assert len(AlertRepository(session).list_pending(user.id)) == 2


async def test_push_to_offline_user_leaves_alert_pending(session, user, create_alert) -> None:
    alert = create_alert(user.id)
    channel = _channel()

    assert await channel.push(user.id, alert) is False

    stored = AlertRepository(session).get(alert.id)
    assert stored.delivered is False
    assert stored.delivery_attempts == 0


async def test_push_to_connected_user_marks_delivered(session, user, create_alert) -> None:
    alert = create_alert(user.id)
    channel = _channel()
    tabs = [FakeConnection(), FakeConnection()]
    for tab in tabs:
        channel.registry.add(user.id, tab)

    assert await channel.push(user.id, alert) is True

    for tab in tabs:
        [message] = tab.of_type("new_alert")
        assert message["data"]["id"] == alert.id
    stored = AlertRepository(session).get(alert.id)
    assert stored.delivered is True
    assert stored.delivery_attempts == 1


async def test_push_failure_is_not_raised(session, user, create_alert) -> None:
    alert = create_alert(user.id)
    channel = _channel()
    channel.registry.add(user.id, FakeConnection(fail=True))

    assert await channel.push(user.id, alert) is False

    assert AlertRepository(session).get(alert.id).delivered is False
    assert channel.is_user_connected(user.id) is False


async def test_disconnect_stops_revalidation(session, user) -> None:
    channel = _channel(revalidation_interval=60)
    first, second = FakeConnection(), FakeConnection()
    await channel.authenticate(first, user.id, "valid")
    await channel.authenticate(second, user.id, "valid")
    task = channel._bindings[first].revalidation_task

    await channel.disconnect(first)
    await asyncio.sleep(0)

    assert task.cancelled()
    assert channel.get_connection_count(user.id) == 1
    await channel.disconnect(second)
    assert channel.is_user_connected(user.id) is False


async def test_expired_credential_closes_connection(session, user) -> None:
    credentials = Credentials("valid")
    channel = _channel(credentials, revalidation_interval=0.01)
    connection = FakeConnection()
    await channel.authenticate(connection, user.id, "valid")

    credentials.valid.clear()
    for _ in range(50):
        await asyncio.sleep(0.01)
        if connection.closed_with is not None:
            break

    assert connection.of_type("session_expired") == [{"type": "session_expired"}]
    assert connection.closed_with == 1008
    assert channel.is_user_connected(user.id) is False
    assert channel.user_for(connection) is None


async def test_jwt_validator_checks_subject(session, user) -> None:
    token = create_user_token(user.id)

    assert verify_user_token(token, user.id) is True
    assert verify_user_token(token, user.id + 1) is False
    assert verify_user_token("not-a-token", user.id) is False

    channel = BrowserChannel(ConnectionRegistry())
    connection = FakeConnection()
    assert await channel.authenticate(connection, user.id, token) is True
    await channel.disconnect(connection)


async def test_delivery_locks_are_dropped_once_idle(session, user, create_alert) -> None:
    create_alert(user.id)
    channel = _channel(revalidation_interval=60)
    connection = FakeConnection()

    await channel.authenticate(connection, user.id, "valid")
    await channel.disconnect(connection)
    await channel.deliver_pending_alerts(user.id + 1)

    assert channel._pending_locks == {}
    assert channel._lock_holders == {}


async def test_user_lock_serializes_holders(session, user) -> None:
    channel = _channel()
    order = []

    async def hold(name: str) -> None:
        async with channel.user_lock(user.id):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(hold("a"), hold("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert channel._pending_locks == {}
