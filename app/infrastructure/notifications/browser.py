"""Realtime browser delivery: authentication, pushes and pending catch-up."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from anyio import to_thread
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import Alert
from app.infrastructure.database import SessionLocal
from app.infrastructure.repositories import AlertRepository
from app.infrastructure.security import verify_user_token

from .registry import ConnectionRegistry, RealtimeConnection

logger = logging.getLogger(__name__)

EVENT_AUTHENTICATED = "authenticated"
EVENT_AUTHENTICATION_ERROR = "authentication_error"
EVENT_SESSION_EXPIRED = "session_expired"
EVENT_NEW_ALERT = "new_alert"
EVENT_PENDING_ALERTS = "pending_alerts"

POLICY_VIOLATION = 1008

CredentialValidator = Callable[[str, int], bool]


def serialize_alert(alert: Alert) -> dict[str, Any]:
    """Return a JSON friendly representation of ``alert``."""

    def _iso(value):
        return value.isoformat() if value else None

    return {
        "id": alert.id,
        "user_id": alert.user_id,
        "folder_id": alert.folder_id,
        "source_type": alert.source_type,
        "source_id": alert.source_id,
        "avatar_type": alert.avatar_type,
        "avatar_icon": alert.avatar_icon,
        "avatar_size": alert.avatar_size,
        "primary_text": alert.primary_text,
        "secondary_text": alert.secondary_text,
        "action_text": alert.action_text,
        "expiration_date": _iso(alert.expiration_date),
        "delivered": alert.delivered,
        "read": alert.read,
        "created_at": _iso(alert.created_at),
    }


@dataclass
class _Binding:
    user_id: int
    credential: str
    revalidation_task: asyncio.Task | None = None


class BrowserChannel:
    """Deliver alerts to the live connections of a user.

    A connection only joins the user's group after its credential was
    verified. Each authenticated connection gets a background task that
    re-checks the credential periodically and closes the connection once it
    is no longer valid.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        credential_validator: CredentialValidator = verify_user_token,
        revalidation_interval: float | None = None,
        pending_limit: int | None = None,
    ) -> None:
        settings = get_settings()
        self.registry = registry
        self._session_factory = session_factory
        self._validate_credential = credential_validator
        self._revalidation_interval = (
            revalidation_interval
            if revalidation_interval is not None
            else settings.credential_revalidation_seconds
        )
        self._pending_limit = pending_limit or settings.pending_alerts_limit
        self._bindings: dict[RealtimeConnection, _Binding] = {}
        self._pending_locks: dict[int, asyncio.Lock] = {}
        self._lock_holders: dict[int, int] = {}

    def is_user_connected(self, user_id: int) -> bool:
        return self.registry.is_user_connected(user_id)

    def get_connection_count(self, user_id: int) -> int:
        return self.registry.get_connection_count(user_id)

    def user_for(self, connection: RealtimeConnection) -> int | None:
        binding = self._bindings.get(connection)
        return binding.user_id if binding else None

    @asynccontextmanager
    async def user_lock(self, user_id: int) -> AsyncIterator[None]:
        """Serialize alert delivery for ``user_id``.

        The lock only lives while somebody holds or waits for it, so users
        that come and go do not leave entries behind.
        """

        lock = self._pending_locks.setdefault(user_id, asyncio.Lock())
        self._lock_holders[user_id] = self._lock_holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._pending_locks[user_id]

    async def authenticate(
        self, connection: RealtimeConnection, claimed_user_id: Any, credential: str
    ) -> bool:
        """Verify ``credential`` for ``claimed_user_id`` and register the connection."""

        user_id = self._coerce_user_id(claimed_user_id)
        if user_id is None or not self._credential_is_valid(credential, user_id):
            logger.info("Rejected realtime authentication for user %s", claimed_user_id)
            await self._send(
                connection,
                {
                    "type": EVENT_AUTHENTICATION_ERROR,
                    "message": "Token inválido o expirado",
                },
            )
            return False

        if connection in self._bindings:
            await self.disconnect(connection)

        self.registry.add(user_id, connection)
        binding = _Binding(user_id=user_id, credential=credential)
        binding.revalidation_task = asyncio.create_task(
            self._revalidate_periodically(connection, binding)
        )
        self._bindings[connection] = binding
        logger.info(
            "User %s authenticated on realtime channel (%s connections)",
            user_id,
            self.registry.get_connection_count(user_id),
        )

        await self._send(connection, {"type": EVENT_AUTHENTICATED, "userId": user_id})
        await self.deliver_pending_alerts(user_id)
        return True

    async def disconnect(self, connection: RealtimeConnection) -> None:
        """Forget ``connection`` and stop its credential re-validation."""

        binding = self._bindings.pop(connection, None)
        if binding is None:
            return
        self.registry.discard(binding.user_id, connection)
        task = binding.revalidation_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        logger.debug(
            "Realtime connection of user %s closed (%s left)",
            binding.user_id,
            self.registry.get_connection_count(binding.user_id),
        )

    async def push(self, user_id: int, alert: Alert) -> bool:
        """Send ``alert`` to ``user_id`` now if the user is connected.

        Returns ``False`` without touching the alert when nobody is connected;
        the alert then stays pending for the next catch-up delivery.
        """

        if not self.registry.is_user_connected(user_id):
            return False

        try:
            delivered = await self.registry.send_to_user(
                user_id, {"type": EVENT_NEW_ALERT, "data": serialize_alert(alert)}
            )
            if alert.id is not None:
                await to_thread.run_sync(self._register_push, alert.id, bool(delivered))
        except Exception:
            logger.exception("Failed to push alert %s to user %s", alert.id, user_id)
            return False

        if delivered:
            alert.delivered = True
        return bool(delivered)

    async def deliver_pending_alerts(self, user_id: int) -> list[Alert]:
        """Flush the newest undelivered alerts of ``user_id`` as one batch."""

        async with self.user_lock(user_id):
            try:
                pending = await to_thread.run_sync(self._load_pending, user_id)
                if not pending:
                    return []
                delivered = await self.registry.send_to_user(
                    user_id,
                    {
                        "type": EVENT_PENDING_ALERTS,
                        "data": [serialize_alert(alert) for alert in pending],
                    },
                )
                if not delivered:
                    return []
                await to_thread.run_sync(
                    self._mark_delivered, [alert.id for alert in pending]
                )
            except Exception:
                logger.exception("Failed to deliver pending alerts to user %s", user_id)
                return []

        for alert in pending:
            alert.delivered = True
        logger.info("Delivered %s pending alerts to user %s", len(pending), user_id)
        return pending

    async def _revalidate_periodically(
        self, connection: RealtimeConnection, binding: _Binding
    ) -> None:
        while True:
            await asyncio.sleep(self._revalidation_interval)
            if self._credential_is_valid(binding.credential, binding.user_id):
                continue

            logger.info(
                "Credential of user %s is no longer valid; closing realtime connection",
                binding.user_id,
            )
            await self._send(connection, {"type": EVENT_SESSION_EXPIRED})
            try:
                await connection.close(code=POLICY_VIOLATION)
            except Exception:
                logger.debug("Connection of user %s was already closed", binding.user_id)
            await self.disconnect(connection)
            return

    def _register_push(self, alert_id: int, delivered: bool) -> None:
        session = self._session_factory()
        try:
            repository = AlertRepository(session)
            repository.register_attempt(alert_id)
            if delivered:
                repository.mark_delivered([alert_id])
        finally:
            session.close()

    def _load_pending(self, user_id: int) -> list[Alert]:
        session = self._session_factory()
        try:
            return list(AlertRepository(session).list_pending(user_id, limit=self._pending_limit))
        finally:
            session.close()

    def _mark_delivered(self, alert_ids: Sequence[int]) -> None:
        session = self._session_factory()
        try:
            AlertRepository(session).mark_delivered(alert_ids)
        finally:
            session.close()

    def _credential_is_valid(self, credential: str, user_id: int) -> bool:
        try:
            return bool(self._validate_credential(credential, user_id))
        except ValueError:
            return False

    @staticmethod
    def _coerce_user_id(value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    async def _send(connection: RealtimeConnection, message: dict[str, Any]) -> None:
        try:
            await connection.send_json(message)
        except Exception:
            logger.warning("Could not send %s event", message.get("type"), exc_info=True)


__all__ = [
    "BrowserChannel",
    "EVENT_AUTHENTICATED",
    "EVENT_AUTHENTICATION_ERROR",
    "EVENT_NEW_ALERT",
    "EVENT_PENDING_ALERTS",
    "EVENT_SESSION_EXPIRED",
    "serialize_alert",
]
