"""Registry of live realtime connections grouped by user."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Protocol, Set

logger = logging.getLogger(__name__)


class RealtimeConnection(Protocol):
    """What the browser channel needs from a transport connection."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class ConnectionRegistry:
    """Track the connections of each user.

    The registry lives in the process memory: after a restart nobody is
    considered connected until clients reconnect, and several API processes
    do not share it.
    """

    def __init__(self) -> None:
        self._connections: DefaultDict[int, Set[RealtimeConnection]] = defaultdict(set)

    def add(self, user_id: int, connection: RealtimeConnection) -> None:
        """Register ``connection`` for ``user_id``."""

        self._connections[user_id].add(connection)

    def discard(self, user_id: int, connection: RealtimeConnection) -> bool:
        """Remove ``connection`` from the pool for ``user_id``.

        Returns ``True`` when the connection was registered. The user entry is
        dropped as soon as its last connection goes away.
        """

        connections = self._connections.get(user_id)
        if connections is None:
            return False
        removed = connection in connections
        connections.discard(connection)
        if not connections:
            self._connections.pop(user_id, None)
        return removed

    def is_user_connected(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    def get_connection_count(self, user_id: int) -> int:
        return len(self._connections.get(user_id, ()))

    def connected_user_ids(self) -> list[int]:
        return sorted(self._connections)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._connections

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> int:
        """Send ``message`` to every connection of ``user_id``.

        Connections that fail are removed. Returns the number of connections
        that accepted the message.
        """

        delivered = 0
        connections = list(self._connections.get(user_id, set()))
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception:
                logger.warning(
                    "Dropping realtime connection of user %s after a failed send",
                    user_id,
                    exc_info=True,
                )
                self.discard(user_id, connection)
            else:
                delivered += 1
        return delivered


__all__ = ["ConnectionRegistry", "RealtimeConnection"]
