"""Shared fixtures: a throwaway SQLite database and fake realtime connections."""

from __future__ import annotations

import itertools
import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

TEST_DB_PATH = Path(tempfile.gettempdir()) / "legal_notifications_test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_TIMEZONE"] = "UTC"
for _name in ("SENDGRID_API_KEY", "SENDGRID_SENDER", "ADMIN_EMAIL", "SCHEDULER_ENABLED"):
    os.environ.pop(_name, None)

from app.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from app.domain.entities import default_preferences_document  # noqa: E402
from app.infrastructure import database  # noqa: E402
from app.infrastructure.models import (  # noqa: E402
    EventModel,
    FolderModel,
    JudicialMovementModel,
    MovementModel,
    TaskModel,
)
from app.infrastructure.repositories import UserRepository  # noqa: E402
from app.utils import utcnow  # noqa: E402

_keys = itertools.count(1)


class FakeConnection:
    """Records what the browser channel sends to one client."""

    def __init__(self, *, fail: bool = False) -> None:
        self.messages: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self.fail = fail

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("connection lost")
        self.messages.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [message for message in self.messages if message.get("type") == message_type]


def preferences(**overrides: Any) -> dict[str, Any]:
    """Return a preference document with ``overrides`` applied on top of the defaults.

    ``channels`` and ``user`` keys are merged one level deep.
    """

    document = default_preferences_document()
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(document.get(key), dict):
            document[key].update(value)
        else:
            document[key] = value
    return document


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def session():
    """Yield a session bound to freshly created tables."""

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.initialize_database()
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
        database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


@pytest.fixture
def today() -> datetime:
    return utcnow().replace(hour=12, minute=0, second=0, microsecond=0)


@pytest.fixture
def make_user(session):
    def _make_user(
        email: str = "abogada@example.com",
        *,
        name: str = "Laura Pérez",
        role: str = "user",
        prefs: dict[str, Any] | None = None,
    ):
        return UserRepository(session).create(
            name=name, email=email, role=role, preferences=prefs or preferences()
        )

    return _make_user


@pytest.fixture
def make_movement(session):
    def _make_movement(user_id: int, date_expiration: datetime | None, **fields: Any) -> int:
        model = MovementModel(
            user_id=user_id,
            title=fields.pop("title", "Pago de tasa de justicia"),
            date_expiration=date_expiration,
            **fields,
        )
        session.add(model)
        session.commit()
        return model.id

    return _make_movement


@pytest.fixture
def make_event(session):
    def _make_event(user_id: int, start_date: datetime | None, **fields: Any) -> int:
        model = EventModel(
            user_id=user_id,
            title=fields.pop("title", "Audiencia preliminar"),
            start_date=start_date,
            **fields,
        )
        session.add(model)
        session.commit()
        return model.id

    return _make_event


@pytest.fixture
def make_task(session):
    def _make_task(user_id: int, due_date: datetime | None, **fields: Any) -> int:
        model = TaskModel(
            user_id=user_id,
            name=fields.pop("name", "Contestar demanda"),
            due_date=due_date,
            **fields,
        )
        session.add(model)
        session.commit()
        return model.id

    return _make_task


@pytest.fixture
def make_folder(session):
    def _make_folder(user_id: int, last_movement_date: datetime | None, **fields: Any) -> int:
        model = FolderModel(
            user_id=user_id,
            folder_name=fields.pop("folder_name", "García c/ López s/ daños"),
            last_movement_date=last_movement_date,
            **fields,
        )
        session.add(model)
        session.commit()
        return model.id

    return _make_folder


@pytest.fixture
def make_judicial_movement(session):
    def _make_judicial_movement(
        user_id: int,
        *,
        notify_at: datetime | None = None,
        unique_key: str | None = None,
        **fields: Any,
    ) -> int:
        now = utcnow()
        model = JudicialMovementModel(
            user_id=user_id,
            expediente_id=fields.pop("expediente_id", "exp-1"),
            expediente_number=fields.pop("expediente_number", 1234),
            expediente_year=fields.pop("expediente_year", 2024),
            fuero=fields.pop("fuero", "CIV"),
            caratula=fields.pop("caratula", "García c/ López s/ daños"),
            movement_date=fields.pop("movement_date", now - timedelta(hours=2)),
            movement_type=fields.pop("movement_type", "Despacho"),
            movement_detail=fields.pop("movement_detail", "Se tiene presente"),
            notify_at=notify_at or now - timedelta(minutes=1),
            unique_key=unique_key or f"key-{user_id}-{next(_keys)}",
            **fields,
        )
        session.add(model)
        session.commit()
        return model.id

    return _make_judicial_movement


class Outbox:
    """Captures emails instead of sending them through SendGrid."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.result: Any = True

    def __call__(self, subject: str, html: str, recipient: str, text: str | None = None) -> bool:
        self.sent.append({"subject": subject, "html": html, "to": recipient, "text": text})
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def to(self, recipient: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["to"] == recipient]


@pytest.fixture
def outbox(monkeypatch):
    from app.application.use_cases.jobs import notification_jobs
    from app.application.use_cases.notifications import email_notifications

    box = Outbox()
    monkeypatch.setattr(email_notifications, "send_email", box)
    monkeypatch.setattr(notification_jobs, "send_email", box)
    return box


@pytest.fixture
def admin_email(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    reset_settings_cache()
    yield "admin@example.com"
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    reset_settings_cache()
