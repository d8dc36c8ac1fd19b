"""SQLAlchemy model for tasks."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from app.infrastructure.database import Base

from .common import NotifiableMixin

TASK_CLOSED_STATUSES = ("completada", "cancelada")


class TaskModel(NotifiableMixin, Base):
    """Database representation of a task with a due date."""

    __tablename__ = "task"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    folder_id = Column(Integer, nullable=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)
    status = Column(String(30), nullable=False, default="pendiente")
    priority = Column(String(20), nullable=True)
    checked = Column(Boolean, nullable=False, default=False)


__all__ = ["TASK_CLOSED_STATUSES", "TaskModel"]
