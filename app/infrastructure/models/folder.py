"""SQLAlchemy model for case folders tracked for inactivity."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.infrastructure.database import Base

from .common import NotifiableMixin


class FolderModel(NotifiableMixin, Base):
    """Database representation of a case folder."""

    __tablename__ = "folder"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    folder_name = Column(String(200), nullable=False)
    materia = Column(String(120), nullable=True)
    status = Column(String(30), nullable=False, default="Nueva")
    archived = Column(Boolean, nullable=False, default=False)
    last_movement_date = Column(DateTime, nullable=True)
    initial_date_folder = Column(DateTime, nullable=True)
    final_date_folder = Column(DateTime, nullable=True)
    judicial_initial_date = Column(DateTime, nullable=True)
    judicial_final_date = Column(DateTime, nullable=True)
    # Claim markers per channel and alert type.
    last_email_caducity_recorded_at = Column(DateTime, nullable=True)
    last_email_prescription_recorded_at = Column(DateTime, nullable=True)
    last_browser_caducity_recorded_at = Column(DateTime, nullable=True)
    last_browser_prescription_recorded_at = Column(DateTime, nullable=True)


__all__ = ["FolderModel"]
