"""Persistence layer for email templates."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import EmailTemplate
from app.infrastructure.models import EmailTemplateModel


class EmailTemplateRepository:
    """Look up and store :class:`EmailTemplate` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_active(self, category: str, name: str) -> EmailTemplate | None:
        model = (
            self.session.query(EmailTemplateModel)
            .filter(EmailTemplateModel.category == category)
            .filter(EmailTemplateModel.name == name)
            .filter(EmailTemplateModel.is_active.is_(True))
            .first()
        )
        return self._to_entity(model) if model else None

    def upsert(self, template: EmailTemplate) -> EmailTemplate:
        """Create the template or overwrite the one with the same category and name."""

        model = (
            self.session.query(EmailTemplateModel)
            .filter(EmailTemplateModel.category == template.category)
            .filter(EmailTemplateModel.name == template.name)
            .first()
        )
        if model is None:
            model = EmailTemplateModel(category=template.category, name=template.name)
        model.subject = template.subject
        model.html_body = template.html_body
        model.text_body = template.text_body
        model.description = template.description
        model.variables = list(template.variables)
        model.is_active = template.is_active
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: EmailTemplateModel) -> EmailTemplate:
        return EmailTemplate(
            id=model.id,
            category=model.category,
            name=model.name,
            subject=model.subject,
            html_body=model.html_body or "",
            text_body=model.text_body or "",
            description=model.description or "",
            variables=list(model.variables or []),
            is_active=bool(model.is_active),
        )


__all__ = ["EmailTemplateRepository"]
