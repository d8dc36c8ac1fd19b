"""Email template lookup and placeholder substitution."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import EmailTemplate, RenderedTemplate
from app.infrastructure.repositories import EmailTemplateRepository

logger = logging.getLogger(__name__)

CATEGORY_NOTIFICATIONS = "notifications"
CATEGORY_ADMINISTRATION = "administration"

TEMPLATE_CALENDAR = "calendar"
TEMPLATE_TASKS = "tasks"
TEMPLATE_MOVEMENTS = "movements"
TEMPLATE_JUDICIAL_MOVEMENTS = "judicial-movements"
TEMPLATE_FOLDER_CADUCITY = "folder-caducity"
TEMPLATE_FOLDER_PRESCRIPTION = "folder-prescription"
TEMPLATE_NOTIFICATIONS_REPORT = "notifications-report"

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}|\$\{\s*([\w.]+)\s*\}")

_ITEM_VARIABLES = [
    "userName",
    "userEmail",
    "count",
    "daysInAdvance",
    "itemsHtml",
    "itemsText",
    "baseUrl",
]


def substitute(template: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` and ``${name}`` placeholders present in ``variables``.

    Unknown placeholders are left untouched and ``None`` renders as an empty
    string.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1) or match.group(2)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, template or "")


def _layout(heading: str, intro: str, footer: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 640px; margin: 0 auto;">'
        f'<h2 style="color: #1f2937;">{heading}</h2>'
        "<p>Hola {{userName}},</p>"
        f"<p>{intro}</p>"
        "{{itemsHtml}}"
        f'<p style="color: #6b7280; font-size: 13px;">{footer}</p>'
        '<p><a href="{{baseUrl}}" style="color: #2563eb;">Ir a la aplicación</a></p>'
        "</div>"
    )


def _text(intro: str) -> str:
    return "Hola {{userName}},\n\n" + intro + "\n\n{{itemsText}}\n{{baseUrl}}\n"


def _notification_template(
    name: str,
    subject: str,
    heading: str,
    intro: str,
    footer: str,
    description: str,
    extra: list[str] | None = None,
) -> EmailTemplate:
    return EmailTemplate(
        id=None,
        category=CATEGORY_NOTIFICATIONS,
        name=name,
        subject=subject,
        html_body=_layout(heading, intro, footer),
        text_body=_text(intro),
        description=description,
        variables=_ITEM_VARIABLES + (extra or []),
    )


DEFAULT_TEMPLATES: dict[tuple[str, str], EmailTemplate] = {
    (template.category, template.name): template
    for template in (
        _notification_template(
            TEMPLATE_CALENDAR,
            "Tienes {{count}} evento(s) próximo(s)",
            "Eventos próximos",
            "Estos eventos de tu calendario ocurren en los próximos {{daysInAdvance}} días:",
            "Recibes este aviso según tu configuración de notificaciones de calendario.",
            "Aviso de eventos de calendario próximos",
        ),
        _notification_template(
            TEMPLATE_TASKS,
            "Tienes {{count}} tarea(s) próxima(s) a vencer",
            "Tareas próximas a vencer",
            "Estas tareas vencen en los próximos {{daysInAdvance}} días:",
            "Recibes este aviso según tu configuración de vencimientos.",
            "Aviso de tareas próximas a vencer",
        ),
        _notification_template(
            TEMPLATE_MOVEMENTS,
            "Tienes {{count}} movimiento(s) próximo(s) a expirar",
            "Movimientos próximos a expirar",
            "Estos movimientos expiran en los próximos {{daysInAdvance}} días:",
            "Recibes este aviso según tu configuración de vencimientos.",
            "Aviso de movimientos próximos a expirar",
        ),
        _notification_template(
            TEMPLATE_JUDICIAL_MOVEMENTS,
            "Nuevos movimientos judiciales en {{count}} expediente(s)",
            "Movimientos judiciales",
            "Se registraron nuevos movimientos en los siguientes expedientes:",
            "Recibes este aviso porque sigues estos expedientes.",
            "Aviso de nuevos movimientos judiciales",
        ),
        _notification_template(
            TEMPLATE_FOLDER_CADUCITY,
            "{{count}} carpeta(s) próxima(s) a caducar",
            "Caducidad por inactividad",
            "Estas carpetas alcanzan {{thresholdDays}} días sin actividad en los próximos {{daysInAdvance}} días:",
            "Registra actividad en la carpeta para evitar la caducidad.",
            "Aviso de caducidad de carpetas por inactividad",
            ["thresholdDays"],
        ),
        _notification_template(
            TEMPLATE_FOLDER_PRESCRIPTION,
            "{{count}} carpeta(s) próxima(s) a prescribir",
            "Prescripción por inactividad",
            "Estas carpetas alcanzan {{thresholdDays}} días sin actividad en los próximos {{daysInAdvance}} días:",
            "Registra actividad en la carpeta para evitar la prescripción.",
            "Aviso de prescripción de carpetas por inactividad",
            ["thresholdDays"],
        ),
        EmailTemplate(
            id=None,
            category=CATEGORY_ADMINISTRATION,
            name=TEMPLATE_NOTIFICATIONS_REPORT,
            subject="Reporte de {{jobName}}: {{notificationsSent}} notificación(es)",
            html_body=(
                '<div style="font-family: Arial, sans-serif;">'
                "<h2>Reporte de {{jobName}}</h2>"
                "<p>Ejecutado el {{executedAt}}.</p>"
                "{{summaryHtml}}"
                "</div>"
            ),
            text_body="Reporte de {{jobName}}\nEjecutado el {{executedAt}}.\n\n{{summaryText}}\n",
            description="Resumen de ejecución de un proceso de notificaciones",
            variables=["jobName", "executedAt", "notificationsSent", "summaryHtml", "summaryText"],
        ),
    )
}


class TemplateRenderer:
    """Render stored templates, falling back to the built-in defaults."""

    def __init__(self, session: Session | None = None) -> None:
        self.repository = EmailTemplateRepository(session) if session is not None else None

    def get_template(self, category: str, name: str) -> EmailTemplate:
        template = self.repository.get_active(category, name) if self.repository else None
        if template is None:
            template = DEFAULT_TEMPLATES.get((category, name))
        if template is None:
            raise ValueError(f"Template no encontrado: {category}/{name}")
        return template

    def render(
        self, category: str, name: str, variables: Mapping[str, Any]
    ) -> RenderedTemplate:
        template = self.get_template(category, name)
        rendered = RenderedTemplate(
            subject=substitute(template.subject, variables),
            html=substitute(template.html_body, variables),
            text=substitute(template.text_body, variables),
        )
        logger.debug("Rendered template %s/%s", category, name)
        return rendered


__all__ = [
    "CATEGORY_ADMINISTRATION",
    "CATEGORY_NOTIFICATIONS",
    "DEFAULT_TEMPLATES",
    "TEMPLATE_CALENDAR",
    "TEMPLATE_FOLDER_CADUCITY",
    "TEMPLATE_FOLDER_PRESCRIPTION",
    "TEMPLATE_JUDICIAL_MOVEMENTS",
    "TEMPLATE_MOVEMENTS",
    "TEMPLATE_NOTIFICATIONS_REPORT",
    "TEMPLATE_TASKS",
    "TemplateRenderer",
    "substitute",
]
