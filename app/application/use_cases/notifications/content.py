"""Build email variables and browser alerts from notifiable entities."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Sequence
from datetime import date, datetime
from html import escape
from typing import Any

from app.config import get_settings
from app.domain.entities import (
    ALERT_TYPE_CADUCITY,
    ENTITY_EVENT,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    Alert,
    NotifiableEntity,
    User,
)
from app.infrastructure.notifications import (
    TEMPLATE_CALENDAR,
    TEMPLATE_FOLDER_CADUCITY,
    TEMPLATE_FOLDER_PRESCRIPTION,
    TEMPLATE_JUDICIAL_MOVEMENTS,
    TEMPLATE_MOVEMENTS,
    TEMPLATE_TASKS,
)
from app.utils import days_between, format_display_date, start_of_day

ALERT_AVATAR_SIZE = 40

_ALERT_STYLE = {
    ENTITY_MOVEMENT: ("TableDocument", "Ver movimiento", "Movimiento próximo a expirar"),
    ENTITY_EVENT: ("CalendarRemove", "Ver evento", "Evento próximo"),
    ENTITY_TASK: ("TaskSquare", "Ver tarea", "Tarea próxima a vencer"),
    ENTITY_JUDICIAL_MOVEMENT: ("Gavel", "Ver expediente", "Nuevo movimiento judicial"),
    ENTITY_FOLDER: ("FolderOpen", "Ver carpeta", "Carpeta sin actividad"),
}

TEMPLATE_NAMES = {
    ENTITY_EVENT: TEMPLATE_CALENDAR,
    ENTITY_TASK: TEMPLATE_TASKS,
    ENTITY_MOVEMENT: TEMPLATE_MOVEMENTS,
    ENTITY_JUDICIAL_MOVEMENT: TEMPLATE_JUDICIAL_MOVEMENTS,
}

_CELL = 'style="border: 1px solid #e5e7eb; padding: 10px; color: #374151;"'
_HEADER = 'style="border: 1px solid #e5e7eb; padding: 10px; text-align: left; background-color: #f3f4f6;"'


def folder_template_name(alert_type: str) -> str:
    if alert_type == ALERT_TYPE_CADUCITY:
        return TEMPLATE_FOLDER_CADUCITY
    return TEMPLATE_FOLDER_PRESCRIPTION


def _text(value: Any) -> str:
    return escape(str(value)) if value not in (None, "") else "-"


def _table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    head = "".join(f"<th {_HEADER}>{escape(header)}</th>" for header in headers)
    body = "".join(
        "<tr>" + "".join(f"<td {_CELL}>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return (
        '<table style="border-collapse: collapse; width: 100%; margin-bottom: 20px;">'
        f"<thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
    )


def _urgency(trigger: date | datetime | None, today: date | datetime) -> str:
    if trigger is None:
        return ""
    remaining = days_between(today, trigger)
    if remaining == 0:
        return "HOY"
    if remaining == 1:
        return "MAÑANA"
    return ""


def _event_when(entity: NotifiableEntity) -> str:
    when = format_display_date(entity.trigger_date)
    if entity.attributes.get("all_day"):
        return f"{when} (Todo el día)"
    if isinstance(entity.trigger_date, datetime):
        return f"{when} {entity.trigger_date.strftime('%H:%M')}"
    return when


def _item_rows(
    kind: str, entities: Sequence[NotifiableEntity], today: date | datetime
) -> tuple[list[str], list[list[str]], list[str]]:
    if kind == ENTITY_EVENT:
        headers = ["Fecha", "Título", "Descripción"]
    elif kind == ENTITY_TASK:
        headers = ["Vencimiento", "Tarea", "Prioridad"]
    else:
        headers = ["Vencimiento", "Movimiento", "Descripción"]

    rows: list[list[str]] = []
    lines: list[str] = []
    for entity in entities:
        urgency = _urgency(entity.trigger_date, today)
        suffix = f" ({urgency})" if urgency else ""
        if kind == ENTITY_EVENT:
            when = _event_when(entity)
        else:
            when = format_display_date(entity.trigger_date)
        if kind == ENTITY_TASK:
            extra = entity.attributes.get("priority")
        else:
            extra = entity.description
        rows.append([escape(when + suffix), _text(entity.title), _text(extra)])
        lines.append(f"- {when}{suffix}: {entity.title}")
        if entity.description:
            lines.append(f"  {entity.description}")
    return headers, rows, lines


def _base_variables(user: User, count: int, days_in_advance: int | None) -> dict[str, Any]:
    return {
        "userName": user.display_name,
        "userEmail": user.email,
        "count": count,
        "daysInAdvance": days_in_advance if days_in_advance is not None else "",
        "baseUrl": get_settings().base_url,
    }


def build_item_variables(
    kind: str,
    user: User,
    entities: Sequence[NotifiableEntity],
    days_in_advance: int,
    today: date | datetime,
) -> dict[str, Any]:
    """Variables for the calendar, task and movement emails."""

    headers, rows, lines = _item_rows(kind, entities, today)
    variables = _base_variables(user, len(entities), days_in_advance)
    variables["itemsHtml"] = _table(headers, rows)
    variables["itemsText"] = "\n".join(lines)
    return variables


def group_by_expediente(
    movements: Sequence[NotifiableEntity],
) -> "OrderedDict[str, tuple[dict[str, Any], list[NotifiableEntity]]]":
    groups: OrderedDict[str, tuple[dict[str, Any], list[NotifiableEntity]]] = OrderedDict()
    for movement in movements:
        expediente = movement.attributes.get("expediente") or {}
        key = str(expediente.get("id") or expediente.get("number") or movement.id)
        if key not in groups:
            groups[key] = (expediente, [])
        groups[key][1].append(movement)
    return groups


def build_judicial_variables(
    user: User, movements: Sequence[NotifiableEntity]
) -> dict[str, Any]:
    """Variables for the judicial movements email, one block per expediente."""

    blocks: list[str] = []
    lines: list[str] = []
    groups = group_by_expediente(movements)
    for expediente, items in groups.values():
        heading = (
            f"Expediente {expediente.get('number') or '-'}/{expediente.get('year') or '-'}"
            f" - {expediente.get('fuero') or '-'}"
        )
        rows = []
        lines.append(f"{heading}\nCarátula: {expediente.get('caratula') or '-'}")
        for item in items:
            movement = item.attributes.get("movement") or {}
            detail = _text(movement.get("detail"))
            if movement.get("url"):
                detail += f'<br><a href="{escape(movement["url"])}">Ver documento</a>'
            rows.append(
                [
                    escape(format_display_date(movement.get("date"))),
                    _text(movement.get("type")),
                    detail,
                ]
            )
            lines.append(
                f"- {format_display_date(movement.get('date'))}: "
                f"{movement.get('type') or '-'} - {movement.get('detail') or '-'}"
            )
            if movement.get("url"):
                lines.append(f"  Ver documento: {movement['url']}")
        blocks.append(
            f"<h3>{escape(heading)}</h3>"
            f"<p><strong>Carátula:</strong> {_text(expediente.get('caratula'))}</p>"
            + _table(["Fecha", "Tipo", "Detalle"], rows)
        )

    variables = _base_variables(user, len(groups), None)
    variables["itemsHtml"] = "".join(blocks)
    variables["itemsText"] = "\n".join(lines)
    return variables


def build_folder_variables(
    user: User,
    folders: Sequence[tuple[NotifiableEntity, int]],
    threshold_days: int,
    days_in_advance: int,
) -> dict[str, Any]:
    """Variables for the inactivity emails; ``folders`` pairs each folder with its days remaining."""

    rows = []
    lines = []
    for folder, remaining in folders:
        remaining_text = "VENCIDO" if remaining <= 0 else str(remaining)
        last_activity = format_display_date(folder.trigger_date)
        rows.append(
            [
                _text(folder.title),
                _text(folder.attributes.get("materia")),
                escape(last_activity),
                escape(remaining_text),
            ]
        )
        lines.append(
            f"- {folder.title}: última actividad {last_activity}, días restantes {remaining_text}"
        )

    variables = _base_variables(user, len(folders), days_in_advance)
    variables["thresholdDays"] = threshold_days
    variables["itemsHtml"] = _table(
        ["Carpeta", "Materia", "Última actividad", "Días restantes"], rows
    )
    variables["itemsText"] = "\n".join(lines)
    return variables


def build_alert(entity: NotifiableEntity, *, secondary_text: str | None = None) -> Alert:
    """Return the unsaved browser alert announcing ``entity``."""

    icon, action_text, primary_text = _ALERT_STYLE[entity.kind]
    if secondary_text is None:
        if entity.kind == ENTITY_TASK:
            secondary_text = entity.title
        else:
            secondary_text = f"{entity.title} - {format_display_date(entity.trigger_date)}"
    folder_id = entity.attributes.get("folder_id")
    expiration = start_of_day(entity.trigger_date) if entity.trigger_date else None
    return Alert(
        id=None,
        user_id=entity.user_id,
        primary_text=primary_text,
        secondary_text=secondary_text,
        action_text=action_text,
        avatar_icon=icon,
        avatar_size=ALERT_AVATAR_SIZE,
        folder_id=folder_id,
        source_type=entity.kind,
        source_id=entity.id,
        expiration_date=expiration,
    )


__all__ = [
    "ALERT_AVATAR_SIZE",
    "TEMPLATE_NAMES",
    "build_alert",
    "build_folder_variables",
    "build_item_variables",
    "build_judicial_variables",
    "folder_template_name",
    "group_by_expediente",
]
