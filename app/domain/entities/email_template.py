"""Domain entities for stored email templates and their rendered output."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EmailTemplate:
    """Template addressed by ``category`` and ``name``."""

    id: int | None
    category: str
    name: str
    subject: str
    html_body: str
    text_body: str = ""
    description: str = ""
    variables: list[str] = field(default_factory=list)
    is_active: bool = True


@dataclass(frozen=True)
class RenderedTemplate:
    subject: str
    html: str
    text: str


__all__ = ["EmailTemplate", "RenderedTemplate"]
