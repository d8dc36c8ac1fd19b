"""Store the built-in email templates in the database so they can be edited."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.notifications import DEFAULT_TEMPLATES
from app.infrastructure.repositories import EmailTemplateRepository


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Carga las plantillas de email por defecto en la base de datos.",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Reemplaza las plantillas existentes con la versión por defecto.",
    )
    return parser.parse_args()


def main() -> None:
    """Insert every default template that is not stored yet."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        repository = EmailTemplateRepository(session)
        for (category, name), template in sorted(DEFAULT_TEMPLATES.items()):
            if not args.overwrite and repository.get_active(category, name) is not None:
                print(f"Plantilla {category}/{name} ya existe, se omite.")
                continue
            repository.upsert(template)
            print(f"Plantilla {category}/{name} guardada.")
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"No se pudieron guardar las plantillas: {exc}") from exc
    finally:
        session.close()


if __name__ == "__main__":
    main()
