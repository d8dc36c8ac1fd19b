"""Run one notification job from the command line and print its summary."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from app.application.use_cases.jobs import JOBS, run_job
from app.infrastructure.database import initialize_database


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the job runner."""

    parser = argparse.ArgumentParser(
        description="Ejecuta un job de notificaciones sin esperar al planificador.",
    )
    parser.add_argument("job", choices=sorted(JOBS), help="Nombre del job a ejecutar")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Muestra los mensajes de depuración del proceso.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    initialize_database()
    # Without a running API there are no live connections, so only email is sent.
    summary = asyncio.run(run_job(args.job))
    print(json.dumps(summary, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
