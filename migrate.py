#!/usr/bin/env python3
"""
Migraciones de base de datos con Alembic.

    python migrate.py create "agregar referencia a compras"
    python migrate.py upgrade
    python migrate.py downgrade
    python migrate.py history | current
"""
import argparse
import sys
from pathlib import Path

root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from alembic.config import Config
from alembic import command
from app.core.config import settings


def get_alembic_config() -> Config:
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg


def create_migration(message: str):
    command.revision(get_alembic_config(), autogenerate=True, message=message)
    print(f"Migración creada: {message}")


def run_migrations(revision: str = "head"):
    command.upgrade(get_alembic_config(), revision)
    print(f"Base de datos en {revision}")


def rollback_migration(revision: str = "-1"):
    command.downgrade(get_alembic_config(), revision)
    print("Rollback ejecutado exitosamente")


def main():
    parser = argparse.ArgumentParser(description="Migraciones de la base de la frutería")
    sub = parser.add_subparsers(dest="action", required=True)

    create = sub.add_parser("create", help="Crear migración autogenerada")
    create.add_argument("message")
    upgrade = sub.add_parser("upgrade", help="Ejecutar migraciones pendientes")
    upgrade.add_argument("revision", nargs="?", default="head")
    downgrade = sub.add_parser("downgrade", help="Revertir migraciones")
    downgrade.add_argument("revision", nargs="?", default="-1")
    sub.add_parser("history", help="Ver historial")
    sub.add_parser("current", help="Ver revisión actual")

    args = parser.parse_args()
    if args.action == "create":
        create_migration(args.message)
    elif args.action == "upgrade":
        run_migrations(args.revision)
    elif args.action == "downgrade":
        rollback_migration(args.revision)
    elif args.action == "history":
        command.history(get_alembic_config())
    elif args.action == "current":
        command.current(get_alembic_config())


if __name__ == "__main__":
    main()
