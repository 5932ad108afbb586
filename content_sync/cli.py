"""
CLI: Contentful -> PostgreSQL.

Comandos:
  content-sync migrate [--dry-run]      genera una migración contra el esquema actual del CMS
  content-sync apply-migrations         aplica las migraciones pendientes
  content-sync import                   importación completa (export + localizador offline)
  content-sync import:entries [IDS...]  importa entradas vía API (todas o por id)
  content-sync import:assets [IDS...]   copia archivos de assets a los destinos configurados
  content-sync export PATH              escribe el export completo del espacio en JSON
  content-sync serve                    levanta el receptor de webhooks
  content-sync config                   muestra la configuración efectiva (sin secretos)
  content-sync dbtest                   prueba la conexión a la base de datos

Errores fatales: se imprime el detalle y se sale con código 1.
"""
from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, Sequence

from loguru import logger

from content_sync.core.bootstrap import Services, build_services
from content_sync.core.config import Settings, settings
from content_sync.core.logging import configure_logging


Command = Callable[[Services, argparse.Namespace], Awaitable[Any]]


async def _migrate(services: Services, args: argparse.Namespace) -> None:
    path = await services.schema.migrate(dry_run=args.dry_run)
    if path is not None:
        print(path)


async def _apply_migrations(services: Services, args: argparse.Namespace) -> None:
    applied = await services.schema.apply_migrations()
    for version in applied:
        print(version)


async def _import_all(services: Services, args: argparse.Namespace) -> None:
    await services.pull.import_all()


async def _import_entries(services: Services, args: argparse.Namespace) -> None:
    if args.ids:
        await services.pull.import_entries(args.ids)
    else:
        await services.pull.import_all_entries()


async def _import_assets(services: Services, args: argparse.Namespace) -> None:
    if args.ids:
        await services.pull.import_assets(args.ids)
    else:
        await services.pull.import_all_assets()


async def _export(services: Services, args: argparse.Namespace) -> None:
    await services.pull.export_store(args.path)


async def _dbtest(services: Services, args: argparse.Namespace) -> None:
    info = await services.gateway.test_connection()
    logger.success(f"Conexión OK: {info.get('database')} ({info.get('version')})")


COMMANDS: dict[str, Command] = {
    "migrate": _migrate,
    "apply-migrations": _apply_migrations,
    "import": _import_all,
    "import:entries": _import_entries,
    "import:assets": _import_assets,
    "export": _export,
    "dbtest": _dbtest,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="content-sync",
        description="Sincroniza contenido de Contentful hacia PostgreSQL.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", help="Genera una migración de esquema.")
    migrate.add_argument(
        "--dry-run",
        action="store_true",
        help="Solo muestra el DDL (no escribe archivo ni snapshot).",
    )

    sub.add_parser("apply-migrations", help="Aplica las migraciones pendientes.")
    sub.add_parser("import", help="Importación completa del espacio.")

    entries = sub.add_parser("import:entries", help="Importa entradas vía API.")
    entries.add_argument("ids", nargs="*", help="IDs de entradas (vacío = todas).")

    assets = sub.add_parser("import:assets", help="Copia archivos de assets.")
    assets.add_argument("ids", nargs="*", help="IDs de assets (vacío = todos).")

    export = sub.add_parser("export", help="Escribe el export del espacio en JSON.")
    export.add_argument("path", help="Archivo destino.")

    sub.add_parser("serve", help="Levanta el receptor de webhooks.")
    sub.add_parser("config", help="Muestra la configuración efectiva.")
    sub.add_parser("dbtest", help="Prueba la conexión a la base de datos.")
    return parser


async def _run_command(command: Command, args: argparse.Namespace, app_settings: Settings) -> None:
    services = build_services(app_settings)
    try:
        await command(services, args)
    finally:
        await services.close()


def _serve(app_settings: Settings) -> None:
    import uvicorn

    uvicorn.run(
        "content_sync.main:app",
        host=app_settings.HOST,
        port=app_settings.PORT,
        reload=app_settings.is_development,
        log_level=app_settings.LOG_LEVEL.lower(),
    )


def main(argv: Optional[Sequence[str]] = None, app_settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    app_settings = app_settings or settings
    configure_logging(app_settings)

    try:
        if args.command == "config":
            print(json.dumps(app_settings.public_dict(), indent=2, default=str))
            return 0
        if args.command == "serve":
            _serve(app_settings)
            return 0

        asyncio.run(_run_command(COMMANDS[args.command], args, app_settings))
        return 0
    except Exception as e:
        logger.exception(f"Error fatal en '{args.command}': {e}")
        return 1


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
