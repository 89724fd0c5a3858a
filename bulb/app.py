"""Bulb CLI: main entry point.

Runs the storage-side server for a UI process, or performs one catalog
operation from the shell.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.table import Table

from bulb.store.config import BulbConfig
from bulb.store.models import ProjectSummary, parse_timestamp


def _configure_server_logging(config: BulbConfig) -> Path:
    """Rotating file log plus stderr for server mode."""
    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "bulb-server.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    return log_file


def _format_timestamp(value: str | None) -> str:
    dt = parse_timestamp(value)
    if dt is None:
        return "New Space"
    return dt.astimezone().strftime("%b %d, %Y %H:%M")


def render_catalog(projects: list[ProjectSummary], console: Console | None = None) -> None:
    """Print the catalog as a table."""
    console = console or Console()
    if not projects:
        console.print("No saved project spaces found.")
        return
    table = Table(title=f"Saved Spaces ({len(projects)})")
    table.add_column("Title", style="bold")
    table.add_column("Last Saved")
    table.add_column("Path", style="dim")
    for project in projects:
        table.add_row(project.title, _format_timestamp(project.updated_at), project.path)
    console.print(table)


def _load_config(args) -> BulbConfig:
    config = BulbConfig.from_env()
    if args.config:
        from bulb.store.yaml_config import load_yaml_config

        config = load_yaml_config(args.config, base=config)
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.port is not None:
        config.port = args.port
    if args.verbose:
        config.log_level = "DEBUG"
    return config


async def _run_command(args, config: BulbConfig) -> int:
    from bulb.session.backend import LocalBackend
    from bulb.store.models import DocumentType

    backend = LocalBackend.from_config(config)

    if args.create is not None:
        result = await backend.create_project(".", args.create)
        if result is None:
            print("Error: failed to create project space.")
            return 1
        item = result["newItem"]
        print(f"Created {item['title']!r} at {item['path']}")
        return 0

    if args.rename is not None:
        path, title = args.rename
        if await backend.store.read(path) is None:
            print(f"Error: project not found: {path}")
            return 1
        await backend.rename_project("", path, title)
        return 0

    if args.delete is not None:
        await backend.delete_project(args.delete, DocumentType.CANVAS.value)
        return 0

    projects = await backend.catalog.list_projects()
    render_catalog(projects)
    return 0


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(
        prog="bulb",
        description="Bulb: project-space storage for freeform canvases",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="List saved project spaces and exit",
    )
    parser.add_argument(
        "--create", metavar="NAME",
        help="Create a new project space",
    )
    parser.add_argument(
        "--rename", nargs=2, metavar=("PATH", "TITLE"),
        help="Rename the project space stored at PATH",
    )
    parser.add_argument(
        "--delete", metavar="PATH",
        help="Delete the project space stored at PATH",
    )
    parser.add_argument(
        "--server", action="store_true",
        help="Start the HTTP storage server",
    )
    parser.add_argument(
        "--port", type=int, default=None,
        help="Server port (0=random available port)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file",
    )
    parser.add_argument(
        "--data-dir", metavar="DIR",
        help="Directory holding ProjectSpaces/ and reminders.json",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    try:
        config = _load_config(args)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(2)

    if args.server:
        from bulb.api.server import BulbServer

        log_file = _configure_server_logging(config)
        logging.getLogger(__name__).info(
            "Starting Bulb server data_dir=%s port=%s config=%s log=%s",
            config.data_dir,
            config.port,
            args.config or "<none>",
            log_file,
        )
        server = BulbServer(config=config)
        try:
            asyncio.run(server.start())
        except KeyboardInterrupt:
            logging.getLogger(__name__).info("Interrupted; server stopped")
        return

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    sys.exit(asyncio.run(_run_command(args, config)))


if __name__ == "__main__":
    main()
