"""Command line entry point for applying cell updates to a workbook."""

import json
import logging
import sys
from typing import Any, Dict, Optional, Tuple

import click

from .config_manager import ConfigManager
from .excel_updater import ExcelUpdater
from .utils.exceptions import ExcelCellUpdaterError

logger = logging.getLogger(__name__)

_console_handler: Optional[logging.Handler] = None


def setup_logging(log_level: str = "INFO") -> None:
    """Setup logging configuration."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Console handler, replaced on repeated setup
    global _console_handler
    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
    _console_handler = logging.StreamHandler()
    _console_handler.setFormatter(formatter)
    root_logger.addHandler(_console_handler)

    logging.getLogger("openpyxl").setLevel(logging.WARNING)


def parse_assignment(assignment: str) -> Tuple[str, Any]:
    """Split "B2=10" into ("B2", 10); values are JSON-decoded when possible."""
    address, separator, raw_value = assignment.partition("=")
    if not separator or not address.strip():
        raise click.BadParameter(f"Expected ADDRESS=VALUE, got '{assignment}'")

    try:
        value = json.loads(raw_value)
    except ValueError:
        value = raw_value

    # Nested structures are written as their text form
    if isinstance(value, (dict, list)):
        value = raw_value
    return address.strip(), value


def load_updates_file(path: str) -> Dict[str, Any]:
    """Read a JSON object of address -> value pairs."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--updates-file")
    if not isinstance(data, dict):
        raise click.BadParameter(
            f"Updates file must contain a JSON object, got {type(data).__name__}",
            param_hint="--updates-file",
        )
    return data


@click.command()
@click.argument("destination")
@click.option("--template", "-t", default=None, help="Template file or bundled resource to copy first")
@click.option("--set", "-s", "assignments", multiple=True, help="Cell update as ADDRESS=VALUE (repeatable)")
@click.option(
    "--updates-file",
    "-f",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with an object of ADDRESS: VALUE pairs",
)
@click.option("--base-dir", default=None, help="Base directory for a relative destination")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
def main(
    destination: str,
    template: Optional[str],
    assignments: Tuple[str, ...],
    updates_file: Optional[str],
    base_dir: Optional[str],
    log_level: Optional[str],
) -> None:
    """Write cell values into the first sheet of DESTINATION."""
    try:
        config_manager = ConfigManager()
        app_config = config_manager.get_app_config()
        setup_logging(log_level or app_config["log_level"])

        updates: Dict[str, Any] = {}
        if updates_file:
            updates.update(load_updates_file(updates_file))
        for assignment in assignments:
            address, value = parse_assignment(assignment)
            updates[address] = value

        if not updates and not template:
            raise click.UsageError("Nothing to do: give --set, --updates-file or --template")

        updater = ExcelUpdater.from_config(config_manager)
        result = updater.apply(destination, updates, template=template, base_directory=base_dir)
    except (ExcelCellUpdaterError, OSError) as e:
        logger.error(f"Excel update failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Updated {result.applied_count} cells in {result.destination_path}")


if __name__ == "__main__":
    main()
