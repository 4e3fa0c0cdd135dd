"""eaimport CLI — sniff, parse and apply enterprise-architecture model files."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from eaimport import __version__

console = Console()


def _load_settings(config_path: str | None):
    from eaimport.config import load_settings

    try:
        return load_settings(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Invalid config:[/] {e}")
        raise SystemExit(1)


def _print_report(report) -> None:
    if not report.issues:
        console.print("  [green]v[/] No issues")
        return

    table = Table(title=f"Report: {report.summary()}")
    table.add_column("Level", width=5)
    table.add_column("Code", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Message")
    styles = {"info": "dim", "warn": "yellow", "error": "red"}
    for issue in report.issues:
        level = issue.level.value
        table.add_row(f"[{styles[level]}]{level}[/]", issue.code, str(issue.count), issue.message)
    console.print(table)

    unknown = {**report.unknown_element_types, **report.unknown_relationship_types}
    for key, count in sorted(unknown.items()):
        console.print(f"  [yellow]?[/] unknown type {key} x{count}")


def _counts_table(title: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column("Collection", style="cyan")
    table.add_column("Count", justify="right", style="green")
    for name, count in counts.items():
        table.add_row(name, str(count))
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log every pipeline step")
def main(verbose: bool):
    """eaimport — EA model file importer.

    Converts BPMN 2.0, ArchiMate Model Exchange and Sparx EA XMI files
    into one canonical model, reporting everything it had to repair.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ── Sniff ────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", default=None, help="YAML settings file")
def sniff(file: str, config_path: str | None):
    """Show which importer recognizes FILE."""
    from pathlib import Path

    from eaimport.errors import UnsupportedImportFormatError
    from eaimport.importers.pipeline import detect_importer

    settings = _load_settings(config_path)
    path = Path(file)
    try:
        importer = detect_importer(path.read_bytes(), path.name, settings=settings)
    except UnsupportedImportFormatError as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)

    console.print(f"{path.name}: [bold]{importer.id}[/] ({importer.display_name})")


# ── Parse ────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Dump the normalized IR as JSON")
@click.option("--config", "config_path", default=None, help="YAML settings file")
def parse(file: str, as_json: bool, config_path: str | None):
    """Parse and normalize FILE without applying it."""
    import json

    from eaimport.errors import EaImportError
    from eaimport.importers.pipeline import import_file
    from eaimport.ir.models import model_to_dict

    settings = _load_settings(config_path)
    try:
        result = import_file(file, settings=settings)
    except EaImportError as e:
        console.print(f"[red]Import failed:[/] {e}")
        raise SystemExit(1)

    if as_json:
        payload = {"ir": model_to_dict(result.ir), "report": result.report.to_dict()}
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(f"\n[bold blue]eaimport[/] — {file} ({result.importer.display_name})\n")
    console.print(_counts_table("IR", result.ir.counts()))
    _print_report(result.report)


# ── Apply ────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--skip-unknown", is_flag=True, help="Drop elements and relationships of unknown type")
@click.option("--source-system", default=None, help="Namespace for external ids and tagged values")
@click.option("--config", "config_path", default=None, help="YAML settings file")
def apply(file: str, skip_unknown: bool, source_system: str | None, config_path: str | None):
    """Import FILE end to end into an in-memory model."""
    from pathlib import Path

    from eaimport.apply.memory_sink import InMemoryModelSink
    from eaimport.errors import EaImportError
    from eaimport.importers.pipeline import import_and_apply

    settings = _load_settings(config_path)
    if skip_unknown:
        settings.unknown_type_policy = "skip"
    if source_system:
        settings.source_system = source_system

    path = Path(file)
    try:
        result, applied = import_and_apply(path.read_bytes(), path.name, InMemoryModelSink(), settings=settings)
    except EaImportError as e:
        console.print(f"[red]Import failed:[/] {e}")
        raise SystemExit(1)

    console.print(f"\n[bold blue]eaimport[/] — {path.name} -> {applied.model_id}\n")
    console.print(_counts_table("Applied", applied.mappings.counts()))
    _print_report(result.report)


if __name__ == "__main__":
    main()
