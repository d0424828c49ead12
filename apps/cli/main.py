"""CLI application for PeerFix."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from peerfix.config import get_settings
from peerfix.manifest import dump_package_json, parse_package_json
from peerfix.models import Marker, PlannedUpdate, ResolutionReport
from peerfix.orchestrator import ResolutionOrchestrator
from peerfix.registry import NpmRegistryClient

console = Console(soft_wrap=True, emoji=False)

MARKER_STYLES = {
    Marker.SUCCESS: "green",
    Marker.DONE: "bold green",
    Marker.WARNING: "yellow",
    Marker.ERROR: "red",
    Marker.CONFLICT: "bold red",
    Marker.SOLUTION: "cyan",
    Marker.INFO: "blue",
}


def setup_logging(level: str) -> None:
    """Send library logging to stderr through rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def parse_update(value: str, dev_names: set[str]) -> PlannedUpdate:
    """Parse ``name@version``; scoped names like ``@scope/pkg@1.0.0`` are allowed."""
    name, sep, version = value.rpartition("@")
    if not sep or not name or not version:
        raise ValueError(f"Expected name@version, got '{value}'")
    return PlannedUpdate(name=name, version=version, is_dev=name in dev_names)


def format_text_output(report: ResolutionReport) -> None:
    """Print narration with one colour per marker."""
    for line in report.resolutions:
        style = MARKER_STYLES.get(Marker.of(line))
        console.print(line, style=style, markup=False, highlight=False)


def format_json_output(report: ResolutionReport) -> str:
    payload = report.to_dict()
    payload["manifest"] = json.loads(dump_package_json(report.manifest))
    return json.dumps(payload, indent=2, ensure_ascii=False)


app = typer.Typer(
    name="peerfix",
    help="PeerFix - Bump package.json dependencies and resolve the conflicts it causes",
    add_completion=False,
)


@app.command()
def update(
    file_path: str = typer.Argument(help="Path to package.json (use '-' for stdin)"),
    updates: list[str] = typer.Argument(help="Updates as name@version, e.g. react@18.3.1"),
    dev: list[str] = typer.Option([], "--dev", "-D", help="Package names that belong in devDependencies"),
    output: str | None = typer.Option(None, "--out", "-o", help="Output file (use '-' for stdout)"),
    in_place: bool = typer.Option(False, "--in-place", "-i", help="Update file in place"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show decisions without writing the manifest"),
    format_type: str = typer.Option("text", "--format", help="Output format: text or json"),
    no_validate: bool = typer.Option(False, "--no-validate", help="Skip checking that target versions exist"),
    preserve_exact_pins: bool = typer.Option(
        False, "--preserve-exact-pins", help="Keep exact pins exact when bumping automatically"
    ),
    registry: str | None = typer.Option(None, "--registry", help="Registry base URL"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """PeerFix - Apply dependency updates and resolve peer conflicts."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    as_json = format_type == "json"

    try:
        # Read input
        if file_path == "-":
            content = sys.stdin.read()
        else:
            path_obj = Path(file_path)
            if not path_obj.exists():
                console.print(f"Error: File {file_path} not found", style="red")
                raise typer.Exit(1)
            content = path_obj.read_text()

        manifest = parse_package_json(content)
        original = dump_package_json(manifest)
        planned = [parse_update(value, set(dev)) for value in updates]

        client = NpmRegistryClient(
            registry_url=registry or settings.registry_url,
            timeout=settings.timeout,
            max_concurrency=settings.max_concurrency,
        )
        orchestrator = ResolutionOrchestrator(
            client,
            preserve_exact_pins=settings.preserve_exact_pins or preserve_exact_pins,
            validate_versions=settings.validate_versions and not no_validate,
            max_suggestion_rounds=settings.max_suggestion_rounds,
        )
        report = asyncio.run(orchestrator.run(manifest, planned))
        updated = dump_package_json(report.manifest)

        if as_json:
            console.print(format_json_output(report), markup=False, highlight=False)
        else:
            format_text_output(report)

        if updated == original:
            if not as_json:
                console.print("No manifest changes")
            raise typer.Exit(2)  # No changes exit code

        # Write output
        if dry_run:
            return
        if in_place and file_path != "-":
            Path(file_path).write_text(updated)
            if not as_json:
                console.print(f"Updated {file_path}")
        elif output and output != "-":
            Path(output).write_text(updated)
            if not as_json:
                console.print(f"Wrote updated manifest to {output}")
        elif output == "-" or file_path == "-":
            if not as_json:
                console.print(updated, markup=False, highlight=False)
        else:
            console.print("Error: Specify --in-place, --out, or --dry-run", style="red")
            raise typer.Exit(1)

    except typer.Exit:
        # Re-raise typer exits (like Exit(2) for no changes)
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
