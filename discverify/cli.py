"""
discverify CLI - verify GameCube and Wii disc images.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from . import config
from .common.exceptions import ConfigurationError, DATParseError, VolumeOpenError
from .common.models import ReferenceStatus, Severity, VerificationOptions
from .core.config_manager import ConfigManager
from .core.session import VerificationSession
from .logging_cfg import configure_logging
from .verification import dat_parser, hasher
from .verification.dat_manager import find_dat_for_system

app = typer.Typer(
    help="Verify GameCube and Wii disc images against redump.org checksums.",
    rich_markup_mode="rich",
    add_completion=False,
)
console = Console()

_SEVERITY_STYLES = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
}
_STATUS_STYLES = {
    ReferenceStatus.GOOD_DUMP: "bold green",
    ReferenceStatus.BAD_DUMP: "bold red",
    ReferenceStatus.LOOKUP_ERROR: "yellow",
    ReferenceStatus.UNKNOWN: "dim",
}


def _load_settings(path: Optional[Path]) -> ConfigManager:
    if path is None and Path(config.SETTINGS_DEFAULT).exists():
        path = Path(config.SETTINGS_DEFAULT)
    try:
        return ConfigManager(config_file=path)
    except ConfigurationError as e:
        console.print(f"[bold red]✘[/bold red] {e}")
        raise typer.Exit(2)


@app.command("verify")
def cmd_verify(
    image: Path = typer.Argument(..., help="Disc image (.iso/.gcm) to verify."),
    redump: bool = typer.Option(False, "--redump/--no-redump", help="Compare with the redump.org database."),
    dat: Optional[List[Path]] = typer.Option(None, "--dat", help="Local DAT file(s) to compare with."),
    dat_dir: Optional[Path] = typer.Option(None, "--dat-dir", help="Directory searched for a matching DAT."),
    crc32: bool = typer.Option(hasher.should_compute_crc32_by_default(), "--crc32/--no-crc32"),
    md5: bool = typer.Option(hasher.should_compute_md5_by_default(), "--md5/--no-md5"),
    sha1: bool = typer.Option(hasher.should_compute_sha1_by_default(), "--sha1/--no-sha1"),
    report: Optional[Path] = typer.Option(None, "--report", help="Write the result as JSON."),
    settings_file: Optional[Path] = typer.Option(None, "--config", help="JSON settings file."),
):
    """
    [bold magenta]🔍 Verify a disc image[/bold magenta]

    Hashes the whole image once, checks its structure and optionally compares
    the checksums with a reference database.
    """
    settings = _load_settings(settings_file)
    configure_logging(settings.get("log_format"))

    use_reference = redump or bool(dat) or dat_dir is not None
    options = VerificationOptions(
        use_reference_database=use_reference,
        compute_crc32=crc32,
        compute_md5=md5,
        compute_sha1=sha1,
    )

    try:
        session = VerificationSession.open(image, options, settings=settings)
    except VolumeOpenError as e:
        console.print(f"[bold red]✘[/bold red] {e}")
        raise typer.Exit(2)

    with session:
        if not redump and use_reference:
            dat_files = list(dat or [])
            if dat_dir is not None:
                found = find_dat_for_system(dat_dir, session.volume.platform)
                if found:
                    dat_files.append(found)
                else:
                    console.print(
                        f"[yellow]⚠[/yellow] No {session.volume.platform} DAT found in {dat_dir}"
                    )
            try:
                session.set_reference_database(dat_parser.load_dat_files(dat_files))
            except DATParseError as e:
                console.print(f"[bold red]✘[/bold red] {e}")
                raise typer.Exit(2)

        console.print(Panel.fit(
            f"[bold cyan]{escape(session.identity.game_id)}[/bold cyan] "
            f"{escape(session.volume.header.internal_name)}\n"
            f"[dim]{session.volume.platform} | rev {session.identity.revision} | "
            f"{session.total_bytes} bytes[/dim]",
            border_style="blue",
        ))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("A verificar...", total=session.total_bytes)
            session.start()
            while session.bytes_processed != session.total_bytes:
                session.process()
                progress.update(task, completed=session.bytes_processed)
            progress.update(task, description="A finalizar...")
            session.finish()

        result = session.result

    _print_result(result)

    if report is not None:
        report.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[bold green]✔[/bold green] Report written: [underline]{report}[/underline]")

    highest = max((p.severity for p in result.problems), default=None)
    if highest == Severity.HIGH or result.reference_status == ReferenceStatus.BAD_DUMP:
        raise typer.Exit(1)


def _print_result(result) -> None:
    console.print(f"\n[bold]{escape(result.summary_text)}[/bold]")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Checksum", style="dim")
    table.add_column("Value")
    for name in ("crc32", "md5", "sha1"):
        value = getattr(result, name)
        table.add_row(name.upper(), value.hex() if value is not None else "[dim]-[/dim]")
    console.print(table)

    style = _STATUS_STYLES[result.reference_status]
    console.print(f"Reference: [{style}]{result.reference_status.label}[/{style}]")
    if result.reference_message:
        console.print(f"[dim]{escape(result.reference_message)}[/dim]")

    if result.problems:
        problems = Table(show_header=True, header_style="bold cyan")
        problems.add_column("Severity")
        problems.add_column("Problem")
        for problem in result.problems:
            s = _SEVERITY_STYLES[problem.severity]
            problems.add_row(f"[{s}]{problem.severity.label}[/{s}]", escape(problem.text))
        console.print(problems)


@app.command("defaults")
def cmd_defaults():
    """Show which checksums are calculated by default."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Checksum")
    table.add_column("Default", justify="center")
    for name, enabled in (
        ("CRC32", hasher.should_compute_crc32_by_default()),
        ("MD5", hasher.should_compute_md5_by_default()),
        ("SHA-1", hasher.should_compute_sha1_by_default()),
    ):
        table.add_row(name, "on" if enabled else "off")
    console.print(table)


@app.command("hash")
def cmd_hash(
    path: Path = typer.Argument(..., help="Any file."),
):
    """Print CRC32/MD5/SHA-1 of a file without any disc checks."""
    try:
        hashes = hasher.calculate_hashes(path)
    except OSError as e:
        console.print(f"[bold red]✘[/bold red] {e}")
        raise typer.Exit(2)
    for name, value in hashes.items():
        console.print(f"{name.upper():6} {value}")


def main():
    app()


if __name__ == "__main__":
    main()
