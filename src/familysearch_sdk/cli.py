"""CLI for exporting FamilySearch pedigrees as GEDCOM."""

import asyncio
import json
import os
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .environment import Environment
from .errors import FamilySearchError
from .gedcom import DEFAULT_TREE_NAME, GedcomOptions, export_gedcom
from .logging import configure_logging
from .models.pedigree import PedigreeData

app = typer.Typer(
    name="familysearch-gedcom",
    help="Export FamilySearch family trees to GEDCOM 5.5",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log conversion details to stderr"),
):
    """Export FamilySearch family trees to GEDCOM 5.5."""
    if verbose:
        configure_logging("DEBUG", json=False)


def get_config() -> dict:
    """Load configuration from environment."""
    from dotenv import load_dotenv

    load_dotenv()

    return {
        "client_id": os.getenv("FAMILYSEARCH_CLIENT_ID"),
        "access_token": os.getenv("FAMILYSEARCH_ACCESS_TOKEN"),
        "environment": os.getenv("FAMILYSEARCH_ENVIRONMENT", Environment.PRODUCTION.value),
        "token_file": os.getenv("FAMILYSEARCH_TOKEN_FILE", "data/fs_token.json"),
    }


def _options(
    tree_name: str,
    no_links: bool,
    no_notes: bool,
    allow_orphans: bool,
    environment: Environment,
) -> GedcomOptions:
    return GedcomOptions(
        tree_name=tree_name,
        include_links=not no_links,
        include_notes=not no_notes,
        environment=environment,
        allow_orphan_families=allow_orphans,
    )


def _summary(out_file: Path) -> None:
    lines = out_file.read_text(encoding="utf-8").splitlines()
    table = Table(title=out_file.name)
    table.add_column("Record")
    table.add_column("Count")
    for label, suffix in (("Individuals", " INDI"), ("Families", " FAM"), ("Sources", " SOUR")):
        count = sum(1 for line in lines if line.startswith("0 @") and line.endswith(suffix))
        table.add_row(label, str(count))
    console.print(table)


@app.command()
def convert(
    input_file: Path = typer.Argument(..., help="Pedigree JSON saved by 'export --save-json'"),
    output: Path = typer.Option(None, "--output", "-o", help="GEDCOM file to write"),
    tree_name: str = typer.Option(DEFAULT_TREE_NAME, "--tree-name", "-n", help="Tree name for the header"),
    no_links: bool = typer.Option(False, "--no-links", help="Omit FamilySearch links"),
    no_notes: bool = typer.Option(False, "--no-notes", help="Omit person notes"),
    allow_orphans: bool = typer.Option(False, "--allow-orphans", help="Keep families unconnected to the root"),
    environment: Environment = typer.Option(
        None, "--environment", "-e", help="Link host; defaults to the one saved in the pedigree"
    ),
):
    """Convert a saved pedigree JSON file to GEDCOM."""
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        pedigree = PedigreeData.model_validate(json.loads(input_file.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Error: Invalid pedigree file: {e}[/red]")
        raise typer.Exit(1)

    out_file = output or input_file.with_suffix(".ged")
    options = _options(
        tree_name, no_links, no_notes, allow_orphans, environment or pedigree.environment or Environment.PRODUCTION
    )
    try:
        export_gedcom(pedigree, out_file, options)
    except FamilySearchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]GEDCOM written to {out_file}[/green]")
    _summary(out_file)


@app.command()
def export(
    person_id: str = typer.Argument(None, help="Root person ID (defaults to the signed-in user)"),
    output: Path = typer.Option(Path("familysearch.ged"), "--output", "-o", help="GEDCOM file to write"),
    generations: int = typer.Option(4, "--generations", "-g", min=1, max=8, help="Ancestry depth"),
    token: str = typer.Option(None, "--token", "-t", help="Access token (else FAMILYSEARCH_ACCESS_TOKEN)"),
    save_json: Path = typer.Option(None, "--save-json", help="Also save the fetched pedigree as JSON"),
    tree_name: str = typer.Option(DEFAULT_TREE_NAME, "--tree-name", "-n", help="Tree name for the header"),
    no_links: bool = typer.Option(False, "--no-links", help="Omit FamilySearch links"),
    no_notes: bool = typer.Option(False, "--no-notes", help="Omit person notes"),
    allow_orphans: bool = typer.Option(False, "--allow-orphans", help="Keep families unconnected to the root"),
):
    """Fetch a pedigree from FamilySearch and write it as GEDCOM."""
    config = get_config()
    access_token = token or config["access_token"]

    try:
        environment = Environment(config["environment"])
    except ValueError:
        console.print(f"[red]Invalid FAMILYSEARCH_ENVIRONMENT. Choose from: {[e.value for e in Environment]}[/red]")
        raise typer.Exit(1)

    async def run() -> PedigreeData:
        from .client import ClientConfig, FamilySearchClient
        from .tree.pedigree import fetch_pedigree

        client_config = ClientConfig(
            client_id=config["client_id"] or "familysearch-sdk",
            environment=environment,
            token_file=Path(config["token_file"]),
        )
        async with FamilySearchClient(client_config) as client:
            await client.login(access_token)

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Fetching pedigree...", total=100)

                def on_progress(update) -> None:
                    progress.update(
                        task,
                        completed=update.percent,
                        description=update.stage.replace("_", " ").capitalize(),
                    )

                pedigree = await fetch_pedigree(
                    client,
                    person_id,
                    generations=generations,
                    on_progress=on_progress,
                    include_notes=not no_notes,
                )
                progress.update(task, completed=100)
            return pedigree

    try:
        pedigree = asyncio.run(run())
        if save_json:
            save_json.parent.mkdir(parents=True, exist_ok=True)
            save_json.write_text(pedigree.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
            console.print(f"[dim]Pedigree saved to {save_json}[/dim]")
        export_gedcom(pedigree, output, _options(tree_name, no_links, no_notes, allow_orphans, environment))
    except FamilySearchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]GEDCOM written to {output}[/green]")
    _summary(output)


if __name__ == "__main__":
    app()
