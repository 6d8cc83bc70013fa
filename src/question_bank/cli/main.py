"""Main CLI application."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from question_bank.cli.commands import (
    compose,
    extract,
    generate,
    ingest_references,
    load_config,
    publish,
)
from question_bank.config import ConfigurationError, PipelineConfig

app = typer.Typer(
    name="question-bank",
    help="Question bank curation: extract past papers, generate MCQs, compose practice sets",
    add_completion=False,
)

console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


app.command(name="ingest-references", help="Upload reference texts with summary embeddings")(
    ingest_references
)
app.command(name="extract", help="Extract past paper questions from scanned images")(extract)
app.command(name="generate", help="Generate MCQs grounded in a reference text")(generate)
app.command(name="publish", help="Embed and upload reviewed generated MCQs")(publish)
app.command(name="compose", help="Select questions and compose an ordered set")(compose)


@app.command()
def info(config_path: Path = typer.Option(..., "--config", "-c", help="Config file")):
    """Display configuration information."""
    config = load_config(config_path)

    console.print("\n[bold cyan]Curation Configuration[/bold cyan]\n")

    console.print("[bold]Scope:[/bold]")
    console.print(f"  Subject: {config.curation.subject}")
    console.print(f"  Grade level: {config.curation.grade_level or 'From source'}")
    console.print(f"  Store: {config.store.url or '[red]not set[/red]'}")

    console.print("\n[bold]Models:[/bold]")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Role", style="cyan")
    table.add_column("Endpoint")
    table.add_column("Model", style="dim")
    roles = [
        ("Vision", config.curation.vision_model),
        ("Generation", config.curation.generation_model),
        ("Summary", config.curation.summary_model),
        ("Embedding", config.curation.embedding_model),
    ]
    for role, name in roles:
        endpoint = config.models.get_endpoint(name)
        model = (endpoint.model_name or endpoint.name) if endpoint else "[red]missing[/red]"
        table.add_row(role, name, model)
    console.print(table)

    sampling = config.sampling
    console.print("\n[bold]Sampling:[/bold]")
    console.print(f"  Topic: {sampling.topic or 'All topics'}")
    console.print(f"  Question types: {', '.join(sampling.question_types or []) or 'All types'}")
    if sampling.distribution:
        d = sampling.distribution
        console.print(f"  Distribution: easy {d.easy} / medium {d.medium} / hard {d.hard}")
    else:
        console.print(f"  Limit: {sampling.limit}")

    gen = config.generation
    console.print("\n[bold]Generation:[/bold]")
    console.print(f"  Topic: {gen.topic or sampling.topic or 'None'}")
    console.print(f"  Exemplars: {gen.exemplar_count}")
    console.print(f"  Target: {gen.target_count} ({gen.difficulty.value})")

    if config.question_set:
        console.print("\n[bold]Question set:[/bold]")
        console.print(f"  Topic: {config.question_set.topic}")
        console.print(f"  Description: {config.question_set.description or 'N/A'}")

    console.print("\n[bold]Paths:[/bold]")
    for name, value in config.paths.model_dump().items():
        console.print(f"  {name}: {value}")
    console.print()


@app.command()
def validate_config(config_path: Path = typer.Option(..., "--config", "-c", help="Config file")):
    """Validate configuration file."""
    try:
        config = PipelineConfig.from_yaml(config_path)
        config.require_store()
        curation = config.curation
        config.require_models(
            *dict.fromkeys(
                [
                    curation.vision_model,
                    curation.generation_model,
                    curation.summary_model,
                    curation.embedding_model,
                ]
            )
        )
        console.print("[green]✓ Configuration is valid[/green]")

        for label, folder in [
            ("Images", config.paths.images_dir),
            ("References", config.paths.references_dir),
        ]:
            if not Path(folder).exists():
                console.print(f"[yellow]⚠ Warning: {label} folder does not exist: {folder}[/yellow]")

        distribution = config.sampling.distribution
        if distribution is not None and distribution.total == 0:
            console.print("[yellow]⚠ Warning: Difficulty distribution requests 0 questions[/yellow]")

    except (ConfigurationError, OSError) as e:
        console.print(f"[red]✗ Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
