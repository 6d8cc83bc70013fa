"""Curation pipeline CLI commands."""

import random
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from question_bank.config import ConfigurationError, PipelineConfig, SamplingConfig
from question_bank.curation import (
    CompositionError,
    ExtractionEngine,
    GeneratedMCQ,
    GenerationEngine,
    GenerationError,
    Publisher,
    RecordEmbedder,
    ReferenceIngestor,
    SamplingEngine,
    SetComposer,
    UniformSampler,
    difficulty_label,
    fetch_question_types,
    fetch_reference,
    fetch_topics,
    insert_records,
    list_reference_files,
    list_source_images,
    summarize_selection,
)
from question_bank.models import BatchResult, ModelRegistry
from question_bank.store import ContentStore, RestStore, StoreError
from question_bank.utils import (
    read_jsonl,
    write_extraction_report,
    write_generation_report,
    write_jsonl,
)

console = Console()


def build_store(config: PipelineConfig) -> ContentStore:
    """Content store for a run."""
    config.require_store()
    return RestStore(config.store.url, config.store.api_key, timeout=config.store.timeout)


def build_registry(config: PipelineConfig) -> ModelRegistry:
    """Model registry for a run."""
    return ModelRegistry(config.models)


@contextmanager
def fatal_errors():
    """Turn fatal domain errors into a red ✗ line and exit code 1."""
    try:
        yield
    except (
        ConfigurationError,
        StoreError,
        GenerationError,
        CompositionError,
        FileNotFoundError,
    ) as e:
        console.print(f"\n[red]✗ {type(e).__name__}: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def load_config(config_path: Path) -> PipelineConfig:
    """Load the run configuration, exiting with ✗ when it is unusable."""
    with fatal_errors():
        return PipelineConfig.from_yaml(config_path)


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def _print_failures(result: BatchResult, limit: int = 10) -> None:
    for failure in result.failures[:limit]:
        console.print(f"  [red]✗ {escape(failure.item)}: {escape(failure.reason)}[/red]")
    if result.failure_count > limit:
        console.print(f"  [dim]... and {result.failure_count - limit} more[/dim]")


def _print_vocabulary(label: str, names: list[str]) -> None:
    console.print(f"  [green]✓ Found {len(names)} {label}[/green]")
    for name in names:
        console.print(f"    - {name}")


def extract(
    config_path: Path = typer.Option(..., "--config", "-c", help="Configuration file"),
    no_upload: bool = typer.Option(
        False, "--no-upload", help="Only write the review report, do not insert"
    ),
):
    """Extract past paper questions from scanned images."""
    config = load_config(config_path)
    curation = config.curation

    console.print(
        Panel.fit(
            "[bold cyan]Past Paper Extraction[/bold cyan]\n"
            f"Subject: {curation.subject}\n"
            f"Images: {config.paths.images_dir}",
            title="Extract",
        )
    )

    with fatal_errors():
        config.require_models(curation.vision_model, curation.embedding_model)
        tables = config.store.tables

        with build_store(config) as store, build_registry(config) as registry:
            console.print("\n[bold]Step 1:[/bold] Fetching question types and topics...")
            question_types = fetch_question_types(store, tables.question_types, curation.subject)
            topics = fetch_topics(store, tables.references, curation.subject)
            _print_vocabulary("question types", question_types.names)
            _print_vocabulary("topics", topics.names)
            if not question_types:
                raise ConfigurationError(
                    f"No question types defined for subject {curation.subject}"
                )

            console.print("\n[bold]Step 2:[/bold] Reading image files...")
            images = list_source_images(config.paths.images_dir)
            if not images:
                console.print("[yellow]No images to process.[/yellow]")
                return
            console.print(f"  [green]✓ Found {len(images)} image(s)[/green]")

            console.print(
                f"\n[bold]Step 3:[/bold] Extracting questions from {len(images)} image(s)..."
            )
            engine = ExtractionEngine(
                vlm_client=registry.get_vlm_client(curation.vision_model),
                embedder=RecordEmbedder(registry.get_llm_client(curation.embedding_model)),
                subject=curation.subject,
                question_types=question_types,
                topics=topics,
                grade_level=curation.grade_level,
            )

            with _progress() as progress:
                task = progress.add_task("Extracting...", total=len(images))

                def on_source(report):
                    if report.extracted:
                        progress.console.print(
                            f"  [green]✓ {report.source}[/green]: {report.succeeded}/"
                            f"{report.candidates} question(s)"
                        )
                    else:
                        progress.console.print(
                            f"  [red]✗ {report.source}: {escape(report.error)}[/red]"
                        )
                    progress.update(task, advance=1)

                run = engine.run(images, progress_callback=on_source)

            _print_failures(run.result)

            uploaded = None
            if run.records:
                console.print("\n[bold]Step 4:[/bold] Saving review file...")
                report_path = write_extraction_report(run.records, config.paths.extraction_report)
                console.print(f"  [green]✓ Saved to {report_path}[/green]")

                if not no_upload:
                    console.print("\n[bold]Step 5:[/bold] Uploading questions...")
                    uploaded = insert_records(store, tables.pastpapers, run.records)
                    _print_failures(uploaded)
                    console.print(
                        f"  [green]✓ Upload complete: {uploaded.success_count} succeeded, "
                        f"{uploaded.failure_count} failed[/green]"
                    )
            else:
                console.print("\n[yellow]No questions were extracted.[/yellow]")

    table = Table(title="Extraction Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Images", str(len(images)))
    table.add_row("Images extracted", str(run.sources_extracted))
    table.add_row("Images failed", str(run.sources_failed))
    table.add_row("Questions extracted", str(run.result.success_count))
    table.add_row("Questions failed", str(sum(s.failed for s in run.sources)))
    if uploaded is not None:
        table.add_row("Uploaded", str(uploaded.success_count))
        table.add_row("Upload failures", str(uploaded.failure_count))
    console.print()
    console.print(table)


def generate(
    config_path: Path = typer.Option(..., "--config", "-c", help="Configuration file"),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Questions to generate"
    ),
):
    """Generate multiple choice questions grounded in a reference text."""
    config = load_config(config_path)
    curation = config.curation
    gen = config.generation

    console.print(
        Panel.fit(
            "[bold cyan]MCQ Generation[/bold cyan]\n"
            f"Subject: {curation.subject}\n"
            f"Difficulty: {gen.difficulty.value}",
            title="Generate",
        )
    )

    with fatal_errors():
        topic = config.require_generation_topic()
        config.require_models(curation.generation_model)
        tables = config.store.tables

        with build_store(config) as store, build_registry(config) as registry:
            console.print("\n[bold]Step 1:[/bold] Fetching question types...")
            question_types = fetch_question_types(store, tables.question_types, curation.subject)
            console.print(f"  [green]✓ Found {len(question_types)} question types[/green]")
            if not question_types:
                raise ConfigurationError(
                    f"No question types defined for subject {curation.subject}"
                )

            console.print("\n[bold]Step 2:[/bold] Sampling exemplar questions...")
            sampling = SamplingConfig(
                topic=topic,
                question_types=config.sampling.question_types,
                limit=gen.exemplar_count,
            )
            sampler = SamplingEngine(
                store,
                tables.pastpapers,
                curation.subject,
                sampling,
                question_types=question_types,
                sampler=UniformSampler(random.Random(config.seed)),
            )
            selection = sampler.select()
            if selection.is_empty and gen.exemplar_count > 0:
                console.print("[yellow]No matching past paper questions found.[/yellow]")
                return
            exemplar_topics = sorted({r.topic for r in selection.records})
            console.print(f"  [green]✓ Retrieved {len(selection.records)} exemplar(s)[/green]")
            console.print(f"  [green]✓ Topics covered: {', '.join(exemplar_topics)}[/green]")

            console.print("\n[bold]Step 3:[/bold] Fetching reference content...")
            reference = fetch_reference(store, tables.references, curation.subject, topic)
            console.print(
                f"  [green]✓ {reference.topic}: {len(reference.content)} characters[/green]"
            )

            target = count if count is not None else gen.target_count
            console.print(f"\n[bold]Step 4:[/bold] Generating {target} question(s)...")
            engine = GenerationEngine(
                registry.get_llm_client(curation.generation_model),
                curation.subject,
                gen,
                question_types,
            )
            with console.status("Waiting for model..."):
                items = engine.generate(reference, selection.records, count=target)
            console.print(f"  [green]✓ Generated {len(items)} question(s)[/green]")

            console.print("\n[bold]Step 5:[/bold] Saving for review...")
            report_path = write_generation_report(
                items,
                config.paths.generation_report,
                topic=topic,
                question_types=config.sampling.question_types,
            )
            jsonl_path = write_jsonl(items, config.paths.generated_jsonl)
            console.print(f"  [green]✓ Review file: {report_path}[/green]")
            console.print(f"  [green]✓ Publish file: {jsonl_path}[/green]")

    table = Table(title="Generation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Exemplars used", str(len(selection.records)))
    table.add_row("Questions generated", str(len(items)))
    for label in ("Easy", "Medium", "Hard"):
        table.add_row(label, str(sum(1 for i in items if difficulty_label(i.difficulty) == label)))
    console.print()
    console.print(table)


def compose(
    config_path: Path = typer.Option(..., "--config", "-c", help="Configuration file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Select and summarize only"),
):
    """Select questions and compose them into an ordered set."""
    config = load_config(config_path)
    curation = config.curation
    sampling = config.sampling

    with fatal_errors():
        if config.question_set is None:
            raise ConfigurationError("question_set section is required to compose a set")
        set_config = config.question_set
        set_subject = set_config.subject or curation.subject

        console.print(
            Panel.fit(
                "[bold cyan]Question Set Composition[/bold cyan]\n"
                f"Set topic: {set_config.topic}\n"
                f"Set subject: {set_subject}\n"
                f"Topic filter: {sampling.topic or 'All topics'}\n"
                f"Question types: {', '.join(sampling.question_types or []) or 'All types'}",
                title="Compose",
            )
        )

        tables = config.store.tables

        with build_store(config) as store:
            question_types = None
            if sampling.question_types:
                console.print("\n[bold]Step 1:[/bold] Fetching question types...")
                question_types = fetch_question_types(store, tables.question_types, set_subject)
                console.print(f"  [green]✓ Found {len(question_types)} question types[/green]")

            console.print("\n[bold]Step 2:[/bold] Selecting questions...")
            engine = SamplingEngine(
                store,
                tables.mcqs,
                curation.subject,
                sampling,
                question_types=question_types,
                sampler=UniformSampler(random.Random(config.seed)),
            )
            selection = engine.select()
            for band in selection.bands:
                style = "green" if band.shortfall == 0 else "yellow"
                console.print(
                    f"  [{style}]{band.label}: {band.selected}/{band.requested} "
                    f"({band.available} available)[/{style}]"
                )

            if selection.is_empty:
                console.print("\n[yellow]No matching records. Nothing to compose.[/yellow]")
                return

            _print_selection_summary(selection.records)

            if dry_run:
                console.print("\n[yellow]Dry run: set not created.[/yellow]")
                return

            console.print("\n[bold]Step 3:[/bold] Creating set and linking questions...")
            composer = SetComposer(store, tables.sets, tables.set_members)
            composed = composer.compose(
                set_config.topic, set_config.description, set_subject, selection.records
            )

    console.print(
        Panel.fit(
            f"[bold green]✓ Question set created[/bold green]\n\n"
            f"Set ID: {composed.question_set.id}\n"
            f"Questions: {composed.size}\n"
            f"Topic: {composed.question_set.topic}\n"
            f"Subject: {composed.question_set.subject}",
            title="Success",
            border_style="green",
        )
    )


def _print_selection_summary(records) -> None:
    summary = summarize_selection(records)

    table = Table(title=f"Selected Questions ({summary.total})")
    table.add_column("Topic", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for topic, n in summary.by_topic.items():
        table.add_row(topic, str(n))
    console.print()
    console.print(table)

    table = Table(title="By Difficulty")
    table.add_column("Level", style="cyan")
    table.add_column("Band")
    table.add_column("Count", style="green", justify="right")
    for level, n in summary.by_difficulty.items():
        table.add_row(str(level if level is not None else "-"), difficulty_label(level), str(n))
    console.print(table)

    console.print("\n[bold]Sample questions:[/bold]")
    for i, record in enumerate(summary.samples, 1):
        console.print(f"  {i}. {escape(record.question[:80])}...")
        console.print(f"     [dim]Difficulty: {record.difficulty}/5 | Topic: {record.topic}[/dim]")


def ingest_references(
    config_path: Path = typer.Option(..., "--config", "-c", help="Configuration file"),
):
    """Summarize, embed and upload reference texts."""
    config = load_config(config_path)
    curation = config.curation

    console.print(
        Panel.fit(
            "[bold cyan]Reference Upload[/bold cyan]\n"
            f"Subject: {curation.subject}\n"
            f"Folder: {config.paths.references_dir}",
            title="Ingest References",
        )
    )

    with fatal_errors():
        config.require_models(curation.summary_model, curation.embedding_model)

        console.print("\n[bold]Step 1:[/bold] Reading reference files...")
        paths = list_reference_files(config.paths.references_dir)
        if not paths:
            console.print("[yellow]No reference files to upload.[/yellow]")
            return
        console.print(f"  [green]✓ Found {len(paths)} file(s)[/green]")

        with build_store(config) as store, build_registry(config) as registry:
            console.print(f"\n[bold]Step 2:[/bold] Processing {len(paths)} file(s)...")
            ingestor = ReferenceIngestor(
                store,
                config.store.tables.references,
                registry.get_llm_client(curation.summary_model),
                RecordEmbedder(registry.get_llm_client(curation.embedding_model)),
                subject=curation.subject,
                grade_level=curation.grade_level,
            )

            def on_file(path, error):
                if error:
                    console.print(f"  [red]✗ {path.name}: {escape(error)}[/red]")
                else:
                    console.print(f"  [green]✓ {path.stem}[/green]")

            result = ingestor.ingest(paths, progress_callback=on_file)

    table = Table(title="Upload Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Files", str(len(paths)))
    table.add_row("Uploaded", str(result.success_count))
    table.add_row("Failed", str(result.failure_count))
    console.print()
    console.print(table)


def publish(
    config_path: Path = typer.Option(..., "--config", "-c", help="Configuration file"),
    input_path: Optional[Path] = typer.Option(
        None, "--input", "-i", help="Reviewed JSONL file (defaults to paths.generated_jsonl)"
    ),
):
    """Embed and upload reviewed generated questions."""
    config = load_config(config_path)
    curation = config.curation
    source = input_path or config.paths.generated_jsonl

    console.print(
        Panel.fit(
            "[bold cyan]Publish Generated Questions[/bold cyan]\n" f"Input: {source}",
            title="Publish",
        )
    )

    with fatal_errors():
        config.require_models(curation.embedding_model)
        try:
            items = read_jsonl(source, GeneratedMCQ)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if not items:
            console.print("[yellow]No questions to publish.[/yellow]")
            return

        tables = config.store.tables

        with build_store(config) as store, build_registry(config) as registry:
            console.print("\n[bold]Step 1:[/bold] Fetching question types...")
            question_types = fetch_question_types(store, tables.question_types, curation.subject)
            console.print(f"  [green]✓ Found {len(question_types)} question types[/green]")

            console.print(f"\n[bold]Step 2:[/bold] Publishing {len(items)} question(s)...")
            publisher = Publisher(
                store,
                tables.mcqs,
                RecordEmbedder(registry.get_llm_client(curation.embedding_model)),
                subject=curation.subject,
                question_types=question_types,
                grade_level=curation.grade_level,
            )
            result = publisher.publish(items)
            _print_failures(result)

    table = Table(title="Publish Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Questions", str(len(items)))
    table.add_row("Published", str(result.success_count))
    table.add_row("Failed", str(result.failure_count))
    console.print()
    console.print(table)
