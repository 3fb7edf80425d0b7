#!/usr/bin/env python3
"""DocForge CLI - Entry point for context-budgeted document generation.

Usage:
    # Named texts from a JSON file (name -> text)
    python main.py --texts ./context.json --template ./sprint0.txt --title "Sprint 0 Summary"

    # A project from a JSON export
    python main.py --project-export ./export.json --project-id p-123 --template ./brief.txt

    # A project straight from the hosted data store
    python main.py --supabase --project-id p-123 --template ./brief.txt --structured --format md

    # Show the plan only (no model calls)
    python main.py --texts ./context.json --template "Write a brief" --plan-only
"""

import sys
import json
from pathlib import Path
from typing import Dict, Optional

try:
    import click
    from rich.console import Console
    from rich.markup import escape
    from rich.panel import Panel
    from rich.progress import Progress, SpinnerColumn, TextColumn
    from rich.table import Table
except ImportError:
    print("Missing dependencies. Run: pip install click rich")
    sys.exit(1)

from contracts import ChunkPriority, ContextConfig, ContextPlan
from context.prompt_builder import build_prompt_within_limit
from documents import format_document
from errors import DataStoreError, GenerationError, PlanningError
from orchestrator import DocumentGenerator
from providers import GenerationService, get_provider, list_providers as get_available_providers
from resolver import InMemoryProjectStore, SupabaseProjectStore, VariableResolver
from config import settings


console = Console(stderr=True)


def read_template(template: str) -> str:
    """Read a template from a file, or treat the argument as literal text."""
    path = Path(template)
    if path.is_file():
        return path.read_text(encoding="utf-8", errors="replace")
    return template


def read_named_texts(texts_path: str) -> Dict[str, str]:
    """Load a JSON object of chunk name -> text."""
    try:
        data = json.loads(Path(texts_path).read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--texts")
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise click.BadParameter("must be a JSON object of name -> text", param_hint="--texts")
    return data


def render_plan(context_plan: ContextPlan, template_prompt: str) -> None:
    """Print the context plan as a table."""
    table = Table(title=f"Context plan: {context_plan.strategy.value}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Chunk")
    table.add_column("Priority")
    table.add_column("Tokens", justify="right")

    for i, chunk in enumerate(context_plan.chunks, 1):
        table.add_row(
            str(i),
            chunk.name,
            ChunkPriority(chunk.priority).name,
            f"{chunk.estimated_tokens:,}",
        )
    console.print(table)

    console.print(f"  [dim]Total:[/dim] {context_plan.total_estimated_tokens:,} tokens")
    console.print(f"  [dim]Context limit:[/dim] {context_plan.context_limit:,}")
    console.print(f"  [dim]Hierarchical threshold:[/dim] {context_plan.hierarchical_threshold:,}")

    _, _, dropped = build_prompt_within_limit(
        [c for c in context_plan.chunks if c.name != "template_prompt"],
        template_prompt,
        context_plan.context_limit,
        reserve_tokens=settings.prompt_reserve_tokens,
        chars_per_token=settings.chars_per_token,
    )
    if dropped:
        console.print(
            f"  [yellow]A single call would drop:[/yellow] {', '.join(dropped)} "
            f"(handled by {context_plan.strategy.value} processing)"
        )


@click.command()
@click.option(
    "--texts", "-t", "texts_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file of chunk name -> text"
)
@click.option(
    "--project-export", "-e",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON project export (one bundle, a list, or {\"projects\": [...]})"
)
@click.option(
    "--supabase",
    is_flag=True,
    help="Read the project from the hosted data store (DOCFORGE_SUPABASE_URL / _KEY)"
)
@click.option(
    "--project-id", "-p",
    help="Project id for --project-export or --supabase"
)
@click.option(
    "--template", "-T",
    help="Template prompt: path to a file or literal text"
)
@click.option(
    "--title",
    default=None,
    help="Document title"
)
@click.option(
    "--context-limit",
    type=int,
    default=None,
    help=f"Single-call token budget (default: {settings.context_limit:,})"
)
@click.option(
    "--hierarchical-threshold",
    type=int,
    default=None,
    help=f"Token total that switches to hierarchical processing (default: {settings.hierarchical_threshold:,})"
)
@click.option(
    "--merge-strategy",
    type=click.Choice(["generate", "concatenate"]),
    default=None,
    help=f"How partial outputs are combined (default: {settings.merge_strategy})"
)
@click.option(
    "--parallel",
    type=int,
    default=None,
    help="Worker count for hierarchical detail batches (default: 1)"
)
@click.option(
    "--provider",
    type=click.Choice(["anthropic", "openai", "gemini", "deepseek"]),
    default=None,
    help="LLM provider (default: from --model or settings)"
)
@click.option(
    "--model",
    default=None,
    help="Model name (e.g., gpt-4o, claude-sonnet, gemini-flash)"
)
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["markdown", "md", "text", "txt", "json", "csv"]),
    default="markdown",
    help="Output format for structured documents"
)
@click.option(
    "--output", "-o", "output_path",
    default=None,
    help="Write the document to this file instead of stdout"
)
@click.option(
    "--structured",
    is_flag=True,
    help="Ask for JSON document structure and render it with --format"
)
@click.option(
    "--plan-only",
    is_flag=True,
    help="Show the context plan and exit without calling a model"
)
@click.option(
    "--list-providers",
    is_flag=True,
    help="List available providers and exit"
)
def main(
    texts_path: Optional[str],
    project_export: Optional[str],
    supabase: bool,
    project_id: Optional[str],
    template: Optional[str],
    title: Optional[str],
    context_limit: Optional[int],
    hierarchical_threshold: Optional[int],
    merge_strategy: Optional[str],
    parallel: Optional[int],
    provider: Optional[str],
    model: Optional[str],
    output_format: str,
    output_path: Optional[str],
    structured: bool,
    plan_only: bool,
    list_providers: bool,
):
    """DocForge: generate documents from project context of any size.

    Content that does not fit one model call is split across sequential
    passes or summarized first and detailed in batches. Nothing is dropped.
    """
    # Handle --list-providers
    if list_providers:
        console.print("[bold]Available LLM Providers:[/bold]\n")
        for name, available in get_available_providers().items():
            status = "[green]✓ Ready[/green]" if available else "[red]✗ No API key[/red]"
            console.print(f"  {name:12} {status}")
        console.print("\n[dim]Set API keys via environment variables:[/dim]")
        console.print("  ANTHROPIC_API_KEY, OPENAI_API_KEY, GEMINI_API_KEY, DEEPSEEK_API_KEY")
        return

    # Validate required options
    if not template:
        console.print("[red]Error: --template is required[/red]")
        sys.exit(1)
    sources = sum(bool(s) for s in (texts_path, project_export, supabase))
    if sources != 1:
        console.print("[red]Error: use exactly one of --texts, --project-export, --supabase[/red]")
        sys.exit(1)
    if (project_export or supabase) and not project_id:
        console.print("[red]Error: --project-id is required with --project-export/--supabase[/red]")
        sys.exit(1)

    overrides = {}
    if merge_strategy:
        overrides["merge_strategy"] = merge_strategy
    if parallel:
        overrides["max_parallel_batches"] = max(1, parallel)
    run_settings = settings.model_copy(update=overrides)

    config = ContextConfig(
        context_limit=context_limit or run_settings.context_limit,
        hierarchical_threshold=hierarchical_threshold or run_settings.hierarchical_threshold,
    )
    template_prompt = read_template(template)

    console.print(Panel.fit(
        "[bold blue]DocForge[/bold blue]\n"
        "[dim]Context-budgeted document generation[/dim]",
        border_style="blue"
    ))

    try:
        # Resolve inputs
        project_name = client_name = None
        if texts_path:
            console.print(f"\n[dim]Reading texts from:[/dim] {texts_path}")
            named_texts = read_named_texts(texts_path)
        else:
            store = (
                SupabaseProjectStore() if supabase
                else InMemoryProjectStore.from_export(project_export)
            )
            console.print(f"\n[dim]Loading project:[/dim] {project_id}")
            resolver = VariableResolver(store)
            bundle = store.load_bundle(project_id)
            named_texts = resolver.resolve_bundle(
                bundle,
                resolver.chunk_variables(template_prompt),
                document_title=title or "Untitled Document",
            )
            template_prompt = resolver.render_template(template_prompt, bundle.project)
            project_name = bundle.project.name
            client_name = bundle.client.name if bundle.client else None

        if plan_only:
            context_plan = DocumentGenerator(settings=run_settings).prepare(
                named_texts, template_prompt, config
            )
            render_plan(context_plan, template_prompt)
            return

        if provider or model:
            console.print(f"\n[dim]Provider:[/dim] {provider or 'auto-detect'}")
            if model:
                console.print(f"[dim]Model:[/dim] {model}")
        generator = GenerationService(provider=get_provider(provider, model))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Generating...", total=None)
            result = DocumentGenerator(generator=generator, settings=run_settings).run(
                named_texts,
                template_prompt,
                config=config,
                title=title,
                structured=structured,
                project_name=project_name,
                client_name=client_name,
            )
            progress.update(task, completed=True)

    except PlanningError as e:
        console.print(f"[red]Invalid budget configuration:[/red] {escape(str(e))}")
        sys.exit(1)
    except DataStoreError as e:
        console.print(f"[red]Could not load project data:[/red] {escape(str(e))}")
        sys.exit(1)
    except GenerationError as e:
        console.print(f"[red]Generation failed at {e.location}:[/red] {escape(str(e))}")
        if e.completed_passes:
            console.print(f"[dim]{len(e.completed_passes)} passes completed before the failure[/dim]")
        sys.exit(1)

    # Display results
    console.print("\n" + "=" * 60)
    console.print(f"[green]Strategy:[/green] {result.strategy.value}")
    console.print(f"[green]Generation calls:[/green] {result.iterations}")
    if result.usage:
        console.print(f"  Input tokens:  {result.usage.get('input_tokens', 0):,}")
        console.print(f"  Output tokens: {result.usage.get('output_tokens', 0):,}")
        console.print(f"  Total cost:    ${result.usage.get('cost_usd', 0):.4f}")

    document = result.document
    if structured:
        if result.structure is not None:
            document = format_document(result.structure, output_format)
        else:
            console.print("[yellow]Response was not valid structured JSON; writing raw text[/yellow]")

    if output_path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
        console.print(f"\n[bold]Output saved to:[/bold] {path}")
    else:
        click.echo(document)

    console.print("=" * 60)


if __name__ == "__main__":
    main()
