"""
PromptShelf CLI Main Entry Point

Command-line interface for managing the prompt library.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, NoReturn, Optional, TypeVar

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from promptshelf.config import get_settings
from promptshelf.exceptions import PromptShelfError
from promptshelf.integrations.base import GenerativeClient
from promptshelf.integrations.gemini import GeminiClient
from promptshelf.logging_config import configure_logging
from promptshelf.models.prompt import Modality, Prompt, active_text
from promptshelf.schemas.generation import EnhanceMode
from promptshelf.schemas.prompt import PromptCreate, PromptQuery, PromptUpdate
from promptshelf.services import template_engine
from promptshelf.services.assistant import PromptAssistant
from promptshelf.services.import_export import ImportExportService
from promptshelf.services.persistence import CollectionStore
from promptshelf.services.prompt_store import PromptStoreService
from promptshelf.services.statistics import collect_statistics
from promptshelf.services.test_history import find_test_result
from promptshelf.services.test_runner import TestRunner
from promptshelf.services.version_ledger import VersionLedger

T = TypeVar("T")

app = typer.Typer(
    name="promptshelf",
    help="PromptShelf prompt library CLI",
    add_completion=False,
)
console = Console()

SORT_ORDERS = ("createdAt-desc", "createdAt-asc", "title-asc", "title-desc")


@app.callback()
def setup():
    """Personal library for generative-AI prompts."""
    configure_logging(get_settings())


def get_store() -> PromptStoreService:
    """Open the configured collection."""
    settings = get_settings()
    return PromptStoreService(CollectionStore(settings.store_path))


def get_client() -> GenerativeClient:
    """Get configured generative-model client."""
    return GeminiClient(get_settings())


def run_with_client(action: Callable[[GenerativeClient], Awaitable[T]]) -> T:
    """Run an async action against a fresh client and close it afterwards."""
    async def runner() -> T:
        client = get_client()
        try:
            return await action(client)
        finally:
            await client.aclose()

    return asyncio.run(runner())


def fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(1)


def parse_vars(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated --var name=value options."""
    values = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got {pair!r}", param_hint="--var")
        values[name] = value
    return values


def read_text_option(text: Optional[str], file: Optional[Path]) -> Optional[str]:
    if file is not None:
        if not file.exists():
            console.print(f"[red]File not found: {escape(str(file))}[/red]")
            raise typer.Exit(1)
        return file.read_text(encoding="utf-8")
    return text


def print_prompt_text(prompt: Prompt) -> None:
    syntax = Syntax(active_text(prompt), "markdown", theme="monokai", word_wrap=True)
    console.print(syntax)


# =============================================================================
# Library
# =============================================================================


@app.command()
def seed():
    """Load the demo prompts into an empty library."""
    try:
        count = get_store().seed_demo()
    except PromptShelfError as e:
        fail(e)

    if count:
        console.print(f"[green]✓ Loaded {count} demo prompts[/green]")
    else:
        console.print("[yellow]Library is not empty; demo prompts not loaded[/yellow]")


@app.command()
def add(
    title: str = typer.Option(..., "--title", "-t", help="Prompt title"),
    text: Optional[str] = typer.Option(None, "--text", help="Prompt text"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read prompt text from a file"),
    modality: Modality = typer.Option(Modality.TEXT, "--modality", "-m", help="Output modality"),
    theme: str = typer.Option("", "--theme", help="Theme"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    notes: str = typer.Option("", "--notes", help="Notes"),
):
    """Add a prompt."""
    prompt_text = read_text_option(text, file) or ""
    try:
        prompt = get_store().create(
            PromptCreate(
                title=title,
                prompt_text=prompt_text,
                modality=modality,
                theme=theme,
                tags=tags or [],
                notes=notes,
            )
        )
    except PromptShelfError as e:
        fail(e)

    console.print(f"[green]✓ Created {escape(prompt.title)}[/green] [dim]({prompt.id})[/dim]")
    variables = template_engine.extract_variables(prompt_text)
    if variables:
        console.print(f"Template variables: {escape(', '.join(variables))}")


@app.command()
def edit(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    text: Optional[str] = typer.Option(None, "--text", help="New prompt text"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read new prompt text from a file"),
    modality: Optional[Modality] = typer.Option(None, "--modality", "-m", help="Output modality"),
    theme: Optional[str] = typer.Option(None, "--theme", help="Theme"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Replace tags (repeatable)"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Notes"),
):
    """Edit a prompt. Changed text is saved as a new version."""
    prompt_text = read_text_option(text, file)
    try:
        store = get_store()
        before = store.get(prompt_id)
        prompt = store.update(
            prompt_id,
            PromptUpdate(
                title=title,
                prompt_text=prompt_text,
                modality=modality,
                theme=theme,
                tags=tags or None,
                notes=notes,
            ),
        )
    except PromptShelfError as e:
        fail(e)

    if prompt.current_version != before.current_version:
        console.print(f"[green]✓ Saved version {prompt.current_version}[/green]")
    else:
        console.print("[green]✓ Details updated[/green]")


@app.command()
def delete(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a prompt and its whole history."""
    if not yes:
        typer.confirm(f"Delete prompt {prompt_id} and all of its versions?", abort=True)

    try:
        deleted = get_store().delete(prompt_id)
    except PromptShelfError as e:
        fail(e)

    if not deleted:
        console.print(f"[red]Prompt not found: {escape(prompt_id)}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Prompt deleted[/green]")


def render_prompt_table(prompts: List[Prompt], title: str = "Prompts") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Modality", style="magenta")
    table.add_column("Theme", style="green")
    table.add_column("Tags")
    table.add_column("Version")

    for prompt in prompts:
        table.add_row(
            prompt.id,
            escape(prompt.title),
            prompt.modality.value,
            escape(prompt.theme),
            escape(", ".join(prompt.tags)),
            f"v{prompt.current_version}/{len(prompt.versions)}",
        )
    return table


@app.command("list")
def list_prompts(
    modality: Optional[Modality] = typer.Option(None, "--modality", "-m", help="Filter by modality"),
    theme: Optional[str] = typer.Option(None, "--theme", help="Filter by theme"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Keyword search"),
    sort: str = typer.Option("createdAt-desc", "--sort", help="Sort order: " + ", ".join(SORT_ORDERS)),
):
    """List prompts."""
    if sort not in SORT_ORDERS:
        raise typer.BadParameter(f"Choose one of {', '.join(SORT_ORDERS)}", param_hint="--sort")

    try:
        store = get_store()
        prompts = store.list(PromptQuery(modality=modality, theme=theme, search=search, sort=sort))
    except PromptShelfError as e:
        fail(e)

    console.print(render_prompt_table(prompts))
    console.print(f"\nTotal: {len(prompts)} prompts")

    themes = store.top_themes()
    if themes and not (modality or theme or search):
        console.print(f"[dim]Top themes: {escape(', '.join(themes))}[/dim]")


@app.command()
def show(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
):
    """Show a prompt with the test history of its active version."""
    try:
        prompt = get_store().get(prompt_id)
    except PromptShelfError as e:
        fail(e)

    console.print(f"\n[bold]{escape(prompt.title)}[/bold] (v{prompt.current_version})\n")
    console.print(f"[bold]ID:[/bold] {prompt.id}")
    console.print(f"[bold]Modality:[/bold] {prompt.modality.value}")
    if prompt.theme:
        console.print(f"[bold]Theme:[/bold] {escape(prompt.theme)}")
    if prompt.tags:
        console.print(f"[bold]Tags:[/bold] {escape(', '.join(prompt.tags))}")
    console.print(f"[bold]Created:[/bold] {prompt.created_at.isoformat()}\n")
    print_prompt_text(prompt)

    if prompt.notes:
        console.print(f"\n[bold]Notes:[/bold] {escape(prompt.notes)}")

    variables = template_engine.extract_variables(active_text(prompt))
    if variables:
        console.print(f"\n[bold]Variables:[/bold] {escape(', '.join(variables))}")

    results = prompt.active_version.test_results
    if not results:
        console.print("\n[dim]No test runs for this version yet[/dim]")
        return

    table = Table(title=f"Test history (v{prompt.current_version})")
    table.add_column("Result ID", style="cyan")
    table.add_column("Created")
    table.add_column("Output")
    table.add_column("Score")
    for result in results:
        output = result.output if len(result.output) <= 80 else result.output[:77] + "..."
        score = f"{result.evaluation.score}/10" if result.evaluation else "-"
        table.add_row(result.id, result.created_at.isoformat(), escape(output), score)
    console.print(table)


# =============================================================================
# Versions
# =============================================================================


@app.command()
def versions(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
):
    """List the versions of a prompt."""
    try:
        prompt = get_store().get(prompt_id)
    except PromptShelfError as e:
        fail(e)

    table = Table(title=f"Versions: {escape(prompt.title)}")
    table.add_column("Version")
    table.add_column("Created")
    table.add_column("Runs")
    table.add_column("Evaluated")
    table.add_column("Best")
    table.add_column("Active", style="green")

    for version in sorted(prompt.versions, key=lambda v: v.version, reverse=True):
        summary = VersionLedger.summarize_history(version)
        best = summary["best_score"]
        table.add_row(
            f"v{version.version}",
            version.created_at.isoformat(),
            str(summary["runs"]),
            str(summary["evaluated"]),
            f"{best}/10" if best is not None else "-",
            "✓" if version.version == prompt.current_version else "",
        )
    console.print(table)


@app.command()
def use(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    version: int = typer.Argument(..., help="Version to make active"),
):
    """Switch the active version (rollback)."""
    try:
        get_store().set_active_version(prompt_id, version)
    except PromptShelfError as e:
        fail(e)

    console.print(f"[green]✓ Now using version {version}[/green]")


@app.command()
def diff(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    v1: int = typer.Argument(..., help="First version"),
    v2: Optional[int] = typer.Argument(None, help="Second version (defaults to the newest other version)"),
):
    """Show diff between two versions of a prompt."""
    try:
        prompt = get_store().get(prompt_id)
        comparison = VersionLedger.compare_versions(prompt, v1, v2)
    except PromptShelfError as e:
        fail(e)

    console.print(f"\n[bold]Diff: {escape(prompt.title)}[/bold]")
    console.print(f"[dim]v{comparison['version_a']} → v{comparison['version_b']}[/dim]\n")

    if comparison["diff"]:
        console.print(Syntax(comparison["diff"], "diff", theme="monokai"))
    else:
        console.print("[dim]No text differences[/dim]")

    for key in ("history_a", "history_b"):
        summary = comparison[key]
        average = summary["average_score"]
        console.print(
            f"v{summary['version']}: {summary['runs']} runs, "
            f"{summary['evaluated']} evaluated, "
            f"average score {average if average is not None else '-'}"
        )


# =============================================================================
# Templates
# =============================================================================


@app.command("vars")
def list_variables(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
):
    """List the template variables of the active version."""
    try:
        prompt = get_store().get(prompt_id)
    except PromptShelfError as e:
        fail(e)

    variables = template_engine.extract_variables(active_text(prompt))
    if not variables:
        console.print("[dim]This prompt is not a template[/dim]")
        return
    for name in variables:
        console.print(f"• {escape(name)}")


@app.command("compile")
def compile_prompt(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    var: Optional[List[str]] = typer.Option(None, "--var", "-v", help="Variable value as name=value (repeatable)"),
):
    """Preview the active version with variable values filled in."""
    values = parse_vars(var)
    try:
        prompt = get_store().get(prompt_id)
    except PromptShelfError as e:
        fail(e)

    preview = template_engine.preview(active_text(prompt), values)
    console.print(escape(preview.compiled))
    if not preview.ready:
        console.print(f"\n[yellow]Missing values: {escape(', '.join(preview.missing))}[/yellow]")


# =============================================================================
# Testing
# =============================================================================


@app.command()
def test(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    var: Optional[List[str]] = typer.Option(None, "--var", "-v", help="Variable value as name=value (repeatable)"),
):
    """Run the active version against the model and record the output."""
    values = parse_vars(var)
    try:
        store = get_store()
        prompt = store.get(prompt_id)
        console.print(f"[dim]Running v{prompt.current_version} of {escape(prompt.title)}...[/dim]")
        result = run_with_client(lambda client: TestRunner(store, client).run_test(prompt_id, values))
    except PromptShelfError as e:
        fail(e)

    console.print(f"[green]✓ Test recorded[/green] [dim]({result.id})[/dim]\n")
    if prompt.modality == Modality.IMAGE:
        console.print(f"Image generated ({len(result.output)} byte data URI)")
    elif prompt.modality == Modality.VIDEO:
        console.print(f"Video saved to {escape(result.output)}")
    else:
        console.print(escape(result.output))


@app.command()
def evaluate(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    test_result_id: str = typer.Argument(..., help="Test result ID"),
    version: Optional[int] = typer.Option(None, "--version", help="Version holding the result (defaults to the one recording it)"),
    force: bool = typer.Option(False, "--force", help="Re-evaluate an already evaluated result"),
):
    """Ask the model to score a recorded test output."""
    try:
        store = get_store()
        prompt = store.get(prompt_id)
        if version is None:
            found = find_test_result(prompt, test_result_id)
            version = found[0].version if found else prompt.current_version
        target = prompt.get_version(version)
        existing = target.get_test_result(test_result_id) if target else None
        if existing is not None and existing.evaluation is not None and not force:
            console.print("[yellow]This result is already evaluated. Use --force to re-evaluate.[/yellow]")
            raise typer.Exit(1)

        evaluation = run_with_client(
            lambda client: TestRunner(store, client).evaluate(prompt_id, test_result_id, version)
        )
    except PromptShelfError as e:
        fail(e)

    console.print(f"[green]✓ Score: {evaluation.score}/10[/green]")
    console.print(f"[italic]{escape(evaluation.feedback)}[/italic]")


# =============================================================================
# AI assistance
# =============================================================================


@app.command()
def categorize(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    apply: bool = typer.Option(False, "--apply", help="Save the suggested theme and tags"),
):
    """Suggest a theme and tags for a prompt."""
    try:
        store = get_store()
        suggestion = run_with_client(
            lambda client: PromptAssistant(store, client).categorize(prompt_id, apply=apply)
        )
    except PromptShelfError as e:
        fail(e)

    console.print(f"[bold]Theme:[/bold] {escape(suggestion.theme)}")
    console.print(f"[bold]Tags:[/bold] {escape(', '.join(suggestion.tags))}")
    if apply:
        console.print("[green]✓ Categorization saved[/green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    ai: bool = typer.Option(False, "--ai", help="Rank by semantic relevance with the model"),
    modality: Optional[Modality] = typer.Option(None, "--modality", "-m", help="Filter by modality"),
    theme: Optional[str] = typer.Option(None, "--theme", help="Filter by theme"),
):
    """Search prompts by keyword or, with --ai, by meaning."""
    try:
        store = get_store()
        if ai:
            filters = PromptQuery(modality=modality, theme=theme)
            prompts = run_with_client(lambda client: store.semantic_search(query, client, filters))
        else:
            prompts = store.list(PromptQuery(modality=modality, theme=theme, search=query))
    except PromptShelfError as e:
        fail(e)

    if not prompts:
        console.print("[dim]No prompts found. Try adjusting your filters or search term.[/dim]")
        return
    console.print(render_prompt_table(prompts, title=f"Results for '{escape(query)}'"))


@app.command()
def enhance(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    mode: EnhanceMode = typer.Option(EnhanceMode.IMPROVE, "--mode", help="improve or variations"),
    apply: Optional[int] = typer.Option(None, "--apply", help="Save suggestion N as a new version"),
):
    """Get rewrites of a prompt from the model."""
    try:
        store = get_store()
        assistant_suggestions = run_with_client(
            lambda client: PromptAssistant(store, client).enhance(prompt_id, mode)
        )
    except PromptShelfError as e:
        fail(e)

    if not assistant_suggestions:
        console.print("[yellow]No suggestions returned[/yellow]")
        return

    for index, suggestion in enumerate(assistant_suggestions, start=1):
        console.print(f"\n[bold]{index}.[/bold] {escape(suggestion)}")

    if apply is not None:
        if not 1 <= apply <= len(assistant_suggestions):
            console.print(f"[red]No suggestion {apply}; choose 1-{len(assistant_suggestions)}[/red]")
            raise typer.Exit(1)
        try:
            prompt = store.apply_enhancement(prompt_id, assistant_suggestions[apply - 1])
        except PromptShelfError as e:
            fail(e)
        console.print(f"\n[green]✓ Saved suggestion {apply} as version {prompt.current_version}[/green]")


# =============================================================================
# Import / export
# =============================================================================


@app.command("import")
def import_prompts(
    file: Path = typer.Argument(..., help="CSV file to import"),
):
    """Import prompts from CSV."""
    if not file.exists():
        console.print(f"[red]File not found: {escape(str(file))}[/red]")
        raise typer.Exit(1)

    try:
        result = ImportExportService(get_store()).import_csv(file.read_bytes())
    except PromptShelfError as e:
        fail(e)

    console.print(f"[green]✓ Imported {result.imported} prompts[/green]")
    if result.skipped:
        console.print(
            f"[yellow]Skipped {result.skipped}: {result.duplicates} duplicates, "
            f"{result.malformed} malformed, {result.invalid} invalid[/yellow]"
        )
    for error in result.errors:
        console.print(f"[dim]{escape(error)}[/dim]")


@app.command()
def export(
    output: Optional[Path] = typer.Argument(None, help="Output file or directory"),
):
    """Export the library as JSON."""
    try:
        path = ImportExportService(get_store()).export_to_file(output)
    except PromptShelfError as e:
        fail(e)

    console.print(f"[green]✓ Exported to {escape(str(path))}[/green]")


@app.command()
def share(
    prompt_id: str = typer.Argument(..., help="Prompt ID"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
):
    """Render a shareable Markdown card for a prompt."""
    try:
        store = get_store()
        card = ImportExportService(store).render_share_card(store.get(prompt_id))
    except PromptShelfError as e:
        fail(e)

    if output:
        output.write_text(card, encoding="utf-8")
        console.print(f"[green]✓ Saved to {escape(str(output))}[/green]")
    else:
        console.print(escape(card))


@app.command()
def stats():
    """Show library statistics."""
    try:
        statistics = collect_statistics(get_store().prompts)
    except PromptShelfError as e:
        fail(e)

    if not statistics.total_prompts:
        console.print("[dim]No data available. Add some prompts to see your statistics.[/dim]")
        return

    console.print(f"[bold]Total prompts:[/bold] {statistics.total_prompts}")
    console.print(f"[bold]Most used modality:[/bold] {statistics.most_used_modality}")
    console.print(f"[bold]Total themes:[/bold] {statistics.total_themes}")
    console.print(f"[bold]Versions:[/bold] {statistics.total_versions}")
    console.print(f"[bold]Test runs:[/bold] {statistics.total_test_runs} ({statistics.evaluated_runs} evaluated)")
    if statistics.average_score is not None:
        console.print(f"[bold]Average score:[/bold] {statistics.average_score}")

    table = Table(title="Prompts by modality")
    table.add_column("Modality", style="magenta")
    table.add_column("Count")
    for name, count in sorted(statistics.modality_counts.items(), key=lambda item: -item[1]):
        table.add_row(name, str(count))
    console.print(table)

    if statistics.theme_counts:
        table = Table(title="Top themes")
        table.add_column("Theme", style="green")
        table.add_column("Count")
        for name, count in statistics.theme_counts:
            table.add_row(escape(name), str(count))
        console.print(table)


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current config"),
):
    """Show CLI configuration."""
    settings = get_settings()
    if not show:
        console.print("Use --show to display current config. Settings are read from PROMPTSHELF_* environment variables.")
        return

    data = settings.model_dump(mode="json")
    data["gemini_api_key"] = "***" if settings.gemini_api_key else ""
    data["store_path"] = str(settings.store_path)
    rprint(data)


def main():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
