"""
Command-line interface for ProjectHub AI.

This module provides the CLI entry point for the installed package.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from projecthub_ai import __version__
from projecthub_ai.config import settings
from projecthub_ai.constants import ChatMode
from projecthub_ai.container import ServiceContainer
from projecthub_ai.exceptions import ProjectHubError, ServiceBusyError
from projecthub_ai.generation.models import ProjectSpec
from projecthub_ai.logger import get_logger, setup_logger
from projecthub_ai.safety.classifier import ContentSafetyClassifier
from projecthub_ai.safety.quick_responses import QuickResponseMatcher
from projecthub_ai.safety.rules import load_rules
from projecthub_ai.utils.helpers import format_duration

# Initialize console for rich output
console = Console()
logger = get_logger(__name__)


def setup_cli_logging(verbose: bool = False) -> None:
    """Setup logging for CLI usage."""
    if verbose:
        level = "DEBUG"
        log_format = "simple"
    else:
        level = "WARNING"
        log_format = settings.log_format

    setup_logger(level=level, log_format=log_format)


def _project_spec(name: str, description: str, stack: str, features: tuple, skill_level: str) -> ProjectSpec:
    return ProjectSpec(
        project_name=name,
        description=description,
        tech_stack=stack,
        features=list(features),
        skill_level=skill_level
    )


def _emit_json(data: Dict[str, Any], output: Optional[str]) -> None:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]✓ Written to {output}[/green]")
    else:
        console.print_json(text)


async def _with_services(action):
    async with ServiceContainer() as services:
        return await action(services)


def _run(action, description: str):
    """Run an async action against the services with a spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    ) as progress:
        progress.add_task(f"[cyan]{description}", total=None)
        try:
            return asyncio.run(_with_services(action))
        except ServiceBusyError as e:
            console.print(f"[yellow]{e}[/yellow]")
            sys.exit(2)
        except ProjectHubError as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)


@click.group()
def cli():
    """ProjectHub AI - learning assistant and project builder."""
    pass


@cli.command()
@click.argument("message")
@click.option("--rules", "rules_path", default=None, help="YAML rules file (default: bundled rules)")
def classify(message: str, rules_path: Optional[str]) -> None:
    """Run the safety classifier and quick-response matcher on MESSAGE."""
    try:
        rules = load_rules(rules_path)
    except ProjectHubError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    verdict = ContentSafetyClassifier(rules).classify(message)
    group = QuickResponseMatcher(rules).match_group(message) if verdict.accepted else None

    table = Table(title="Classification", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Accepted", "yes" if verdict.accepted else "[red]no[/red]")
    table.add_row("Reason", verdict.reason_code.value)
    table.add_row("Detail", verdict.detail or "-")
    table.add_row("Quick response", group.name if group else "-")
    console.print(table)

    if verdict.user_facing_message:
        console.print(Panel(verdict.user_facing_message, border_style="red"))


@cli.command()
@click.argument("message")
@click.option("--mode", "-m", type=click.Choice([m.value for m in ChatMode]), default=ChatMode.GENERAL.value,
              help="Assistant mode")
@click.option("--user", "-u", "user_id", default="cli-user", help="User id for credits and history")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def chat(message: str, mode: str, user_id: str, verbose: bool) -> None:
    """Send MESSAGE through the full chat pipeline."""
    setup_cli_logging(verbose)

    async def action(services: ServiceContainer):
        return await services.chat.handle({"userId": user_id, "message": message, "mode": mode})

    outcome = _run(action, "Thinking...")
    payload = outcome.payload

    if not outcome.ok:
        console.print(Panel(
            str(payload.get("message")),
            title=f"{outcome.kind.value} ({outcome.status_code})",
            border_style="red"
        ))
        sys.exit(1)

    footer = "quick response" if payload.get("isQuickResponse") else (
        f"{payload.get('model')} | {payload.get('tokensUsed')} tokens | "
        f"cost {payload.get('creditCost')} | credits left {payload.get('credits')}"
    )
    console.print(Panel(payload["response"], title="Diksuchi-AI", subtitle=footer, border_style="cyan"))


@cli.command()
@click.option("--name", "-n", required=True, help="Project name")
@click.option("--description", "-d", default="", help="Project description")
@click.option("--stack", "-s", default="MERN", help="Predefined tech stack")
@click.option("--feature", "-f", "features", multiple=True, help="Feature (repeatable)")
@click.option("--skill-level", default="beginner", help="Learner skill level")
@click.option("--output", "-o", default=None, help="Write JSON to this file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def guide(name: str, description: str, stack: str, features: tuple, skill_level: str,
          output: Optional[str], verbose: bool) -> None:
    """Generate a project guide."""
    setup_cli_logging(verbose)
    spec = _project_spec(name, description, stack, features, skill_level)

    async def action(services: ServiceContainer):
        return await services.generator.generate_project_guide(spec)

    document = _run(action, "Generating project guide...")
    console.print(
        f"[green]✓ Guide documents {len(document.file_documentation)} files "
        f"({format_duration(document.metadata.get('duration', 0.0))})[/green]"
    )
    _emit_json(document.to_wire(), output)


@cli.command()
@click.option("--name", "-n", required=True, help="Project name")
@click.option("--description", "-d", default="", help="Project description")
@click.option("--stack", "-s", default="MERN", help="Predefined tech stack")
@click.option("--feature", "-f", "features", multiple=True, help="Feature (repeatable)")
@click.option("--skill-level", default="beginner", help="Learner skill level")
@click.option("--output", "-o", default=None, help="Write JSON to this file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def roadmap(name: str, description: str, stack: str, features: tuple, skill_level: str,
            output: Optional[str], verbose: bool) -> None:
    """Generate a task roadmap."""
    setup_cli_logging(verbose)
    spec = _project_spec(name, description, stack, features, skill_level)

    async def action(services: ServiceContainer):
        return await services.generator.generate_task_roadmap(spec)

    result = _run(action, "Generating task roadmap...")

    table = Table(title=f"Roadmap: {name}", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Milestone")
    table.add_column("Task", style="green")
    table.add_column("Type")
    table.add_column("Status")
    for milestone in result.milestones:
        for task in milestone.tasks:
            table.add_row(str(task.task_id), milestone.name, task.title, task.type.value, task.status.value)
    console.print(table)

    if output:
        _emit_json(result.to_wire(), output)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Port")
def serve(host: str, port: int) -> None:
    """Start the HTTP API."""
    import uvicorn

    from projecthub_ai.web.app import create_app

    setup_cli_logging(False)
    console.print(f"🚀 Starting ProjectHub AI API on http://{host}:{port}")
    console.print("\nPress Ctrl+C to stop the server")

    try:
        uvicorn.run(create_app(), host=host, port=port, reload=False, access_log=False)
    except KeyboardInterrupt:
        console.print("\n[green]✓ Server stopped[/green]")


@cli.command(name="test-connection")
def test_connection() -> None:
    """Check that the configured provider answers."""
    setup_cli_logging(False)

    async def action(services: ServiceContainer):
        return await services.service.test_connection()

    if _run(action, f"Contacting {settings.llm_provider}..."):
        console.print(f"[green]✓ {settings.llm_provider} is reachable ({settings.primary_model})[/green]")
    else:
        console.print(f"[red]✗ Could not reach {settings.llm_provider}[/red]")
        sys.exit(1)


@cli.command()
def version():
    """Show version information."""
    console.print(f"ProjectHub AI version {__version__}")


@cli.command()
def info():
    """Show system information."""
    table = Table(title="ProjectHub AI System Information", show_header=True)
    table.add_column("Component", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Provider", settings.llm_provider)
    table.add_row("Primary Model", settings.primary_model)
    table.add_row("Fallback Model", settings.fallback_model)
    table.add_row("Max Concurrent", str(settings.max_concurrent_requests))
    table.add_row("Rate Limit", f"{settings.requests_per_minute}/min, {settings.tokens_per_minute} tokens/min")
    table.add_row("Storage", settings.storage_backend)
    table.add_row("Daily Credits", str(settings.daily_credit_limit))

    console.print(table)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
