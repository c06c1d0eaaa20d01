"""
Command line interface for capflow.

Lists the capability catalog and submits single or batched capability calls
against an execution context loaded from JSON.
"""

import asyncio
import json
import logging
from pathlib import Path
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .capabilities.registry import create_default_registry
from .client import CapabilityClient, as_call
from .config import DEFAULT_RETRY_ATTEMPTS, DEFAULT_TIMEOUT, ClientConfig
from .context import load_context
from .models import CapabilityResult, ExecutionContext

console = Console()

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(verbose: int) -> None:
    """Configure root logging from the ``-v`` count."""
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def parse_parameters(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """
    Parse ``key=value`` pairs.

    Values are read as JSON when they parse (numbers, booleans, null, lists,
    objects) and kept as plain strings otherwise.
    """
    parameters = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--param")
        try:
            parameters[key] = json.loads(raw)
        except json.JSONDecodeError:
            parameters[key] = raw
    return parameters


def read_context(context_path: Optional[Path]) -> ExecutionContext:
    if context_path is None:
        return ExecutionContext()
    try:
        return load_context(context_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: Could not load context from {context_path}: {e}[/red]")
        sys.exit(1)


def read_calls(calls_path: Path) -> List[Dict[str, Any]]:
    """Load a batch file: a JSON list of calls, or an object with a ``calls`` list."""
    with open(calls_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("calls")
    if not isinstance(data, list):
        raise ValueError("batch file must hold a list of calls")
    return data


def save_results(save_path: Path, results: List[CapabilityResult], verbose: int):
    """Save results to a JSON file."""
    save_path.parent.mkdir(parents=True, exist_ok=True)

    with open(save_path, "w", encoding="utf-8") as f:
        json.dump(
            [result.model_dump(mode="json") for result in results],
            f,
            indent=2,
            ensure_ascii=False,
        )

    if verbose > 0:
        console.print(f"[green]✓ Results saved to: {save_path}[/green]")


def display_result(capability_id: str, result: CapabilityResult) -> None:
    """Print one result as a panel."""
    if result.success:
        body = escape(json.dumps(result.data, indent=2, ensure_ascii=False, default=str))
        border_style = "green"
    else:
        kind = result.error_type.value if result.error_type else "error"
        body = f"[bold]{kind}:[/bold] {escape(result.error or '')}"
        border_style = "red"

    if result.metadata is not None:
        body += f"\n\n[dim]Elapsed: {result.metadata.elapsed_time:.3f}s[/dim]"

    console.print(Panel(body, title=capability_id, border_style=border_style))


def create_results_table(
    capability_ids: List[str], results: List[CapabilityResult], title: str = "Batch Results"
) -> Table:
    """Create a Rich table summarizing batch results."""
    table = Table(title=title, show_header=True, header_style="bold magenta")

    table.add_column("#", justify="right")
    table.add_column("Capability", style="cyan")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Detail")

    for index, (capability_id, result) in enumerate(zip(capability_ids, results)):
        if result.success:
            status = "[green]✓ ok[/green]"
            detail = result.data.get("message", "") if isinstance(result.data, dict) else ""
        else:
            status = f"[red]✗ {result.error_type.value if result.error_type else 'error'}[/red]"
            detail = result.error or ""

        elapsed = f"{result.metadata.elapsed_time:.3f}s" if result.metadata else "-"
        table.add_row(str(index), capability_id, status, elapsed, escape(str(detail)))

    return table


def build_client(verbose: int, **config_options) -> CapabilityClient:
    try:
        config = ClientConfig(**config_options)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    return CapabilityClient.from_registry(create_default_registry(), config, verbose=verbose)


@click.group()
@click.version_option(__version__, prog_name="capflow")
def cli():
    """Orchestrate capability calls against a workspace context."""


@cli.command("capabilities")
@click.option("--category", type=str, default=None, help="Only list this category")
@click.option("--markdown", is_flag=True, help="Print markdown documentation instead of a table")
def list_capabilities(category: Optional[str], markdown: bool):
    """List the capability catalog."""
    registry = create_default_registry()

    if markdown:
        click.echo(registry.render_documentation())
        return

    capabilities = registry.get_by_category(category) if category else registry.capabilities()
    if not capabilities:
        console.print(f"[yellow]No capabilities in category: {category}[/yellow]")
        sys.exit(1)

    table = Table(title="Capabilities", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Required")
    table.add_column("Returns")
    table.add_column("Description")

    for capability in capabilities:
        table.add_row(
            capability.id,
            capability.category,
            ", ".join(capability.parameters.required) or "-",
            capability.returns.type,
            capability.description,
        )

    console.print(table)


@cli.command("call")
@click.argument("capability_id")
@click.option(
    "-p",
    "--param",
    "params",
    multiple=True,
    help="Parameter as key=value (value parsed as JSON when possible)",
)
@click.option(
    "--context",
    "context_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Execution context JSON file",
)
@click.option("--auto-resolve", is_flag=True, help="Build a plan that fills missing parameters")
@click.option("--retry", is_flag=True, help="Retry handler failures and timeouts with backoff")
@click.option(
    "--retry-attempts",
    type=int,
    default=DEFAULT_RETRY_ATTEMPTS,
    help="Total tries when --retry is set",
)
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Handler timeout in seconds")
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Verbosity level (-v, -vv)",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output JSON file path",
)
def call_capability(
    capability_id: str,
    params: Tuple[str, ...],
    context_path: Optional[Path],
    auto_resolve: bool,
    retry: bool,
    retry_attempts: int,
    timeout: float,
    verbose: int,
    output: Optional[Path],
):
    """Invoke one capability."""
    setup_logging(verbose)

    if auto_resolve and retry:
        console.print("[red]Error: Cannot use both --auto-resolve and --retry[/red]")
        sys.exit(1)

    parameters = parse_parameters(params)
    context = read_context(context_path)
    client = build_client(verbose, timeout=timeout, retry_attempts=retry_attempts)

    errors = client.registry.validate_capabilities([capability_id])
    if errors:
        for error in errors:
            console.print(f"[red]Error: {error}[/red]")
        sys.exit(1)

    if verbose > 0:
        console.print("[cyan]Configuration:[/cyan]")
        console.print(f"  • Capability: {capability_id}")
        console.print(f"  • Parameters: {json.dumps(parameters, default=str)}")
        if context_path:
            console.print(f"  • Context: {context_path}")
        console.print(f"  • {client.config}")

    if auto_resolve:
        submit = client.call_with_auto_resolve(capability_id, parameters, context)
    elif retry:
        submit = client.call_with_retry(capability_id, parameters, context)
    else:
        submit = client.call(capability_id, parameters, context)

    result = asyncio.run(submit)
    display_result(capability_id, result)

    if output:
        save_results(output, [result], verbose)

    if not result.success:
        sys.exit(1)


@cli.command("batch")
@click.argument("calls_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--context",
    "context_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Execution context JSON file",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Verbosity level (-v, -vv)",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output JSON file path",
)
def run_batch(
    calls_path: Path, context_path: Optional[Path], verbose: int, output: Optional[Path]
):
    """Run a JSON list of calls as one plan."""
    setup_logging(verbose)

    try:
        calls = [as_call(spec) for spec in read_calls(calls_path)]
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: Could not read calls from {calls_path}: {e}[/red]")
        sys.exit(1)

    if not calls:
        console.print("[red]No calls provided[/red]")
        sys.exit(1)

    context = read_context(context_path)
    client = build_client(verbose)

    if verbose > 0:
        console.print(f"[cyan]Running {len(calls)} calls from {calls_path}[/cyan]")

    start_time = time.time()
    results = asyncio.run(client.call_batch(calls, context))
    elapsed = time.time() - start_time

    console.print(create_results_table([c.capability_id for c in calls], results))

    failed = sum(1 for result in results if not result.success)
    if verbose > 0:
        console.print(
            f"[cyan]Completed {len(results) - failed}/{len(results)} calls in {elapsed:.2f}s[/cyan]"
        )

    if output:
        save_results(output, results, verbose)

    if failed:
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
