"""
CLI interface for stepchain.

Provides commands to inspect and run chain definition files (YAML or JSON).
"""

import json
import sys
from pathlib import Path
from typing import Any, Optional

import click

from stepchain import __version__


def _parse_inputs(pairs: tuple[str, ...], input_json: Optional[Path]) -> dict[str, Any]:
    """Merge --input-json and KEY=VALUE pairs into the run input (pairs win)."""
    data: dict[str, Any] = {}
    if input_json is not None:
        try:
            loaded = json.loads(input_json.read_text())
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--input-json")
        if not isinstance(loaded, dict):
            raise click.BadParameter("input JSON must be an object", param_hint="--input-json")
        data.update(loaded)
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--input")
        key, value = pair.split("=", 1)
        data[key] = value
    return data


def _load(definition_path: Path):
    from stepchain.config import load_chain_definition
    from stepchain.errors import ConfigError
    from stepchain.utils import print_error

    try:
        return load_chain_definition(definition_path)
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="stepchain")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (defaults to the definition's logging.level)",
)
@click.pass_context
def main(ctx, log_level):
    """
    stepchain - Run prompt chains with dependency-ordered parallel steps.
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@main.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the batches as JSON")
def plan(definition: Path, as_json: bool):
    """Show the execution batches for a chain DEFINITION without running it."""
    from rich.table import Table

    from stepchain.errors import StepchainError
    from stepchain.executors import ExecutorRegistry
    from stepchain.runner import Chain
    from stepchain.utils import console, print_error

    chain_def = _load(definition)
    chain = Chain(chain_def.to_chain_config(ExecutorRegistry()))

    try:
        batches = chain.plan()
    except StepchainError as e:
        print_error(str(e))
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(
            [[step.to_dict() for step in batch] for batch in batches], indent=2
        ))
        return

    table = Table(title=f"{chain_def.name}: {len(batches)} batches")
    table.add_column("Batch", justify="right")
    table.add_column("Step")
    table.add_column("Output")
    table.add_column("After")
    for index, batch in enumerate(batches, start=1):
        for step in batch:
            table.add_row(
                str(index),
                step.step_id,
                step.output_key + (" (structured)" if step.is_structured else ""),
                ", ".join(step.depends_on),
            )
    console.print(table)


@main.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--input", "inputs", multiple=True, metavar="KEY=VALUE", help="Input entry (repeatable)")
@click.option(
    "--input-json",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with the run input object",
)
@click.option("--dry-run", is_flag=True, help="Use the offline noop executor for every step")
@click.option("--stream/--no-stream", default=None, help="Stream free-text steps to stdout (defaults to the definition)")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write logs to this file (defaults to the definition's logging.file)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
@click.pass_context
def run(ctx, definition: Path, inputs, input_json, dry_run: bool, stream, as_json: bool, log_file):
    """Run a chain DEFINITION."""
    from stepchain.errors import StepchainError
    from stepchain.executors import ExecutorRegistry, NoOpExecutor
    from stepchain.runner import Chain
    from stepchain.utils import print_banner, print_error, print_info, print_success, setup_logging

    chain_def = _load(definition)
    setup_logging(
        log_level=ctx.obj.get("log_level") or chain_def.get_log_level(),
        log_format=chain_def.get_log_format(),
        log_file=log_file or chain_def.get_log_file(),
        console_output=chain_def.should_log_to_console(),
    )
    run_input = _parse_inputs(inputs, input_json)

    registry = ExecutorRegistry.create_default()
    try:
        for name in chain_def.executor_names():
            if dry_run:
                registry.register(name, NoOpExecutor())
            else:
                registry.ensure(name)
    except ValueError as e:
        print_error(str(e))
        raise SystemExit(1)

    def echo_chunk(chunk: str, step_id: str) -> None:
        sys.stdout.write(chunk)
        sys.stdout.flush()

    sink = None if as_json else echo_chunk
    config = chain_def.to_chain_config(registry, on_chunk=sink, streaming=stream)
    if dry_run and config.default_executor is None:
        config.default_executor = "noop"

    if dry_run and not as_json:
        print_banner("DRY RUN (noop executor)")

    try:
        result = Chain(config).run_sync(run_input)
    except StepchainError as e:
        print_error(str(e))
        raise SystemExit(1)

    if config.streaming and sink is not None:
        sys.stdout.write("\n")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
        return

    output = result.output
    if not isinstance(output, str):
        output = json.dumps(output, indent=2, ensure_ascii=False, default=str)
    click.echo(output)
    print_info(f"Cost: {result.cost.total_cost:.4f} ({result.cost.total_units:,} units)")
    print_success(f"{chain_def.name} completed in {result.duration}")


if __name__ == "__main__":
    main()
