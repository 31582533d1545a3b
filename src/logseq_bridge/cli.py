"""CLI entry point for logseq-bridge."""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click
from rich.console import Console

from logseq_bridge import __version__
from logseq_bridge.config.loader import default_config_path, load_config
from logseq_bridge.logseq.filters import Selectors, build_selectors
from logseq_bridge.logseq.parser import parse_outline
from logseq_bridge.logseq.serializer import serialize_blocks
from logseq_bridge.models.block import Block, blocks_from_json, blocks_to_json
from logseq_bridge.models.config import Configuration
from logseq_bridge.services.exceptions import BridgeError, EmptyInputError, FilterError, GuidanceError
from logseq_bridge.services.logseq_client import LogseqClient
from logseq_bridge.services.page_writer import post_blocks, wipe_page
from logseq_bridge.services.streaming import stream_to_page
from logseq_bridge.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console(stderr=True)


def load_settings(config_path: Optional[Path]) -> Configuration:
    """
    Load configuration for a command.

    Raises:
        click.ClickException: If the config file has invalid permissions or fails validation
    """
    path = config_path or default_config_path()
    try:
        config = load_config(path)
        logger.info("config_loaded", path=str(path), exists=path.exists())
        return config
    except PermissionError as e:
        logger.error("config_permission_error", path=str(path))
        raise click.ClickException(str(e))
    except GuidanceError as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(str(e))


def read_stdin() -> str:
    """Read all of stdin, refusing empty input."""
    text = click.get_text_stream("stdin").read()
    if not text.strip():
        raise click.ClickException(str(EmptyInputError()))
    return text


def read_blocks(text: str, input_format: str) -> list[Block]:
    """Decode stdin as outline text or as JSON blocks."""
    try:
        if input_format == "json":
            return blocks_from_json(json.loads(text))
        return parse_outline(text)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Input is not valid JSON: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))


def filter_options(command: Callable) -> Callable:
    """Add the --less/--only/--agent/--human options to a command."""
    command = click.option(
        "--human", is_flag=True, help="Only content matching any configured filter (same as a bare --only)"
    )(command)
    command = click.option(
        "--agent", is_flag=True, help="Less content matching any configured filter (same as a bare --less)"
    )(command)
    command = click.option(
        "--only", "-o", multiple=True, metavar="PATTERN",
        help="Keep only blocks whose first line matches PATTERN (filter name or regex, repeatable)",
    )(command)
    command = click.option(
        "--less", "-l", multiple=True, metavar="PATTERN",
        help="Drop blocks whose first line matches PATTERN (filter name or regex, repeatable)",
    )(command)
    return command


def selectors_from_options(
    config: Configuration, less: tuple[str, ...], only: tuple[str, ...], agent: bool, human: bool
) -> Selectors:
    """Build selectors; --agent/--human stand for "every configured filter"."""
    less_patterns = list(less) if less else ([] if agent else None)
    only_patterns = list(only) if only else ([] if human else None)
    try:
        return build_selectors(less_patterns, only_patterns, config.filters)
    except FilterError as e:
        raise click.ClickException(str(e))


def run_remote(config: Configuration, action: Callable[[LogseqClient], Awaitable[Any]], status: str) -> Any:
    """
    Run an async action against the Logseq API.

    Args:
        config: Loaded configuration (must provide a token)
        action: Coroutine function receiving a connected client
        status: Spinner text shown while the action runs

    Raises:
        click.ClickException: On missing token or any Logseq API failure
    """

    async def runner() -> Any:
        async with LogseqClient.from_config(config) as client:
            return await action(client)

    try:
        with console.status(f"[bold green]{status}"):
            return asyncio.run(runner())
    except BridgeError as e:
        logger.error("remote_command_failed", error=str(e))
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__, prog_name="logseq-bridge")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.config/logseq-bridge/config.yaml)",
)
@click.option("--debug", is_flag=True, help="Log every Logseq API call (DEBUG level)")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], debug: bool):
    """logseq-bridge: move outlines between text and a Logseq graph."""
    configure_logging("DEBUG" if debug else None)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
def parse():
    """
    Parse Logseq outline text from stdin into JSON blocks.

    Examples:
        logseq-bridge parse < Recipes.md > recipes.json
    """
    blocks = read_blocks(read_stdin(), "md")
    logger.info("parse_completed", roots=len(blocks))
    click.echo(json.dumps(blocks_to_json(blocks), indent=2, ensure_ascii=False))


@cli.command()
@filter_options
@click.pass_context
def stringify(ctx: click.Context, less, only, agent, human):
    """
    Render JSON blocks from stdin as Logseq outline text.

    Examples:
        logseq-bridge parse < notes.md | logseq-bridge stringify --less tasks
    """
    config = load_settings(ctx.obj["config_path"])
    selectors = selectors_from_options(config, less, only, agent, human)
    blocks = selectors.apply(read_blocks(read_stdin(), "json"))
    click.echo(serialize_blocks(blocks))


@cli.command()
@click.argument("name")
@click.option("--format", "-f", "output_format", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.option("--heading", type=click.IntRange(0, 5), default=1, show_default=True, help="Heading level (0 = no heading)")
@filter_options
@click.pass_context
def page(ctx: click.Context, name: str, output_format: str, heading: int, less, only, agent, human):
    """
    Show a page from the Logseq graph.

    Examples:
        logseq-bridge page Atomic
        logseq-bridge page --heading 0 "Recipe Template" | logseq-bridge post Lasagna
    """
    config = load_settings(ctx.obj["config_path"])
    selectors = selectors_from_options(config, less, only, agent, human)

    async def fetch(client: LogseqClient) -> list[Block]:
        remote = await client.get_page_blocks(name)
        return [item.to_block() for item in remote]

    blocks = selectors.apply(run_remote(config, fetch, f"Fetching {name}..."))
    logger.info("page_fetched", page=name, roots=len(blocks))

    if output_format == "json":
        click.echo(json.dumps(blocks_to_json(blocks), indent=2, ensure_ascii=False))
        return

    if heading and blocks:
        click.echo(f"{'#' * heading} {name}")
    body = serialize_blocks(blocks)
    if body:
        click.echo(body)


@cli.command()
@click.argument("name")
@click.pass_context
def stream(ctx: click.Context, name: str):
    """
    Stream outline text from stdin into a page, one block per line.

    Blocks appear in Logseq while the input is still being produced.

    Examples:
        generate-notes | logseq-bridge stream "Meeting Notes"
    """
    config = load_settings(ctx.obj["config_path"])
    lines = (line.rstrip("\r\n") for line in click.get_text_stream("stdin"))

    result = run_remote(config, lambda client: stream_to_page(client, name, lines), f"Streaming into {name}...")
    created = " (new page)" if result.created_page else ""
    click.echo(f"Streamed {result.block_count} blocks to page '{name}'{created}")


@cli.command()
@click.argument("name")
@click.option("--prepend", "-p", is_flag=True, help="Prepend instead of append")
@click.option("--overwrite", is_flag=True, help="Purge existing page content (not properties) first")
@click.option("--input-format", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.pass_context
def post(ctx: click.Context, name: str, prepend: bool, overwrite: bool, input_format: str):
    """
    Insert outline text (or JSON blocks) from stdin into a page in one batch.

    Examples:
        logseq-bridge page --heading 0 "Recipe Template" | logseq-bridge post Lasagna
    """
    config = load_settings(ctx.obj["config_path"])
    blocks = read_blocks(read_stdin(), input_format)

    result = run_remote(
        config,
        lambda client: post_blocks(client, name, blocks, prepend=prepend, overwrite=overwrite),
        f"Posting to {name}...",
    )
    action = "Prepended" if result.prepended else "Appended"
    click.echo(f"{action} {result.block_count} blocks to page '{name}'")


@cli.command()
@click.argument("name")
@click.pass_context
def wipe(ctx: click.Context, name: str):
    """
    Remove all content blocks from a page, keeping its properties.

    Examples:
        logseq-bridge wipe Scratch
    """
    config = load_settings(ctx.obj["config_path"])
    result = run_remote(config, lambda client: wipe_page(client, name), f"Wiping {name}...")

    if result.already_empty:
        click.echo(f"Page '{name}' is already empty")
    elif result.deleted == 0 and result.failed == 0:
        click.echo(f"Page '{name}' already only contains properties")
    else:
        click.echo(f"Removed {result.deleted} blocks from page '{name}' (kept {result.kept})")

    if result.failed:
        raise click.ClickException(f"{result.failed} blocks could not be removed from '{name}'")


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
