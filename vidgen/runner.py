"""CLI runner for vidgen.

Usage:
    vidgen providers add --name ark --api-key KEY --default
    vidgen providers list
    vidgen generate "A cat running on the beach" --output cat.mp4
    vidgen status TASK_ID
    vidgen wait TASK_ID
    vidgen download URL output.mp4
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Callable

import click
from rich.console import Console
from rich.table import Table

from vidgen.config import build_provider_config, get_registry_path, load_config
from vidgen.downloader import download_video
from vidgen.errors import ConfigError, PollingExhausted, VidgenError
from vidgen.models import GenerationOptions, TaskSnapshot
from vidgen.poller import wait_for_task
from vidgen.providers import PROVIDER_TYPES
from vidgen.providers.base import VideoProvider
from vidgen.registry import JsonFileStore, ProviderRegistry

console = Console()


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet down httpx unless debugging
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _run(action: Callable[[], Any]) -> Any:
    """Run a command body, turning errors into messages and exit codes."""
    try:
        return action()
    except ConfigError as exc:
        console.print(f"[red]Configuration error: {exc}[/red]")
        sys.exit(1)
    except PollingExhausted as exc:
        console.print(f"[red]Gave up after {exc.attempts} failed status queries: {exc}[/red]")
        sys.exit(1)
    except (VidgenError, FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)


def _registry(ctx: click.Context) -> ProviderRegistry:
    return ProviderRegistry(JsonFileStore(ctx.obj["registry"]))


def _resolve_provider(ctx: click.Context, provider_id: str | None) -> VideoProvider:
    registry = _registry(ctx)
    return registry.get(provider_id) if provider_id else registry.get_default()


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}...{secret[-4:]}"


def _print_snapshot(snapshot: TaskSnapshot) -> None:
    color = {"succeeded": "green", "failed": "red"}.get(snapshot.status, "yellow")
    console.print(f"Task [cyan]{snapshot.id}[/cyan]: [{color}]{snapshot.status}[/{color}]")
    if snapshot.video_url:
        console.print(f"  Video: {snapshot.video_url}")
    if snapshot.error:
        console.print(f"  [red]Error: {snapshot.error}[/red]")
    for key, value in snapshot.metadata.items():
        console.print(f"  [dim]{key}: {value}[/dim]")


async def _wait_and_report(provider: VideoProvider, task_id: str, output: str | None) -> TaskSnapshot:
    with console.status(f"Waiting for task {task_id}...") as status:
        def on_progress(snapshot: TaskSnapshot) -> None:
            status.update(f"Task {task_id}: {snapshot.status}")

        result = await wait_for_task(provider, task_id, on_progress=on_progress)

    _print_snapshot(result)
    if output and result.is_success and result.video_url:
        path = await download_video(result.video_url, output)
        console.print(f"[green]Saved to {path}[/green]")
    return result


def _collect_overrides(**options: Any) -> dict[str, Any]:
    """Split flat CLI options into a nested, None-free config dict."""
    video_keys = ("resolution", "duration", "ratio", "camera_fixed", "watermark")
    advanced_keys = ("poll_interval", "max_error_retries", "max_wait")
    video = {k: options.pop(k) for k in video_keys if options.get(k) is not None}
    advanced = {k: options.pop(k) for k in advanced_keys if options.get(k) is not None}
    result = {k: v for k, v in options.items() if v is not None and k not in video_keys + advanced_keys}
    if video:
        result["video"] = video
    if advanced:
        result["advanced"] = advanced
    return result


def _config_options(func: Callable) -> Callable:
    """Shared provider configuration options for add/update."""
    options = [
        click.option("--api-key", default=None, help="Vendor API key (falls back to ARK_API_KEY)"),
        click.option("--endpoint", default=None, help="Vendor API base URL"),
        click.option("--model", default=None, help="Generation model id"),
        click.option("--relay-url", default=None, help="Send requests through this relay"),
        click.option("--resolution", type=click.Choice(["720p", "1080p", "2k"]), default=None),
        click.option("--duration", type=int, default=None, help="Video length in seconds"),
        click.option("--ratio", type=click.Choice(["16:9", "9:16", "1:1"]), default=None),
        click.option("--camera-fixed/--no-camera-fixed", default=None),
        click.option("--watermark/--no-watermark", default=None),
        click.option("--poll-interval", type=float, default=None, help="Seconds between status queries"),
        click.option("--max-error-retries", type=int, default=None, help="Consecutive failed queries tolerated"),
        click.option("--max-wait", type=float, default=None, help="Overall polling limit in seconds"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--config", "-c", default=None, help="Path to config.yaml")
@click.option("--registry", "-r", default=None, help="Path to the provider registry JSON file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, registry: str | None, verbose: bool) -> None:
    """Asynchronous video generation client."""
    ctx.ensure_object(dict)
    _setup_logging(verbose)
    loaded = _run(lambda: load_config(config))
    ctx.obj["config"] = loaded
    ctx.obj["registry"] = get_registry_path(loaded, registry)


# ----------------------------------------------------------------------
# Provider management
# ----------------------------------------------------------------------

@cli.group("providers")
def providers() -> None:
    """Manage configured providers."""


@providers.command("list")
@click.pass_context
def cmd_list(ctx: click.Context) -> None:
    """List configured providers."""
    stored = _run(lambda: _registry(ctx).list())
    if not stored:
        console.print("[yellow]No providers configured. Use 'vidgen providers add'.[/yellow]")
        return

    table = Table(title="Providers", show_lines=True)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Model")
    table.add_column("Default", justify="center")
    for entry in stored:
        table.add_row(
            entry.id,
            entry.name,
            entry.type,
            entry.config.model,
            "[green]*[/green]" if entry.is_default else "",
        )
    console.print(table)


@providers.command("add")
@click.option("--type", "provider_type", type=click.Choice(PROVIDER_TYPES), default="volcengine")
@click.option("--name", required=True, help="Display name")
@click.option("--default", "is_default", is_flag=True, help="Make this the default provider")
@_config_options
@click.pass_context
def cmd_add(ctx: click.Context, provider_type: str, name: str, is_default: bool, **options: Any) -> None:
    """Register a provider."""
    def action() -> str:
        config = build_provider_config(ctx.obj["config"], **_collect_overrides(**options))
        return _registry(ctx).add(provider_type, config, name, is_default=is_default)

    provider_id = _run(action)
    console.print(f"[green]Provider {name} added as {provider_id}[/green]")


@providers.command("update")
@click.argument("provider_id")
@click.option("--name", default=None, help="Display name")
@_config_options
@click.pass_context
def cmd_update(ctx: click.Context, provider_id: str, name: str | None, **options: Any) -> None:
    """Change settings of a provider."""
    partial = _collect_overrides(name=name, **options)
    if not partial:
        console.print("[yellow]Nothing to update.[/yellow]")
        return
    _run(lambda: _registry(ctx).update(provider_id, partial))
    console.print(f"[green]Provider {provider_id} updated[/green]")


@providers.command("show")
@click.argument("provider_id")
@click.pass_context
def cmd_show(ctx: click.Context, provider_id: str) -> None:
    """Show the stored configuration of a provider."""
    info = _run(lambda: _registry(ctx).get_info(provider_id))
    data = info.to_dict()
    data["api_key"] = _mask(data["api_key"])
    console.print_json(json.dumps(data, ensure_ascii=False))


@providers.command("remove")
@click.argument("provider_id")
@click.pass_context
def cmd_remove(ctx: click.Context, provider_id: str) -> None:
    """Delete a provider."""
    _run(lambda: _registry(ctx).remove(provider_id))
    console.print(f"[green]Provider {provider_id} removed[/green]")


@providers.command("set-default")
@click.argument("provider_id")
@click.pass_context
def cmd_set_default(ctx: click.Context, provider_id: str) -> None:
    """Make a provider the default."""
    _run(lambda: _registry(ctx).set_default(provider_id))
    console.print(f"[green]Default provider set to {provider_id}[/green]")


# ----------------------------------------------------------------------
# Tasks
# ----------------------------------------------------------------------

@cli.command("generate")
@click.argument("prompt")
@click.option("--provider", "-p", "provider_id", default=None, help="Provider id (default provider if omitted)")
@click.option("--first-frame", default=None, help="First frame image URL")
@click.option("--last-frame", default=None, help="Last frame image URL")
@click.option("--resolution", type=click.Choice(["720p", "1080p", "2k"]), default=None)
@click.option("--duration", type=int, default=None)
@click.option("--ratio", type=click.Choice(["16:9", "9:16", "1:1"]), default=None)
@click.option("--no-wait", is_flag=True, help="Print the task id and exit")
@click.option("--output", "-o", default=None, help="Download the finished video here")
@click.pass_context
def cmd_generate(
    ctx: click.Context,
    prompt: str,
    provider_id: str | None,
    first_frame: str | None,
    last_frame: str | None,
    resolution: str | None,
    duration: int | None,
    ratio: str | None,
    no_wait: bool,
    output: str | None,
) -> None:
    """Create a video generation task and wait for the result."""
    options = GenerationOptions(
        prompt=prompt,
        first_frame_url=first_frame,
        last_frame_url=last_frame,
        resolution=resolution,
        duration=duration,
        ratio=ratio,
    )

    async def generate(provider: VideoProvider) -> TaskSnapshot | None:
        handle = await provider.create_task(options)
        console.print(f"Task created: [cyan]{handle.id}[/cyan]")
        if no_wait:
            return None
        return await _wait_and_report(provider, handle.id, output)

    result = _run(lambda: asyncio.run(generate(_resolve_provider(ctx, provider_id))))
    if result is not None and not result.is_success:
        sys.exit(1)


@cli.command("status")
@click.argument("task_id")
@click.option("--provider", "-p", "provider_id", default=None, help="Provider id (default provider if omitted)")
@click.pass_context
def cmd_status(ctx: click.Context, task_id: str, provider_id: str | None) -> None:
    """Show the current status of a task."""
    snapshot = _run(lambda: asyncio.run(_resolve_provider(ctx, provider_id).get_task_status(task_id)))
    _print_snapshot(snapshot)


@cli.command("wait")
@click.argument("task_id")
@click.option("--provider", "-p", "provider_id", default=None, help="Provider id (default provider if omitted)")
@click.option("--output", "-o", default=None, help="Download the finished video here")
@click.pass_context
def cmd_wait(ctx: click.Context, task_id: str, provider_id: str | None, output: str | None) -> None:
    """Poll an existing task until it finishes."""
    result = _run(lambda: asyncio.run(_wait_and_report(_resolve_provider(ctx, provider_id), task_id, output)))
    if not result.is_success:
        sys.exit(1)


@cli.command("download")
@click.argument("url")
@click.argument("output")
def cmd_download(url: str, output: str) -> None:
    """Download a finished video."""
    path = _run(lambda: asyncio.run(download_video(url, output)))
    console.print(f"[green]Saved to {path}[/green]")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
