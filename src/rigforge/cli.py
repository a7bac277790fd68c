"""CLI entry point using Typer."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from rigforge.config import AppConfig
    from rigforge.lifecycle import RiggingLifecycleManager, RiggingSnapshot

app = typer.Typer(
    name="rigforge",
    help="Rigging and animation lifecycle tracking for generated 3D assets.",
    no_args_is_help=False,
)


def _open(ctx: typer.Context) -> tuple[RiggingLifecycleManager, AppConfig]:
    from rigforge.config import load_config
    from rigforge.lifecycle import RiggingLifecycleManager
    from rigforge.store import FileMetadataStore

    config = load_config((ctx.obj or {}).get("assets_dir"))
    store = FileMetadataStore(
        config.store.assets_dir,
        config.store.metadata_filename,
        lock_timeout=config.store.lock_timeout,
    )
    return RiggingLifecycleManager.from_config(store, config), config


@contextmanager
def _reported_errors() -> Iterator[None]:
    from rigforge.errors import RigforgeError

    try:
        yield
    except RigforgeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _echo_snapshot(snapshot: RiggingSnapshot) -> None:
    rigging = snapshot.rigging
    task = rigging.rigging_task_id if rigging is not None else None
    typer.echo(f"{snapshot.asset_id}: {snapshot.state.value} (task {task or '-'})")


def _parse_clips(values: list[str]) -> dict[str, dict[str, str]]:
    """Parse ``set:name=path`` entries into basic/advanced clip sets."""
    sets: dict[str, dict[str, str]] = {}
    for value in values:
        head, sep, path = value.partition("=")
        clip_set, colon, name = head.partition(":")
        if not sep or not colon or not name or not path:
            msg = f"expected SET:NAME=PATH, got {value!r}"
            raise typer.BadParameter(msg, param_hint="--clip")
        if clip_set not in ("basic", "advanced"):
            msg = f"clip set must be 'basic' or 'advanced', got {clip_set!r}"
            raise typer.BadParameter(msg, param_hint="--clip")
        sets.setdefault(clip_set, {})[name] = path
    return sets


@app.command("list")
def list_assets(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print metadata documents")] = False,
) -> None:
    """List stored assets with their generation and rigging state."""
    manager, _ = _open(ctx)
    with _reported_errors():
        records = manager.store.list_all()
    if as_json:
        typer.echo(json.dumps([r.to_document() for r in records], indent=2))
        return
    for record in records:
        status = "generated" if record.is_generated else "placeholder"
        typer.echo(f"{record.id}\t{status}\t{record.rigging_state.value}")


@app.command()
def show(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
) -> None:
    """Print an asset's metadata document."""
    manager, _ = _open(ctx)
    with _reported_errors():
        record = manager.store.get(asset_id)
    typer.echo(json.dumps(record.to_document(), indent=2))


@app.command()
def stats(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print as JSON")] = False,
) -> None:
    """Show total, generated and rigged asset counts."""
    manager, _ = _open(ctx)
    with _reported_errors():
        counts = manager.stats()
    if as_json:
        typer.echo(counts.model_dump_json())
        return
    typer.echo(f"Total: {counts.total}")
    typer.echo(f"Generated: {counts.generated}")
    typer.echo(f"Rigged: {counts.rigged}")


@app.command()
def create(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    name: Annotated[str | None, typer.Option("--name", help="Display name")] = None,
    asset_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Asset type, e.g. character")
    ] = None,
    subtype: Annotated[str | None, typer.Option("--subtype", help="Asset subtype")] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Description")
    ] = None,
) -> None:
    """Register a placeholder asset."""
    from rigforge.catalog import create_placeholder

    manager, _ = _open(ctx)
    with _reported_errors():
        create_placeholder(
            manager.store,
            asset_id,
            name=name,
            asset_type=asset_type,
            subtype=subtype,
            description=description,
        )
    typer.echo(f"Created placeholder '{asset_id}'")


@app.command()
def generated(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    model_path: Annotated[str, typer.Option("--model-path", "-m", help="Generated model file")],
) -> None:
    """Mark an asset as generated."""
    from rigforge.catalog import mark_generated

    manager, _ = _open(ctx)
    with _reported_errors():
        mark_generated(manager.store, asset_id, model_path=model_path)
    typer.echo(f"Marked '{asset_id}' as generated")


@app.command()
def enqueue(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    task_id: Annotated[
        str | None, typer.Option("--task-id", help="Use this task id instead of a new one")
    ] = None,
) -> None:
    """Queue a rigging job for an asset."""
    manager, _ = _open(ctx)
    with _reported_errors():
        snapshot = manager.enqueue(asset_id, task_id)
    _echo_snapshot(snapshot)


@app.command()
def start(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    task_id: Annotated[str, typer.Argument(help="Rigging task id")],
    timeout: Annotated[
        float | None, typer.Option("--timeout", help="Seconds before the job is swept")
    ] = None,
) -> None:
    """Mark a queued rigging job as running."""
    from datetime import timedelta

    from rigforge.lifecycle import utcnow

    manager, _ = _open(ctx)
    deadline = utcnow() + timedelta(seconds=timeout) if timeout else None
    with _reported_errors():
        snapshot = manager.start(asset_id, task_id, deadline=deadline)
    _echo_snapshot(snapshot)


@app.command()
def succeed(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    task_id: Annotated[str, typer.Argument(help="Rigging task id")],
    rig_type: Annotated[str, typer.Option("--rig-type", help="humanoid-standard, creature or custom")],
    rigged_model: Annotated[str, typer.Option("--rigged-model", help="Rigged model file")],
    tpose_model: Annotated[str, typer.Option("--tpose-model", help="T-pose model file")],
    clips: Annotated[
        list[str] | None,
        typer.Option("--clip", help="Animation clip as SET:NAME=PATH (repeatable)"),
    ] = None,
    height: Annotated[
        float | None, typer.Option("--height", help="Character height in meters")
    ] = None,
    compat: Annotated[
        list[str] | None,
        typer.Option("--compat", help="Compatible animation pack (repeatable)"),
    ] = None,
) -> None:
    """Record a completed rig with its animations."""
    manager, _ = _open(ctx)
    animations = _parse_clips(clips or [])
    with _reported_errors():
        snapshot = manager.succeed(
            asset_id,
            task_id,
            rig_type,
            height,
            animations=animations,
            model_paths={"rigged": rigged_model, "tpose": tpose_model},
            animation_compatibility=compat,
        )
    _echo_snapshot(snapshot)


@app.command()
def fail(
    ctx: typer.Context,
    asset_id: Annotated[str, typer.Argument(help="Asset id")],
    task_id: Annotated[str, typer.Argument(help="Rigging task id")],
    message: Annotated[str, typer.Argument(help="Failure reason")],
) -> None:
    """Record a failed rigging job."""
    manager, _ = _open(ctx)
    with _reported_errors():
        snapshot = manager.fail(asset_id, task_id, message)
    _echo_snapshot(snapshot)


@app.command()
def sweep(ctx: typer.Context) -> None:
    """Fail rigging jobs whose deadline has passed."""
    manager, _ = _open(ctx)
    with _reported_errors():
        expired = manager.sweep_expired()
    if expired:
        typer.echo(f"Timed out: {', '.join(expired)}")
    else:
        typer.echo("No expired rigging jobs")


@app.command()
def serve(
    ctx: typer.Context,
    port: Annotated[
        int | None, typer.Option("--port", "-p", min=1, max=65535, help="HTTP port")
    ] = None,
    ws_port: Annotated[
        int | None, typer.Option("--ws-port", min=1, max=65535, help="WebSocket port")
    ] = None,
) -> None:
    """Serve stats over HTTP and push updates over WebSocket."""
    import asyncio

    from rigforge.stats_server import StatsServer

    manager, config = _open(ctx)
    if port:
        config.server.http_port = port
    if ws_port:
        config.server.ws_port = ws_port
    server = StatsServer(
        manager,
        host=config.server.host,
        http_port=config.server.http_port,
        ws_port=config.server.ws_port,
        sweep_interval=config.rigging.sweep_interval if manager.processing_timeout else None,
    )
    typer.echo(f"Stats at {config.server.stats_url}")
    typer.echo(f"Live updates at {config.server.ws_url}")
    typer.echo("Press Ctrl+C to stop")
    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        typer.echo("\nStopped.")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", "-v", help="Show version")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log transitions")] = False,
    assets_dir: Annotated[
        Path | None,
        typer.Option("--assets-dir", "-a", help="Directory holding {id}/metadata.json"),
    ] = None,
) -> None:
    """rigforge - rigging and animation lifecycle tracking for generated 3D assets."""
    if version:
        from rigforge import __version__

        typer.echo(f"rigforge {__version__}")
        raise typer.Exit()
    if verbose:
        import logging

        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"assets_dir": assets_dir}
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
