"""
Command line access to a bucket.

Run via: python -m bucketfs.cli.main (or the ``bucketfs`` script)

Storage backend, bucket and retry settings come from BUCKETFS_* environment
variables or the YAML config file; ``--bucket`` overrides the bucket.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from bucketfs.config import settings
from bucketfs.logging_config import configure_logging, get_logger
from bucketfs.storage import (
    AccessLevel,
    ObjectNotFoundError,
    ObjectStoreError,
    Query,
    Store,
    open_store,
)
from bucketfs.storage.query import name_matches

logger = get_logger("bucketfs.cli")

app = typer.Typer(
    no_args_is_help=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
    pretty_exceptions_show_locals=False,
)


def raise_error(txt: str):
    typer.echo(typer.style("Error: " + str(txt), fg="red"), err=True)
    raise typer.Exit(1)


def _store(ctx: typer.Context) -> Store:
    if ctx.obj is None:
        cfg = settings.storage
        bucket = ctx.meta.get("bucket")
        if bucket:
            cfg = cfg.model_copy(update={"bucket": bucket})
        try:
            ctx.obj = open_store(cfg)
        except ObjectStoreError as e:
            raise_error(e)
    return ctx.obj


@app.callback()
def main_callback(
    ctx: typer.Context,
    bucket: Annotated[
        Optional[str], typer.Option("--bucket", "-b", help="Bucket name (overrides config).")
    ] = None,
):
    """Buffered access to an object-storage bucket."""
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    ctx.meta["bucket"] = bucket


@app.command(name="ls")
def list_objects(
    ctx: typer.Context,
    prefix: Annotated[str, typer.Argument(help="Only list names starting with this.")] = "",
    pattern: Annotated[
        Optional[str], typer.Option("--pattern", "-p", help="Glob on full object names.")
    ] = None,
):
    """List objects."""
    query = Query(prefix=prefix)
    if pattern:
        query = query.where(name_matches(pattern))
    try:
        records = _store(ctx).list(query)
    except ObjectStoreError as e:
        raise_error(e)
    for meta in records:
        typer.echo(f"{meta.name}\t{meta.size}\t{meta.updated.isoformat()}")


@app.command(name="stat")
def stat_object(ctx: typer.Context, name: str):
    """Show an object's name, size, mode and update time."""
    try:
        st = _store(ctx).get(name).stat()
    except ObjectStoreError as e:
        raise_error(e)
    typer.echo(f"{st.name}\t{st.size}\t{st.mode:o}\t{st.updated.isoformat()}")


@app.command(name="cat")
def cat_object(ctx: typer.Context, name: str):
    """Write an object's content to stdout."""
    try:
        handle = _store(ctx).get(name)
        with handle.open(AccessLevel.READ_ONLY):
            data = handle.read()
        handle.release()
    except ObjectStoreError as e:
        raise_error(e)
    typer.echo(data, nl=False)


@app.command(name="put")
def put_object(
    ctx: typer.Context,
    name: str,
    file: Annotated[
        Optional[Path], typer.Option("--file", "-f", help="Read content from this path.")
    ] = None,
):
    """Upload stdin or a file as an object, replacing any existing content."""
    if file is not None:
        data = file.read_bytes()
    else:
        data = typer.get_binary_stream("stdin").read()
    store = _store(ctx)
    try:
        try:
            handle = store.get(name)
        except ObjectNotFoundError:
            handle = store.new_object(name)
        with handle.open(AccessLevel.READ_WRITE):
            handle.truncate(0)
            handle.write(data)
    except ObjectStoreError as e:
        raise_error(e)
    logger.info("Uploaded", name=name, size=len(data))


@app.command(name="rm")
def remove_object(ctx: typer.Context, name: str):
    """Delete an object."""
    try:
        _store(ctx).delete(name)
    except ObjectStoreError as e:
        raise_error(e)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
