"""CLI commands for ringfile."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import click

from ringfile import logging as console
from ringfile.config import Config
from ringfile.errors import CorruptHeader, MissingFile, RingFileError
from ringfile.ringbuffer import RingBuffer, read_geometry


@contextmanager
def require_buffer(config: Config) -> Generator[RingBuffer, None, None]:
    """Context manager for commands operating on an existing buffer file.

    Reopens the configured file trusting its own header, and turns engine
    errors raised inside the block into a message and exit code 1.

    Yields:
        RingBuffer: The open buffer, closed on exit

    Raises:
        SystemExit: If the file is missing, corrupt, or an operation fails
    """
    try:
        with RingBuffer.open(config.buffer_path, sync=config.buffer.sync_writes) as buffer:
            yield buffer
    except MissingFile:
        console.buffer_missing(str(config.buffer_path))
        raise SystemExit(1)
    except RingFileError as e:
        console.operation_failed(str(e))
        raise SystemExit(1)


def _warn_if_incompatible(path: Path, capacity: int, record_length: int) -> None:
    """Warn before open-or-create discards an existing file."""
    try:
        stored = read_geometry(path)
    except CorruptHeader as e:
        console.buffer_reinitialized(str(path), str(e))
        return
    if stored != (capacity, record_length):
        console.buffer_reinitialized(
            str(path),
            f"stored {stored[0]} x {stored[1]}B, requested {capacity} x {record_length}B",
        )


def _format_record(record: bytes, as_text: bool) -> str:
    if as_text:
        return record.rstrip(b"\0").decode("utf-8", errors="replace")
    return record.hex()


@click.group()
@click.version_option(package_name="ringfile")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/ringfile/config.toml)",
)
@click.pass_context
def main(ctx, config_path: Path | None) -> None:
    """Fixed-record persistent ring buffer."""
    try:
        config = Config.load(config_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    console.configure(config)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path or config.config_path


@main.command("config")
@click.pass_context
def config_cmd(ctx) -> None:
    """Write the default config file if it doesn't exist."""
    path = ctx.obj["config_path"]
    if path.exists():
        console.config_exists(str(path))
        return
    ctx.obj["config"].save(path)
    console.config_created(str(path))


@main.command()
@click.option("--capacity", "-c", type=click.IntRange(min=0), help="Number of record slots")
@click.option("--record-length", "-r", type=click.IntRange(min=1), help="Bytes per record")
@click.option("--force", is_flag=True, help="Recreate the file even if it matches")
@click.pass_context
def init(ctx, capacity: int | None, record_length: int | None, force: bool) -> None:
    """Open the buffer file, creating it if missing or incompatible.

    An existing file whose geometry differs from the requested one is
    recreated empty.
    """
    config = ctx.obj["config"]
    capacity = config.buffer.capacity if capacity is None else capacity
    record_length = config.buffer.record_length if record_length is None else record_length
    path = config.buffer_path
    path.parent.mkdir(parents=True, exist_ok=True)

    opener = RingBuffer.create if force else RingBuffer.open
    try:
        if not force and path.exists():
            _warn_if_incompatible(path, capacity, record_length)
        with opener(path, capacity, record_length, sync=config.buffer.sync_writes) as buffer:
            console.buffer_ready(buffer)
    except RingFileError as e:
        console.operation_failed(str(e))
        raise SystemExit(1)


@main.command()
@click.pass_context
def status(ctx) -> None:
    """Show buffer geometry and fill level."""
    with require_buffer(ctx.obj["config"]) as buffer:
        console.buffer_status(buffer)


@main.command()
@click.argument("data")
@click.option("--hex", "as_hex", is_flag=True, help="DATA is hex-encoded bytes")
@click.pass_context
def push(ctx, data: str, as_hex: bool) -> None:
    """Push one record.

    Text is UTF-8 encoded and padded with NUL bytes to the record length.
    Hex input must be exactly one record long.
    """
    if as_hex:
        try:
            record = bytes.fromhex(data)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="DATA") from e
    else:
        record = data.encode("utf-8")

    with require_buffer(ctx.obj["config"]) as buffer:
        if not as_hex:
            record = record.ljust(buffer.record_length, b"\0")
        buffer.push(record)
        console.record_pushed(buffer)


@main.command()
@click.option("--text", "as_text", is_flag=True, help="Print as text instead of hex")
@click.pass_context
def pop(ctx, as_text: bool) -> None:
    """Remove and print the newest record."""
    with require_buffer(ctx.obj["config"]) as buffer:
        slot = buffer.last
        record = buffer.pop()
        if record is None:
            console.buffer_empty()
            return
        click.echo(_format_record(record, as_text))
        console.record_popped(slot, buffer)


@main.command()
@click.option("--num", "-n", type=click.IntRange(min=0), default=1, help="Records to show")
@click.option("--text", "as_text", is_flag=True, help="Print as text instead of hex")
@click.pass_context
def peek(ctx, num: int, as_text: bool) -> None:
    """Print the newest records without removing them, newest first."""
    with require_buffer(ctx.obj["config"]) as buffer:
        records = buffer.peek(num)
        if not records:
            console.buffer_empty()
            return
        for record in records:
            click.echo(_format_record(record, as_text))


@main.command()
@click.option("--num", "-n", type=click.IntRange(min=0), default=1, help="Records to delete")
@click.pass_context
def delete(ctx, num: int) -> None:
    """Drop the newest records."""
    with require_buffer(ctx.obj["config"]) as buffer:
        before = buffer.count
        buffer.delete(num)
        console.records_deleted(before - buffer.count, buffer.count)


@main.command()
@click.pass_context
def clear(ctx) -> None:
    """Drop every record."""
    with require_buffer(ctx.obj["config"]) as buffer:
        removed = buffer.count
        buffer.clear()
        console.records_deleted(removed, 0)


@main.command()
@click.argument("capacity", type=click.IntRange(min=0))
@click.pass_context
def resize(ctx, capacity: int) -> None:
    """Change the number of slots, keeping the newest records.

    The new capacity is also saved to the config file.
    """
    config = ctx.obj["config"]
    with require_buffer(config) as buffer:
        old_capacity = buffer.capacity
        before = buffer.count
        buffer.resize(capacity)
        console.buffer_resized(old_capacity, capacity, before - buffer.count)

    config.buffer.capacity = capacity
    config.save(ctx.obj["config_path"])
