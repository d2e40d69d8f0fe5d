from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from vxilink.config import (
    CONFIG_PATH,
    VALID_BACKENDS,
    ConfigError,
    LinkConfig,
    list_link_configs,
    load_link_config,
)
from vxilink.link import Instrument
from vxilink.types.errors import VxiError
from vxilink.util import (
    DEFAULT_READ_TIMEOUT_MS,
    format_error_response,
    shutdown_client_log,
    start_client_log,
)


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def link_options(f):
    """Options shared by every command that talks to an instrument."""
    options = [
        click.option(
            "--address", "-a", default=None, help="Instrument host, IP or VISA resource"
        ),
        click.option(
            "--instrument",
            "-i",
            default=None,
            help=f"Named instrument from {CONFIG_PATH} instead of --address",
        ),
        click.option(
            "--config-path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Alternative instrument configuration file",
        ),
        click.option(
            "--device", "-d", default=None, help="Device name on the instrument (inst0)"
        ),
        click.option(
            "--backend",
            "-b",
            type=click.Choice(VALID_BACKENDS),
            default=None,
            help="Transport backend (default: native)",
        ),
        click.option(
            "--timeout",
            "-t",
            type=int,
            default=None,
            help=f"Read timeout in ms (default: {DEFAULT_READ_TIMEOUT_MS})",
        ),
        click.option(
            "--log-level",
            "-ll",
            default="WARNING",
            help="Logging level for stderr (TRACE, DEBUG, INFO, WARNING, ERROR)",
        ),
        click.option(
            "--log-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Also append the log to this file",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def resolve_config(
    address: Optional[str],
    instrument: Optional[str],
    config_path: Optional[Path],
    device: Optional[str],
    backend: Optional[str],
    timeout: Optional[int],
) -> LinkConfig:
    """Build the link config from a named instrument and/or command line options."""
    if instrument is None and address is None:
        raise click.UsageError("Must give either --address or --instrument")
    try:
        if instrument is not None:
            base = load_link_config(instrument, config_path).to_dict()
        else:
            base = {}
        overrides = {
            "address": address,
            "device_name": device,
            "backend": backend,
            "read_timeout_ms": timeout,
        }
        base.update({k: v for k, v in overrides.items() if v is not None})
        return LinkConfig.from_dict(base)
    except ConfigError as e:
        raise click.UsageError(str(e))


@contextmanager
def open_instrument(config: LinkConfig, log_level: str, log_file: Optional[Path] = None):
    """Open the instrument, turning library errors into click errors."""
    start_client_log(
        log_to_file=log_file is not None,
        log_to_stdout=True,
        log_path=log_file,
        clear_prev=False,
        log_level=log_level,
    )
    try:
        with Instrument(config) as inst:
            yield inst
    except VxiError as e:
        logger.debug(format_error_response())
        raise click.ClickException(str(e))
    finally:
        shutdown_client_log()


@click.group()
@tree_option
def cli():
    """vxilink - VXI-11 instrument control from the command line.

    Talk to LAN instruments (scopes, meters, generators) over VXI-11:

    - send commands and queries
    - read numeric values
    - fetch definite-length data blocks (waveforms, screenshots)
    """
    pass


@cli.command()
@link_options
@click.argument("cmd")
@click.option(
    "--capacity", "-c", type=int, default=1024, help="Maximum reply size in bytes"
)
def query(cmd, capacity, log_level, log_file, **kwargs):
    """Send CMD and print the reply."""
    config = resolve_config(**kwargs)
    with open_instrument(config, log_level, log_file) as inst:
        click.echo(inst.query(cmd, capacity))


@cli.command()
@link_options
@click.argument("cmd")
def write(cmd, log_level, log_file, **kwargs):
    """Send CMD without reading a reply."""
    config = resolve_config(**kwargs)
    with open_instrument(config, log_level, log_file) as inst:
        inst.write(cmd)
    click.echo(f"Sent {cmd!r} to {config.address}")


@cli.command()
@link_options
@click.argument("cmd")
@click.option(
    "--double/--long", "-f/-n", default=False, help="Parse reply as float or integer"
)
@click.option(
    "--lenient/--strict",
    default=None,
    help="Print 0 instead of failing on a bad reply (default: from config)",
)
def value(cmd, double, lenient, log_level, log_file, **kwargs):
    """Query CMD and print the reply as a number."""
    config = resolve_config(**kwargs)
    if lenient is not None:
        config.lenient_values = lenient
    with open_instrument(config, log_level, log_file) as inst:
        result = inst.query_double(cmd) if double else inst.query_long(cmd)
    click.echo(result)


@cli.command("fetch-block")
@link_options
@click.argument("cmd")
@click.option(
    "--out",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="File to write the block payload to",
)
@click.option(
    "--capacity",
    "-c",
    type=int,
    default=10_000_000,
    help="Maximum payload size in bytes",
)
def fetch_block(cmd, out, capacity, log_level, log_file, **kwargs):
    """Query CMD, decode the definite-length block reply and save it."""
    config = resolve_config(**kwargs)
    with open_instrument(config, log_level, log_file) as inst:
        payload = inst.query_block(cmd, capacity)
    out.write_bytes(payload)
    click.echo(f"Wrote {len(payload)} bytes to {out}")


@cli.command()
@click.option(
    "--config-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Alternative instrument configuration file",
)
def configs(config_path):
    """List configured instruments."""
    names = list_link_configs(config_path)
    click.echo("\nConfigured instruments:")
    click.echo("-----------------------")
    if not names:
        click.echo("No instruments configured")
        click.echo("")
        return
    for name in names:
        try:
            cfg = load_link_config(name, config_path)
        except ConfigError as e:
            click.echo(f"  - {name}: invalid ({e})")
            continue
        click.echo(f"  - {name}: {cfg.address} ({cfg.device_name}, {cfg.backend})")
    click.echo("")
