"""tunnelctl command line interface."""

import functools
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

import click
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ._version import __version__
from .commands import SubcommandContext
from .config import (
    DEFAULT_CREDENTIALS_DIR,
    DEFAULT_STATE_FILE,
    CleanupOptions,
    CreateOptions,
    DeleteOptions,
    InfoOptions,
    ListOptions,
    RouteOptions,
    RunOptions,
    TransportProtocol,
    TunnelCtlSettings,
    load_file_config,
)
from .exceptions import TunnelCtlError, UsageError
from .logging import setup_logging
from .sorting import (
    DEFAULT_CONNECTOR_SORT_FIELD,
    DEFAULT_TUNNEL_SORT_FIELD,
    ConnectorSortField,
    TunnelSortField,
)
from .store import LocalTunnelRunner, LocalTunnelStore

F = TypeVar("F", bound=Callable[..., Any])

CREDENTIALS_FILE_HELP = "Filepath at which to read/write the tunnel credentials"
OUTPUT_HELP = "Render output using given FORMAT. Valid options are 'json' or 'yaml'"

_DATETIME_ADAPTER = TypeAdapter(datetime)


class RFC3339Timestamp(click.ParamType):
    """Click parameter type for RFC3339 timestamps."""

    name = "TIME"

    def convert(self, value: Any, param: Any, ctx: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        try:
            parsed = _DATETIME_ADAPTER.validate_python(str(value))
        except PydanticValidationError:
            self.fail(f"{value!r} is not a valid RFC3339 timestamp", param, ctx)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


def handle_errors(func: F) -> F:
    """Turn tunnelctl errors into click errors with the right exit code."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            raise click.UsageError(str(e), click.get_current_context()) from e
        except TunnelCtlError as e:
            raise click.ClickException(str(e)) from e

    return wrapper  # type: ignore[return-value]


def _subcommand_context(ctx: click.Context) -> SubcommandContext:
    obj = ctx.ensure_object(dict)
    settings: TunnelCtlSettings = obj["settings"]

    store = obj.get("store")
    if store is None:
        store = LocalTunnelStore(settings.state_file)
        obj["store"] = store
    runner = obj.get("runner")
    if runner is None and isinstance(store, LocalTunnelStore):
        runner = LocalTunnelRunner(store)

    return SubcommandContext(
        settings=settings,
        store=store,
        runner=runner,
        file_config=load_file_config(settings.config_file),
    )


@click.group()
@click.version_option(__version__, prog_name="tunnelctl")
@click.option(
    "--state-file",
    envvar="TUNNEL_STATE_FILE",
    default=DEFAULT_STATE_FILE,
    show_default=True,
    help="Local control-plane state file",
)
@click.option(
    "--credentials-dir",
    "--origincert-dir",
    envvar="TUNNEL_ORIGIN_CERT_DIR",
    default=DEFAULT_CREDENTIALS_DIR,
    show_default=True,
    help="Directory where tunnel credentials files are written",
)
@click.option(
    "--config",
    "config_file",
    envvar="TUNNEL_CONFIG",
    default=None,
    help="Path to a YAML config file",
)
@click.option(
    "--loglevel",
    envvar="TUNNEL_LOGLEVEL",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Application logging level",
)
@click.option("--log-json", is_flag=True, help="Write logs as JSON")
@click.option("--logfile", default=None, help="Also write logs to this file")
@click.pass_context
def cli(
    ctx: click.Context,
    state_file: str,
    credentials_dir: str,
    config_file: str | None,
    loglevel: str,
    log_json: bool,
    logfile: str | None,
) -> None:
    """Manage tunnels, their connectors and their routes."""
    ctx.ensure_object(dict)
    settings = TunnelCtlSettings(
        state_file=state_file,
        credentials_dir=credentials_dir,
        config_file=config_file,
        log_level=loglevel,
        log_json=log_json,
        log_file=logfile,
    )
    setup_logging(level=settings.log_level, json_format=log_json, log_file=logfile)
    ctx.obj["settings"] = settings


@cli.group()
def tunnel() -> None:
    """Create, inspect, run and route named tunnels."""


@tunnel.command()
@click.argument("args", nargs=-1)
@click.option("--output", "-o", default="", help=OUTPUT_HELP)
@click.option(
    "--credentials-file",
    "--cred-file",
    envvar="TUNNEL_CRED_FILE",
    default=None,
    help=CREDENTIALS_FILE_HELP,
)
@click.pass_context
@handle_errors
def create(
    ctx: click.Context, args: tuple[str, ...], output: str, credentials_file: str | None
) -> None:
    """Create a new tunnel with given NAME.

    Registers the tunnel with the control plane and writes the credentials
    file used to run it.
    """
    options = CreateOptions(output=output, credentials_file=credentials_file)
    _subcommand_context(ctx).create(args, options)


@tunnel.command(name="list")
@click.option("--output", "-o", default="", help=OUTPUT_HELP)
@click.option("--show-deleted", "-d", is_flag=True, help="Include deleted tunnels in the list")
@click.option("--name", "-n", default=None, help="List tunnels with the given NAME")
@click.option(
    "--when",
    "-w",
    type=RFC3339Timestamp(),
    default=None,
    help="List tunnels that are active at the given TIME in RFC3339 format",
)
@click.option("--id", "-i", "tunnel_id", default=None, help="List tunnel by ID")
@click.option(
    "--show-recently-disconnected",
    "-rd",
    is_flag=True,
    help="Include connections that have recently disconnected in the list",
)
@click.option(
    "--sort-by",
    envvar="TUNNEL_LIST_SORT_BY",
    default=DEFAULT_TUNNEL_SORT_FIELD.value,
    show_default=True,
    help=f"Sorts the list of tunnels by the given field. Valid options are {{{TunnelSortField.options()}}}",
)
@click.option(
    "--invert-sort",
    envvar="TUNNEL_LIST_INVERT_SORT",
    is_flag=True,
    help="Inverts the sort order of the tunnel list.",
)
@click.pass_context
@handle_errors
def list_command(
    ctx: click.Context,
    output: str,
    show_deleted: bool,
    name: str | None,
    when: datetime | None,
    tunnel_id: str | None,
    show_recently_disconnected: bool,
    sort_by: str,
    invert_sort: bool,
) -> None:
    """List existing tunnels.

    Shows active tunnels, their creation time and connections. Use -d to
    include deleted tunnels.
    """
    options = ListOptions(
        output=output,
        show_deleted=show_deleted,
        name=name,
        when=when,
        id=tunnel_id,
        show_recently_disconnected=show_recently_disconnected,
        sort_by=sort_by,
        invert_sort=invert_sort,
    )
    _subcommand_context(ctx).list_tunnels(options)


@tunnel.command()
@click.argument("args", nargs=-1)
@click.option("--output", "-o", default="", help=OUTPUT_HELP)
@click.option(
    "--show-recently-disconnected",
    "-rd",
    is_flag=True,
    help="Include connections that have recently disconnected in the list",
)
@click.option(
    "--sort-by",
    envvar="TUNNEL_INFO_SORT_BY",
    default=DEFAULT_CONNECTOR_SORT_FIELD.value,
    show_default=True,
    help=(
        "Sorts the list of connections of a tunnel by the given field. "
        f"Valid options are {{{ConnectorSortField.options()}}}"
    ),
)
@click.option(
    "--invert-sort",
    envvar="TUNNEL_INFO_INVERT_SORT",
    is_flag=True,
    help="Inverts the sort order of the tunnel info.",
)
@click.pass_context
@handle_errors
def info(
    ctx: click.Context,
    args: tuple[str, ...],
    output: str,
    show_recently_disconnected: bool,
    sort_by: str,
    invert_sort: bool,
) -> None:
    """List details about the active connectors for TUNNEL (name or UUID)."""
    options = InfoOptions(
        output=output,
        show_recently_disconnected=show_recently_disconnected,
        sort_by=sort_by,
        invert_sort=invert_sort,
    )
    _subcommand_context(ctx).info(args, options)


@tunnel.command()
@click.argument("args", nargs=-1)
@click.option(
    "--credentials-file",
    "--cred-file",
    envvar="TUNNEL_CRED_FILE",
    default=None,
    help=CREDENTIALS_FILE_HELP,
)
@click.option(
    "--force",
    "-f",
    envvar="TUNNEL_RUN_FORCE_OVERWRITE",
    is_flag=True,
    help=(
        "Cleans up any stale connections before the tunnel is deleted. "
        "A tunnel with connections is not deleted without this flag."
    ),
)
@click.pass_context
@handle_errors
def delete(
    ctx: click.Context, args: tuple[str, ...], credentials_file: str | None, force: bool
) -> None:
    """Delete existing tunnels by UUID or name."""
    options = DeleteOptions(credentials_file=credentials_file, force=force)
    _subcommand_context(ctx).delete(args, options)


@tunnel.command()
@click.argument("args", nargs=-1)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Replace the connections of a connector already running this tunnel.",
)
@click.option(
    "--credentials-file",
    "--cred-file",
    envvar="TUNNEL_CRED_FILE",
    default=None,
    help=CREDENTIALS_FILE_HELP,
)
@click.option(
    "--protocol",
    "-p",
    envvar="TUNNEL_TRANSPORT_PROTOCOL",
    type=click.Choice([p.value for p in TransportProtocol]),
    default=TransportProtocol.AUTO.value,
    show_default=True,
    hidden=True,
    help="Protocol used to connect to the edge network.",
)
@click.option(
    "--features",
    "-F",
    multiple=True,
    help="Opt into various features that are still being developed or tested.",
)
@click.pass_context
@handle_errors
def run(
    ctx: click.Context,
    args: tuple[str, ...],
    force: bool,
    credentials_file: str | None,
    protocol: str,
    features: tuple[str, ...],
) -> None:
    """Run the given TUNNEL.

    The tunnel can be named by argument or with "tunnel: TUNNEL" in the
    configuration file. Requires the credentials file written by create.
    """
    options = RunOptions(
        force=force,
        credentials_file=credentials_file,
        protocol=TransportProtocol(protocol),
        features=features,
    )
    connector = _subcommand_context(ctx).run(args, options)
    click.echo(f"Connector {connector.id} is running")


@tunnel.command()
@click.argument("args", nargs=-1)
@click.option(
    "--connector-id",
    "-c",
    envvar="TUNNEL_CLEANUP_CONNECTOR",
    default=None,
    help="Constrains the cleanup to the connections of a single connector (by its ID).",
)
@click.pass_context
@handle_errors
def cleanup(ctx: click.Context, args: tuple[str, ...], connector_id: str | None) -> None:
    """Cleanup connections of tunnels with the given UUIDs or names."""
    if not args:
        raise UsageError(
            '"tunnelctl tunnel cleanup" requires at least 1 argument, '
            "the IDs of the tunnels to cleanup connections."
        )
    try:
        options = CleanupOptions(connector_id=connector_id)
    except ValueError as e:
        raise click.BadParameter(
            f"{connector_id} is not a valid connector ID", param_hint="--connector-id"
        ) from e
    _subcommand_context(ctx).cleanup(args, options)


@tunnel.command()
@click.argument("args", nargs=-1)
@click.option(
    "--overwrite-dns",
    "-f",
    envvar="TUNNEL_FORCE_PROVISIONING_DNS",
    is_flag=True,
    help="Overwrites existing DNS records with this hostname",
)
@click.pass_context
@handle_errors
def route(ctx: click.Context, args: tuple[str, ...], overwrite_dns: bool) -> None:
    """Define which traffic is routed to a tunnel.

    \b
    Route a hostname with a CNAME record:
        tunnelctl tunnel route dns <tunnel ID or name> <hostname>
    Use the tunnel as a load balancer origin:
        tunnelctl tunnel route lb <tunnel ID or name> <hostname> <pool>
    """
    options = RouteOptions(overwrite_dns=overwrite_dns)
    _subcommand_context(ctx).route(args, options)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
