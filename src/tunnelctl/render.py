"""Output rendering for tunnel listings.

Structured output (JSON, YAML) is selected with an explicit format name. An
empty format selects the human-readable tables.
"""

import json
import sys
from collections import Counter
from collections.abc import Sequence
from datetime import datetime
from typing import Any, TextIO

import yaml
from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from .exceptions import UnknownFormatError
from .models import Connection, Tunnel, TunnelInfo

OUTPUT_FORMATS = ("json", "yaml")
TABLE_WIDTH = 240


def _to_plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


def render_output(output_format: str, value: Any, stream: TextIO | None = None) -> None:
    """Write ``value`` to ``stream`` as JSON or YAML.

    Args:
        output_format: ``json`` or ``yaml``
        value: Model, list of models or plain data
        stream: Destination, stdout by default

    Raises:
        UnknownFormatError: If the format is not supported
    """
    out = stream or sys.stdout
    data = _to_plain(value)

    if output_format == "json":
        out.write(json.dumps(data, indent=2))
        out.write("\n")
    elif output_format == "yaml":
        yaml.safe_dump(data, out, default_flow_style=False, sort_keys=False)
    else:
        raise UnknownFormatError(f"Unknown output format '{output_format}'")


def fmt_connections(
    connections: Sequence[Connection], show_recently_disconnected: bool = False
) -> str:
    """Summarize connections as ``<count>x<colo>`` sorted by colo name.

    Args:
        connections: Connections to count
        show_recently_disconnected: Also count pending-reconnect connections

    Returns:
        Comma-separated counts, empty when nothing is counted
    """
    per_colo = Counter(
        conn.colo_name
        for conn in connections
        if show_recently_disconnected or not conn.is_pending_reconnect
    )
    return ", ".join(f"{per_colo[colo]}x{colo}" for colo in sorted(per_colo))


def fmt_time(ts: datetime) -> str:
    """Format a timestamp as RFC3339."""
    return ts.isoformat(timespec="seconds").replace("+00:00", "Z")


def _console(stream: TextIO | None) -> Console:
    return Console(
        file=stream or sys.stdout,
        width=TABLE_WIDTH,
        markup=False,
        emoji=False,
        highlight=False,
        color_system=None,
    )


def _table(*headers: str) -> Table:
    table = Table(
        box=None,
        show_edge=False,
        pad_edge=False,
        padding=(0, 1, 0, 0),
        header_style="",
    )
    for header in headers:
        table.add_column(header, no_wrap=True)
    return table


def format_tunnel_list(
    tunnels: Sequence[Tunnel],
    show_recently_disconnected: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Print tunnels as a table."""
    console = _console(stream)

    if not tunnels:
        console.print(
            "You have no tunnels, use 'tunnelctl tunnel create' to define a new tunnel"
        )
        return

    console.print(
        "You can obtain more detailed information for each tunnel with "
        "`tunnelctl tunnel info <name/uuid>`"
    )
    table = _table("ID", "NAME", "CREATED", "CONNECTIONS")
    for tunnel in tunnels:
        table.add_row(
            str(tunnel.id),
            tunnel.name,
            fmt_time(tunnel.created_at),
            fmt_connections(tunnel.connections, show_recently_disconnected),
        )
    console.print(table)


def format_connector_list(
    info: TunnelInfo,
    show_recently_disconnected: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Print a tunnel's details and its connectors as a table."""
    console = _console(stream)

    if not info.connectors:
        console.print(f"Your tunnel {info.id} does not have any active connection.")
        return

    console.print(f"NAME:     {info.name}")
    console.print(f"ID:       {info.id}")
    console.print(f"CREATED:  {fmt_time(info.created_at)}")
    console.print()

    table = _table(
        "CONNECTOR ID", "CREATED", "ARCHITECTURE", "VERSION", "ORIGIN IP", "EDGE"
    )
    for connector in info.connectors:
        conns = fmt_connections(connector.connections, show_recently_disconnected)
        if not conns:
            continue
        table.add_row(
            str(connector.id),
            fmt_time(connector.run_at),
            connector.arch,
            connector.version,
            str(connector.connections[0].origin_ip),
            conns,
        )

    if table.row_count == 0:
        console.print("This tunnel has no active connectors.")
        return

    console.print(table)
