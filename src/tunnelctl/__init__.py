"""tunnelctl - tunnel inventory and route provisioning."""

from ._version import __version__
from .commands import SubcommandContext
from .config import (
    CleanupOptions,
    CreateOptions,
    DeleteOptions,
    InfoOptions,
    ListOptions,
    RouteOptions,
    RunOptions,
    TransportProtocol,
    TunnelCtlSettings,
)
from .credentials import (
    generate_tunnel_secret,
    read_tunnel_credentials,
    tunnel_file_path,
    write_tunnel_credentials,
)
from .exceptions import (
    CredentialsFileExistsError,
    RemoteError,
    TunnelCtlError,
    TunnelNotFoundError,
    TunnelStoreError,
    UnknownFormatError,
    UnrecognizedRouteTypeError,
    UsageError,
    ValidationError,
)
from .filters import TunnelFilter
from .logging import get_logger, setup_logging
from .models import (
    Change,
    Connection,
    Connector,
    Credentials,
    DNSRoute,
    DNSRouteResult,
    LBRoute,
    LBRouteResult,
    Route,
    RouteResult,
    Tunnel,
    TunnelInfo,
)
from .render import fmt_connections, render_output
from .routes import build_dns_route, build_lb_route, route_from_args, success_summary
from .sorting import ConnectorSortField, TunnelSortField, sort_connectors, sort_tunnels
from .store import LocalTunnelRunner, LocalTunnelStore, TunnelRunner, TunnelStore
from .validation import validate_hostname, validate_name

__all__ = [
    "__version__",
    # Commands
    "SubcommandContext",
    "TunnelCtlSettings",
    "CreateOptions",
    "ListOptions",
    "InfoOptions",
    "DeleteOptions",
    "RunOptions",
    "CleanupOptions",
    "RouteOptions",
    "TransportProtocol",
    # Models
    "Tunnel",
    "Connector",
    "Connection",
    "TunnelInfo",
    "Credentials",
    "Route",
    "DNSRoute",
    "LBRoute",
    "RouteResult",
    "DNSRouteResult",
    "LBRouteResult",
    "Change",
    # Core
    "TunnelFilter",
    "TunnelSortField",
    "ConnectorSortField",
    "sort_tunnels",
    "sort_connectors",
    "validate_name",
    "validate_hostname",
    "build_dns_route",
    "build_lb_route",
    "route_from_args",
    "success_summary",
    "render_output",
    "fmt_connections",
    "generate_tunnel_secret",
    "tunnel_file_path",
    "write_tunnel_credentials",
    "read_tunnel_credentials",
    # Control plane
    "TunnelStore",
    "TunnelRunner",
    "LocalTunnelStore",
    "LocalTunnelRunner",
    # Exceptions
    "TunnelCtlError",
    "UsageError",
    "UnrecognizedRouteTypeError",
    "ValidationError",
    "UnknownFormatError",
    "CredentialsFileExistsError",
    "RemoteError",
    "TunnelStoreError",
    "TunnelNotFoundError",
    # Logging
    "get_logger",
    "setup_logging",
]
