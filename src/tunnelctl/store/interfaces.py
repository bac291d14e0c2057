"""Protocol interfaces for the control plane and the tunnel runner."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..config import RunOptions
    from ..filters import TunnelFilter
    from ..models import Connector, Credentials, Route, RouteResult, Tunnel


class TunnelStore(Protocol):
    """Operations the control plane offers on tunnels."""

    @property
    def account_tag(self) -> str:
        """Account that owns the tunnels."""
        ...

    def create_tunnel(self, name: str, tunnel_secret: bytes) -> Tunnel:
        """Create a tunnel."""
        ...

    def get_tunnel(self, tunnel_id: uuid.UUID) -> Tunnel:
        """Get tunnel by ID."""
        ...

    def delete_tunnel(self, tunnel_id: uuid.UUID) -> None:
        """Delete a tunnel."""
        ...

    def list_tunnels(self, tunnel_filter: TunnelFilter) -> list[Tunnel]:
        """List tunnels matching a filter."""
        ...

    def list_active_connectors(self, tunnel_id: uuid.UUID) -> list[Connector]:
        """List the connectors currently running a tunnel."""
        ...

    def cleanup_connections(
        self, tunnel_id: uuid.UUID, connector_id: uuid.UUID | None = None
    ) -> None:
        """Delete connection records of a tunnel."""
        ...

    def route_tunnel(self, tunnel_id: uuid.UUID, route: Route) -> RouteResult:
        """Apply a route to a tunnel."""
        ...


class TunnelRunner(Protocol):
    """Starts a connector for a tunnel."""

    def run(self, credentials: Credentials, options: RunOptions) -> Connector:
        """Run the tunnel described by ``credentials``."""
        ...
