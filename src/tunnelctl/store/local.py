"""Local control-plane backend.

Keeps tunnels, connectors and routes in memory and, when a state file is
given, persists them as a JSON snapshot after every change. Used by the CLI
when no remote backend is configured and throughout the tests.
"""

import os
import platform
import secrets
import tempfile
import uuid
from datetime import datetime, timezone
from ipaddress import IPv4Address, IPv6Address, ip_address

from pydantic import BaseModel, Field

from .._version import __version__
from ..config import RunOptions
from ..exceptions import TunnelNotFoundError, TunnelStoreError
from ..filters import TunnelFilter
from ..logging import get_logger
from ..models import (
    TUNNEL_SECRET_LENGTH,
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
)
from ..utils import expand_path, sanitize_log_data

logger = get_logger(__name__)

DEFAULT_COLOS = ("LAX", "SFO")
HA_CONNECTIONS = 4


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StoreState(BaseModel):
    """Snapshot of everything the local control plane knows."""

    account_tag: str = Field(default_factory=lambda: secrets.token_hex(16))
    tunnels: dict[uuid.UUID, Tunnel] = Field(default_factory=dict)
    connectors: dict[uuid.UUID, list[Connector]] = Field(default_factory=dict)
    dns_records: dict[str, uuid.UUID] = Field(
        default_factory=dict, description="CNAME hostname to tunnel ID"
    )
    load_balancers: dict[str, str] = Field(
        default_factory=dict, description="Load balancer hostname to pool name"
    )
    pools: dict[str, list[uuid.UUID]] = Field(
        default_factory=dict, description="Pool name to origin tunnel IDs"
    )


class LocalTunnelStore:
    """In-process control plane with an optional JSON snapshot file."""

    def __init__(self, state_file: str | None = None):
        """Initialize the store.

        Args:
            state_file: Snapshot path; state is kept in memory only if None
        """
        self._state_file = expand_path(state_file) if state_file else None
        self._state = self._load()
        logger.debug(
            "Initialized LocalTunnelStore",
            state_file=self._state_file,
            tunnels=len(self._state.tunnels),
        )

    def _load(self) -> StoreState:
        if self._state_file is None or not os.path.exists(self._state_file):
            return StoreState()
        with open(self._state_file, encoding="utf-8") as f:
            return StoreState.model_validate_json(f.read())

    def _save(self) -> None:
        if self._state_file is None:
            return

        directory = os.path.dirname(self._state_file) or "."
        os.makedirs(directory, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            suffix=".json", prefix=".state_", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self._state.model_dump_json(indent=2))
            os.replace(temp_path, self._state_file)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    @property
    def account_tag(self) -> str:
        return self._state.account_tag

    def _tunnel(self, tunnel_id: uuid.UUID) -> Tunnel:
        tunnel = self._state.tunnels.get(tunnel_id)
        if tunnel is None:
            raise TunnelNotFoundError(f"tunnel {tunnel_id} not found")
        return tunnel

    def _with_connections(self, tunnel: Tunnel) -> Tunnel:
        connections = [
            conn
            for connector in self._state.connectors.get(tunnel.id, [])
            for conn in connector.connections
        ]
        return tunnel.model_copy(update={"connections": connections})

    def create_tunnel(self, name: str, tunnel_secret: bytes) -> Tunnel:
        """Create a tunnel.

        Raises:
            TunnelStoreError: If the secret has the wrong length or a
                non-deleted tunnel already has this name
        """
        if len(tunnel_secret) != TUNNEL_SECRET_LENGTH:
            raise TunnelStoreError(
                f"tunnel secret must be {TUNNEL_SECRET_LENGTH} bytes, got {len(tunnel_secret)}"
            )
        if not name:
            raise TunnelStoreError("tunnel name cannot be empty")

        for existing in self._state.tunnels.values():
            if existing.name == name and not existing.is_deleted:
                raise TunnelStoreError(f"tunnel with name {name} already exists")

        tunnel = Tunnel(id=uuid.uuid4(), name=name, created_at=_now())
        self._state.tunnels[tunnel.id] = tunnel
        self._save()
        logger.info("Tunnel created", tunnel_id=str(tunnel.id), name=name)
        return tunnel

    def get_tunnel(self, tunnel_id: uuid.UUID) -> Tunnel:
        return self._with_connections(self._tunnel(tunnel_id))

    def delete_tunnel(self, tunnel_id: uuid.UUID) -> None:
        """Soft-delete a tunnel.

        Raises:
            TunnelNotFoundError: If the tunnel does not exist
            TunnelStoreError: If it is already deleted or still has connections
        """
        tunnel = self._tunnel(tunnel_id)
        if tunnel.is_deleted:
            raise TunnelStoreError(f"tunnel {tunnel_id} is already deleted")
        if self._state.connectors.get(tunnel_id):
            raise TunnelStoreError(
                f"tunnel {tunnel_id} has active connections; clean them up first"
            )

        self._state.tunnels[tunnel_id] = tunnel.model_copy(update={"deleted_at": _now()})
        self._save()
        logger.info("Tunnel deleted", tunnel_id=str(tunnel_id))

    def list_tunnels(self, tunnel_filter: TunnelFilter) -> list[Tunnel]:
        tunnels = [self._with_connections(t) for t in self._state.tunnels.values()]
        return [t for t in tunnels if tunnel_filter.matches(t)]

    def list_active_connectors(self, tunnel_id: uuid.UUID) -> list[Connector]:
        self._tunnel(tunnel_id)
        return list(self._state.connectors.get(tunnel_id, []))

    def cleanup_connections(
        self, tunnel_id: uuid.UUID, connector_id: uuid.UUID | None = None
    ) -> None:
        """Drop connection records for a tunnel, or for one of its connectors.

        Raises:
            TunnelNotFoundError: If the tunnel does not exist
            TunnelStoreError: If ``connector_id`` is not running the tunnel
        """
        self._tunnel(tunnel_id)
        connectors = self._state.connectors.get(tunnel_id, [])

        if connector_id is None:
            remaining: list[Connector] = []
        else:
            remaining = [c for c in connectors if c.id != connector_id]
            if len(remaining) == len(connectors):
                raise TunnelStoreError(
                    f"connector {connector_id} is not running tunnel {tunnel_id}"
                )

        if remaining:
            self._state.connectors[tunnel_id] = remaining
        else:
            self._state.connectors.pop(tunnel_id, None)
        self._save()
        logger.info(
            "Connections cleaned up",
            tunnel_id=str(tunnel_id),
            removed=len(connectors) - len(remaining),
        )

    def register_connector(self, tunnel_id: uuid.UUID, connector: Connector) -> None:
        """Record a connector that started running a tunnel."""
        tunnel = self._tunnel(tunnel_id)
        if tunnel.is_deleted:
            raise TunnelStoreError(f"tunnel {tunnel_id} is deleted")

        self._state.connectors.setdefault(tunnel_id, []).append(connector)
        self._save()

    def route_tunnel(self, tunnel_id: uuid.UUID, route: Route) -> RouteResult:
        """Apply a DNS or load balancer route.

        Raises:
            TunnelNotFoundError: If the tunnel does not exist
            TunnelStoreError: If the tunnel is deleted or a DNS record for the
                hostname points elsewhere and overwriting was not requested
        """
        tunnel = self._tunnel(tunnel_id)
        if tunnel.is_deleted:
            raise TunnelStoreError(f"tunnel {tunnel_id} is deleted")

        match route:
            case DNSRoute():
                result: RouteResult = self._route_dns(tunnel_id, route)
            case LBRoute():
                result = self._route_lb(tunnel_id, route)
            case _:
                raise TunnelStoreError(f"unsupported route {route!r}")

        self._save()
        return result

    def _route_dns(self, tunnel_id: uuid.UUID, route: DNSRoute) -> DNSRouteResult:
        current = self._state.dns_records.get(route.hostname)
        if current == tunnel_id:
            change = Change.UNCHANGED
        elif current is None:
            change = Change.NEW
        elif route.overwrite_existing:
            change = Change.UPDATED
        else:
            raise TunnelStoreError(
                f"An A, AAAA, or CNAME record with that host already exists: {route.hostname}"
            )

        self._state.dns_records[route.hostname] = tunnel_id
        return DNSRouteResult(hostname=route.hostname, change=change)

    def _route_lb(self, tunnel_id: uuid.UUID, route: LBRoute) -> LBRouteResult:
        origins = self._state.pools.get(route.pool_name)
        if origins is None:
            pool_change = Change.NEW
            self._state.pools[route.pool_name] = [tunnel_id]
        elif tunnel_id in origins:
            pool_change = Change.UNCHANGED
        else:
            pool_change = Change.UPDATED
            origins.append(tunnel_id)

        current_pool = self._state.load_balancers.get(route.hostname)
        if current_pool is None:
            lb_change = Change.NEW
        elif current_pool == route.pool_name:
            lb_change = Change.UNCHANGED
        else:
            lb_change = Change.UPDATED
        self._state.load_balancers[route.hostname] = route.pool_name

        return LBRouteResult(
            hostname=route.hostname,
            pool_name=route.pool_name,
            load_balancer_change=lb_change,
            pool_change=pool_change,
        )


class LocalTunnelRunner:
    """Registers a connector with a :class:`LocalTunnelStore`.

    Stands in for the tunnel agent: it records the connector and its edge
    connections so that ``info`` and ``list`` show a running tunnel.
    """

    def __init__(
        self,
        store: LocalTunnelStore,
        colos: tuple[str, ...] = DEFAULT_COLOS,
        origin_ip: str = "127.0.0.1",
    ):
        self.store = store
        self.colos = colos
        self.origin_ip: IPv4Address | IPv6Address = ip_address(origin_ip)

    def run(self, credentials: Credentials, options: RunOptions) -> Connector:
        """Start a connector for the tunnel in ``credentials``.

        Raises:
            TunnelStoreError: If the credentials belong to another account or
                the tunnel cannot be run
        """
        if credentials.account_tag != self.store.account_tag:
            raise TunnelStoreError("credentials belong to a different account")

        now = _now()
        connections = [
            Connection(
                colo_name=self.colos[i % len(self.colos)],
                origin_ip=self.origin_ip,
                opened_at=now,
            )
            for i in range(HA_CONNECTIONS)
        ]
        connector = Connector(
            id=uuid.uuid4(),
            run_at=now,
            version=__version__,
            arch=f"{platform.system().lower()}_{platform.machine().lower()}",
            features=list(options.features),
            connections=connections,
        )
        self.store.register_connector(credentials.tunnel_id, connector)
        logger.info(
            "Connector registered",
            **sanitize_log_data(
                {
                    "tunnel_id": str(credentials.tunnel_id),
                    "connector_id": str(connector.id),
                    "account_tag": credentials.account_tag,
                    "protocol": options.protocol.value,
                }
            ),
        )
        return connector
