"""Tunnel subcommands.

Each command receives its positional arguments and a frozen options model,
talks to the control plane through a :class:`~tunnelctl.store.TunnelStore`
and writes its output to a text stream.
"""

import os
import sys
import uuid
from collections.abc import Sequence
from typing import TextIO

from pydantic import ValidationError as PydanticValidationError

from .config import (
    CleanupOptions,
    CreateOptions,
    DeleteOptions,
    FileConfig,
    InfoOptions,
    ListOptions,
    RouteOptions,
    RunOptions,
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
    TunnelNotFoundError,
    TunnelStoreError,
    UsageError,
    ValidationError,
)
from .filters import TunnelFilter
from .logging import LOG_FIELD_TUNNEL_ID, get_logger
from .models import Connector, Credentials, Route, RouteResult, Tunnel, TunnelInfo
from .render import format_connector_list, format_tunnel_list, render_output
from .routes import TUNNEL_INDEX, route_description, route_from_args, success_summary
from .sorting import invalid_sort_field_message, sort_connectors, sort_tunnels
from .store import TunnelRunner, TunnelStore
from .utils import expand_path, mask_sensitive_data, parse_tunnel_id

logger = get_logger(__name__)


class SubcommandContext:
    """State shared by the tunnel subcommands for one invocation."""

    def __init__(
        self,
        settings: TunnelCtlSettings,
        store: TunnelStore,
        runner: TunnelRunner | None = None,
        stream: TextIO | None = None,
        file_config: FileConfig | None = None,
    ):
        """Initialize the context.

        Args:
            settings: Settings shared by all commands
            store: Control-plane client
            runner: Starts connectors for ``run``
            stream: Destination for command output, stdout by default
            file_config: Values from the YAML config file
        """
        self.settings = settings
        self.store = store
        self.runner = runner
        self.stream = stream or sys.stdout
        self.file_config = file_config or FileConfig()

    def _echo(self, message: str) -> None:
        self.stream.write(message + "\n")

    def credentials_path(self, tunnel_id: uuid.UUID, credentials_file: str | None) -> str:
        if credentials_file:
            return expand_path(credentials_file)
        return tunnel_file_path(tunnel_id, self.settings.credentials_dir)

    # Tunnel resolution

    def find_id(self, tunnel_ref: str) -> uuid.UUID:
        """Resolve a tunnel ID or name to an ID.

        Raises:
            TunnelNotFoundError: If no non-deleted tunnel has this name
            RemoteError: If several non-deleted tunnels share the name
        """
        tunnel_id = parse_tunnel_id(tunnel_ref)
        if tunnel_id is not None:
            return tunnel_id

        tunnel_filter = TunnelFilter().exclude_deleted().by_name(tunnel_ref)
        tunnels = self.list_matching(tunnel_filter)
        if len(tunnels) == 1:
            return tunnels[0].id
        if not tunnels:
            raise TunnelNotFoundError(
                f"{tunnel_ref} is neither the ID nor the name of any of your tunnels"
            )
        raise RemoteError(f"there should only be 1 non-deleted Tunnel named {tunnel_ref}")

    def find_ids(self, tunnel_refs: Sequence[str]) -> list[uuid.UUID]:
        return [self.find_id(ref) for ref in tunnel_refs]

    def list_matching(self, tunnel_filter: TunnelFilter) -> list[Tunnel]:
        logger.debug("Listing tunnels", **tunnel_filter.to_query_params())
        try:
            return self.store.list_tunnels(tunnel_filter)
        except TunnelStoreError as e:
            raise RemoteError(f"failed to list tunnels: {e}") from e

    def get_tunnel(self, tunnel_id: uuid.UUID) -> Tunnel:
        tunnel_filter = TunnelFilter().include_deleted().by_tunnel_id(tunnel_id)
        tunnels = self.list_matching(tunnel_filter)
        if len(tunnels) != 1:
            raise RemoteError(
                f"Expected to find a single tunnel with uuid {tunnel_id} "
                f"but found {len(tunnels)} tunnels."
            )
        return tunnels[0]

    # Commands

    def create(self, args: Sequence[str], options: CreateOptions) -> Tunnel:
        """Create a tunnel and write its credentials file."""
        if len(args) != 1:
            raise UsageError(
                '"tunnelctl tunnel create" requires exactly 1 argument, '
                "the name of tunnel to create."
            )
        name = args[0]

        secret = generate_tunnel_secret()
        try:
            tunnel = self.store.create_tunnel(name, secret)
        except TunnelStoreError as e:
            raise RemoteError(f"failed to create tunnel: {e}") from e

        credentials = Credentials(
            account_tag=self.store.account_tag,
            tunnel_secret=secret,
            tunnel_id=tunnel.id,
            tunnel_name=name,
        )
        path = self.credentials_path(tunnel.id, options.credentials_file)
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            write_tunnel_credentials(path, credentials)
        except (CredentialsFileExistsError, OSError) as e:
            self._rollback_create(tunnel)
            raise RemoteError(
                f"failed to create tunnel: your tunnel {tunnel.id} was created but "
                f"writing its credentials failed ({e}), so it was deleted"
            ) from e

        logger.info(
            "Tunnel credentials written",
            path=path,
            account_tag=mask_sensitive_data(credentials.account_tag),
            **{LOG_FIELD_TUNNEL_ID: str(tunnel.id)},
        )

        if options.output:
            render_output(options.output, tunnel, self.stream)
        else:
            self._echo(f"Tunnel credentials written to {path}. Keep this file secret.")
            self._echo(f"Created tunnel {tunnel.name} with id {tunnel.id}")
        return tunnel

    def _rollback_create(self, tunnel: Tunnel) -> None:
        try:
            self.store.delete_tunnel(tunnel.id)
        except TunnelStoreError as e:
            logger.error(
                "Failed to delete tunnel after credentials error",
                error=str(e),
                **{LOG_FIELD_TUNNEL_ID: str(tunnel.id)},
            )

    def list_tunnels(self, options: ListOptions) -> list[Tunnel]:
        """Filter, fetch, sort and render tunnels."""
        tunnel_filter = TunnelFilter()
        if options.show_deleted:
            tunnel_filter.include_deleted()
        else:
            tunnel_filter.exclude_deleted()
        if options.name:
            tunnel_filter.by_name(options.name)
        if options.when is not None:
            tunnel_filter.by_existed_at(options.when)
        tunnel_id = options.tunnel_id()
        if tunnel_id is not None:
            tunnel_filter.by_tunnel_id(tunnel_id)

        tunnels = self.list_matching(tunnel_filter)
        result = sort_tunnels(tunnels, options.sort_by, options.invert_sort)
        if result.invalid_field:
            logger.warning(invalid_sort_field_message(options.sort_by, result))

        if options.output:
            render_output(options.output, result.records, self.stream)
        else:
            format_tunnel_list(
                result.records, options.show_recently_disconnected, self.stream
            )
        return result.records

    def info(self, args: Sequence[str], options: InfoOptions) -> TunnelInfo:
        """Show a tunnel's active connectors."""
        if len(args) != 1:
            raise UsageError(
                '"tunnelctl tunnel info" accepts exactly one argument, '
                "the ID or name of the tunnel to get info about."
            )
        tunnel_id = self.find_id(args[0])

        try:
            connectors = self.store.list_active_connectors(tunnel_id)
        except TunnelStoreError as e:
            raise RemoteError(f"failed to list connectors: {e}") from e

        result = sort_connectors(connectors, options.sort_by, options.invert_sort)
        if result.invalid_field:
            logger.warning(invalid_sort_field_message(options.sort_by, result))

        tunnel = self.get_tunnel(tunnel_id)
        info = TunnelInfo(
            id=tunnel.id,
            name=tunnel.name,
            created_at=tunnel.created_at,
            connectors=result.records,
        )

        if options.output:
            render_output(options.output, info, self.stream)
        else:
            format_connector_list(info, options.show_recently_disconnected, self.stream)
        return info

    def delete(self, args: Sequence[str], options: DeleteOptions) -> list[uuid.UUID]:
        """Delete tunnels and their credentials files."""
        if not args:
            raise UsageError(
                '"tunnelctl tunnel delete" requires at least 1 argument, '
                "the ID or name of the tunnel to delete."
            )
        tunnel_ids = self.find_ids(args)

        for tunnel_id in tunnel_ids:
            tunnel = self.get_tunnel(tunnel_id)
            if tunnel.is_deleted:
                raise RemoteError(f"Tunnel {tunnel_id} has already been deleted")
            if tunnel.connections:
                if not options.force:
                    raise RemoteError(
                        f"Tunnel {tunnel_id} has active connections. "
                        "To delete anyway, use the --force flag"
                    )
                self._cleanup(tunnel_id, None)

            try:
                self.store.delete_tunnel(tunnel_id)
            except TunnelStoreError as e:
                raise RemoteError(f"failed to delete tunnel {tunnel_id}: {e}") from e

            path = self.credentials_path(tunnel_id, options.credentials_file)
            if os.path.exists(path):
                os.remove(path)
                logger.info(
                    "Removed tunnel credentials",
                    path=path,
                    **{LOG_FIELD_TUNNEL_ID: str(tunnel_id)},
                )
            logger.info("Deleted tunnel", **{LOG_FIELD_TUNNEL_ID: str(tunnel_id)})
        return tunnel_ids

    def run(self, args: Sequence[str], options: RunOptions) -> Connector:
        """Resolve the tunnel to run and hand it to the runner."""
        if len(args) > 1:
            raise UsageError(
                '"tunnelctl tunnel run" accepts only one argument, '
                "the ID or name of the tunnel to run."
            )
        tunnel_ref = args[0] if args else self.file_config.tunnel
        if not tunnel_ref:
            raise UsageError(
                '"tunnelctl tunnel run" requires the ID or name of the tunnel to run '
                "as the last command line argument or in the configuration file."
            )
        if self.runner is None:
            raise RemoteError("no tunnel runner is configured")

        tunnel_id = self.find_id(tunnel_ref)
        credentials_file = options.credentials_file or self.file_config.credentials_file
        path = self.credentials_path(tunnel_id, credentials_file)
        try:
            credentials = read_tunnel_credentials(path)
        except (OSError, PydanticValidationError) as e:
            raise ValidationError(
                f"tunnel credentials file {path} could not be read: {e}"
            ) from e
        if credentials.tunnel_id != tunnel_id:
            raise ValidationError(
                f"tunnel credentials file {path} is for tunnel "
                f"{credentials.tunnel_id}, not {tunnel_id}"
            )

        if options.force:
            self._cleanup(tunnel_id, None)

        logger.info("Starting tunnel", **{LOG_FIELD_TUNNEL_ID: str(tunnel_id)})
        try:
            return self.runner.run(credentials, options)
        except TunnelStoreError as e:
            raise RemoteError(f"failed to run tunnel {tunnel_id}: {e}") from e

    def cleanup(self, args: Sequence[str], options: CleanupOptions) -> list[uuid.UUID]:
        """Delete stale connections of tunnels."""
        if not args:
            raise UsageError(
                '"tunnelctl tunnel cleanup" requires at least 1 argument, '
                "the IDs of the tunnels to cleanup connections."
            )
        tunnel_ids = self.find_ids(args)
        for tunnel_id in tunnel_ids:
            self._cleanup(tunnel_id, options.connector_id)
        return tunnel_ids

    def _cleanup(self, tunnel_id: uuid.UUID, connector_id: uuid.UUID | None) -> None:
        logger.info(
            "Cleanup connections",
            connector_id=str(connector_id) if connector_id else None,
            **{LOG_FIELD_TUNNEL_ID: str(tunnel_id)},
        )
        try:
            self.store.cleanup_connections(tunnel_id, connector_id)
        except TunnelStoreError as e:
            raise RemoteError(
                f"failed to cleanup connections for tunnel {tunnel_id}: {e}"
            ) from e

    def route(self, args: Sequence[str], options: RouteOptions) -> RouteResult:
        """Validate a route and apply it to a tunnel."""
        route: Route = route_from_args(args, options.overwrite_dns)
        tunnel_id = self.find_id(args[TUNNEL_INDEX])

        logger.debug(
            "Applying route",
            route=route_description(route),
            **{LOG_FIELD_TUNNEL_ID: str(tunnel_id)},
        )
        try:
            result = self.store.route_tunnel(tunnel_id, route)
        except TunnelStoreError as e:
            raise RemoteError(f"failed to route tunnel {tunnel_id}: {e}") from e

        logger.info(success_summary(result), **{LOG_FIELD_TUNNEL_ID: str(tunnel_id)})
        return result
