"""Filter builder for tunnel listings."""

import uuid
from datetime import datetime, timezone

from .models import Tunnel

TIME_LAYOUT = "%Y-%m-%dT%H:%M:%SZ"


class TunnelFilter:
    """Accumulates predicates for a tunnel listing.

    Predicates are combined with AND. Setters overwrite earlier values and
    return the filter so calls can be chained. Values are passed through
    without validation.
    """

    def __init__(self) -> None:
        self._include_deleted = False
        self._name: str | None = None
        self._existed_at: datetime | None = None
        self._tunnel_id: uuid.UUID | None = None

    def exclude_deleted(self) -> "TunnelFilter":
        self._include_deleted = False
        return self

    def include_deleted(self) -> "TunnelFilter":
        self._include_deleted = True
        return self

    def by_name(self, name: str) -> "TunnelFilter":
        self._name = name
        return self

    def by_existed_at(self, existed_at: datetime) -> "TunnelFilter":
        # Naive timestamps are taken as UTC
        if existed_at.tzinfo is None:
            existed_at = existed_at.replace(tzinfo=timezone.utc)
        self._existed_at = existed_at
        return self

    def by_tunnel_id(self, tunnel_id: uuid.UUID) -> "TunnelFilter":
        self._tunnel_id = tunnel_id
        return self

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def existed_at(self) -> datetime | None:
        return self._existed_at

    @property
    def tunnel_id(self) -> uuid.UUID | None:
        return self._tunnel_id

    @property
    def deleted_included(self) -> bool:
        return self._include_deleted

    def matches(self, tunnel: Tunnel) -> bool:
        """Evaluate every predicate against a tunnel.

        Args:
            tunnel: Tunnel to test

        Returns:
            True if the tunnel satisfies all predicates
        """
        if not self._include_deleted and tunnel.is_deleted:
            return False

        if self._name is not None and tunnel.name != self._name:
            return False

        if self._tunnel_id is not None and tunnel.id != self._tunnel_id:
            return False

        if self._existed_at is not None:
            if tunnel.created_at > self._existed_at:
                return False
            if tunnel.deleted_at is not None and tunnel.deleted_at <= self._existed_at:
                return False

        return True

    def to_query_params(self) -> dict[str, str]:
        """Encode the filter as control-plane query parameters."""
        params: dict[str, str] = {}
        if not self._include_deleted:
            params["is_deleted"] = "false"
        if self._name is not None:
            params["name"] = self._name
        if self._existed_at is not None:
            params["existed_at"] = self._existed_at.astimezone(timezone.utc).strftime(
                TIME_LAYOUT
            )
        if self._tunnel_id is not None:
            params["uuid"] = str(self._tunnel_id)
        return params

    def __repr__(self) -> str:
        return f"TunnelFilter({self.to_query_params()!r})"
