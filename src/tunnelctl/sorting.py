"""Sorting of tunnel and connector listings.

Sort keys are closed enums. An unknown key never fails a command: the
default key is used instead and the result is flagged so the caller can warn.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from .models import Connector, Tunnel

T = TypeVar("T")

# Unix time of 0001-01-01T00:00:00Z, used for a missing timestamp
ZERO_TIME_UNIX = -62135596800


class TunnelSortField(str, Enum):
    """Fields a tunnel list can be sorted by."""

    NAME = "name"
    ID = "id"
    CREATED_AT = "createdAt"
    DELETED_AT = "deletedAt"
    NUM_CONNECTIONS = "numConnections"

    @classmethod
    def options(cls) -> str:
        return ", ".join(field.value for field in cls)


class ConnectorSortField(str, Enum):
    """Fields a tunnel's connector list can be sorted by."""

    ID = "id"
    CREATED_AT = "createdAt"
    NUM_CONNECTIONS = "numConnections"
    VERSION = "version"

    @classmethod
    def options(cls) -> str:
        return ", ".join(field.value for field in cls)


DEFAULT_TUNNEL_SORT_FIELD = TunnelSortField.NAME
DEFAULT_CONNECTOR_SORT_FIELD = ConnectorSortField.CREATED_AT


@dataclass(frozen=True)
class SortResult(Generic[T]):
    """Sorted records plus the field that was actually used."""

    records: list[T]
    field: Enum
    invalid_field: bool = False


def _unix(ts: datetime | None) -> int:
    if ts is None:
        return ZERO_TIME_UNIX
    return int(ts.timestamp())


_TUNNEL_KEYS: dict[TunnelSortField, Callable[[Tunnel], Any]] = {
    TunnelSortField.NAME: lambda t: t.name,
    TunnelSortField.ID: lambda t: str(t.id),
    TunnelSortField.CREATED_AT: lambda t: _unix(t.created_at),
    TunnelSortField.DELETED_AT: lambda t: _unix(t.deleted_at),
    TunnelSortField.NUM_CONNECTIONS: lambda t: len(t.connections),
}

_CONNECTOR_KEYS: dict[ConnectorSortField, Callable[[Connector], Any]] = {
    ConnectorSortField.ID: lambda c: str(c.id),
    ConnectorSortField.CREATED_AT: lambda c: _unix(c.run_at),
    ConnectorSortField.NUM_CONNECTIONS: lambda c: len(c.connections),
    ConnectorSortField.VERSION: lambda c: c.version,
}


def _resolve_field(field_type: type[Enum], sort_by: str, default: Enum) -> tuple[Enum, bool]:
    try:
        return field_type(sort_by), False
    except ValueError:
        return default, True


def _sort(
    records: Iterable[T], key: Callable[[T], Any], invert: bool
) -> list[T]:
    ordered = sorted(records, key=key)
    if invert:
        # negated comparison: equal keys come out in reverse order too
        ordered.reverse()
    return ordered


def sort_tunnels(
    tunnels: Iterable[Tunnel], sort_by: str = "name", invert: bool = False
) -> SortResult[Tunnel]:
    """Sort tunnels by one of :class:`TunnelSortField`.

    Args:
        tunnels: Tunnels to sort
        sort_by: Field name; unknown names fall back to ``name``
        invert: Sort in descending order

    Returns:
        SortResult with the ordered tunnels
    """
    field, invalid = _resolve_field(TunnelSortField, sort_by, DEFAULT_TUNNEL_SORT_FIELD)
    records = _sort(tunnels, _TUNNEL_KEYS[field], invert)  # type: ignore[index]
    return SortResult(records=records, field=field, invalid_field=invalid)


def sort_connectors(
    connectors: Iterable[Connector], sort_by: str = "createdAt", invert: bool = False
) -> SortResult[Connector]:
    """Sort connectors by one of :class:`ConnectorSortField`.

    Args:
        connectors: Connectors to sort
        sort_by: Field name; unknown names fall back to ``createdAt``
        invert: Sort in descending order

    Returns:
        SortResult with the ordered connectors
    """
    field, invalid = _resolve_field(
        ConnectorSortField, sort_by, DEFAULT_CONNECTOR_SORT_FIELD
    )
    records = _sort(connectors, _CONNECTOR_KEYS[field], invert)  # type: ignore[index]
    return SortResult(records=records, field=field, invalid_field=invalid)


def invalid_sort_field_message(sort_by: str, result: SortResult[Any]) -> str:
    """Build the warning shown when a sort key was not recognized."""
    field_type = type(result.field)
    options = field_type.options()  # type: ignore[attr-defined]
    return (
        f"{sort_by} is not a valid sort field. Valid sort fields are {options}. "
        f"Defaulting to '{result.field.value}'."
    )
