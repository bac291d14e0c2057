"""Route construction from command arguments and route result summaries."""

from collections.abc import Sequence

from .exceptions import UnrecognizedRouteTypeError, UsageError, ValidationError
from .models import (
    Change,
    DNSRoute,
    DNSRouteResult,
    LBRoute,
    LBRouteResult,
    Route,
    RouteResult,
)
from .validation import validate_hostname, validate_name

ROUTE_TYPE_INDEX = 0
TUNNEL_INDEX = 1
HOSTNAME_INDEX = 2
POOL_INDEX = 3

DNS_ROUTE_NARGS = 3
LB_ROUTE_NARGS = 4


def build_dns_route(args: Sequence[str], overwrite_existing: bool = False) -> DNSRoute:
    """Build a DNS route from ``dns TUNNEL HOSTNAME``.

    Args:
        args: Positional route arguments, route type included
        overwrite_existing: Replace an existing record for the hostname

    Returns:
        DNSRoute for the hostname

    Raises:
        UsageError: If the argument count is wrong or the hostname is empty
        ValidationError: If the hostname is not valid
    """
    if len(args) != DNS_ROUTE_NARGS:
        raise UsageError(f"Expected {DNS_ROUTE_NARGS} arguments, got {len(args)}")

    hostname = args[HOSTNAME_INDEX]
    if not hostname:
        raise UsageError("The third argument should be the hostname")
    if not validate_hostname(hostname, allow_wildcard=True):
        raise ValidationError(f"{hostname} is not a valid hostname")

    return DNSRoute(hostname=hostname, overwrite_existing=overwrite_existing)


def build_lb_route(args: Sequence[str]) -> LBRoute:
    """Build a load balancer route from ``lb TUNNEL HOSTNAME POOL``.

    Args:
        args: Positional route arguments, route type included

    Returns:
        LBRoute for the load balancer and pool

    Raises:
        UsageError: If the argument count is wrong or an argument is empty
        ValidationError: If the load balancer or pool name is not valid
    """
    if len(args) != LB_ROUTE_NARGS:
        raise UsageError(f"Expected {LB_ROUTE_NARGS} arguments, got {len(args)}")

    lb_name = args[HOSTNAME_INDEX]
    if not lb_name:
        raise UsageError("The third argument should be the load balancer name")
    if not validate_hostname(lb_name, allow_wildcard=True):
        raise ValidationError(f"{lb_name} is not a valid load balancer name")

    pool = args[POOL_INDEX]
    if not pool:
        raise UsageError("The fourth argument should be the pool name")
    if not validate_name(pool, allow_wildcard=False):
        raise ValidationError(f"{pool} is not a valid pool name")

    return LBRoute(hostname=lb_name, pool_name=pool)


def route_from_args(args: Sequence[str], overwrite_dns: bool = False) -> Route:
    """Dispatch on the route type token and build the matching route.

    Args:
        args: ``dns TUNNEL HOSTNAME`` or ``lb TUNNEL HOSTNAME POOL``
        overwrite_dns: Passed to DNS routes

    Raises:
        UsageError: If fewer than two arguments are given
        UnrecognizedRouteTypeError: If the route type is not dns or lb
    """
    if len(args) < 2:
        raise UsageError(
            "route requires the first argument to be the route type (dns or lb), "
            "followed by the ID or name of the tunnel"
        )

    route_type = args[ROUTE_TYPE_INDEX]
    match route_type:
        case "dns":
            return build_dns_route(args, overwrite_dns)
        case "lb":
            return build_lb_route(args)
        case _:
            raise UnrecognizedRouteTypeError(
                f"{route_type} is not a recognized route type. "
                "Supported route types are dns and lb"
            )


def _dns_summary(result: DNSRouteResult) -> str:
    match result.change:
        case Change.NEW:
            return f"Added CNAME {result.hostname} which will route to this tunnel"
        case Change.UPDATED:
            return f"{result.hostname} updated to route to your tunnel"
        case _:
            return f"{result.hostname} is already configured to route to your tunnel"


def _lb_summary(result: LBRouteResult) -> str:
    lb, pool = result.hostname, result.pool_name
    match (result.load_balancer_change, result.pool_change):
        case (Change.NEW, Change.NEW):
            return (
                f"Created load balancer {lb} and added a new pool {pool} "
                "with this tunnel as an origin"
            )
        case (Change.NEW, _):
            return (
                f"Created load balancer {lb} with an existing pool {pool} "
                "which has this tunnel as an origin"
            )
        case (Change.UPDATED, Change.NEW):
            return (
                f"Added new pool {pool} with this tunnel as an origin "
                f"to load balancer {lb}"
            )
        case (Change.UPDATED, Change.UPDATED):
            return (
                f"Load balancer {lb} was updated to use pool {pool} "
                "with this tunnel as an origin"
            )
        case (Change.UPDATED, Change.UNCHANGED):
            return (
                f"Added pool {pool} with this tunnel as an origin "
                f"to load balancer {lb}"
            )
        case (Change.UNCHANGED, Change.UPDATED):
            return (
                f"Added this tunnel as an origin in pool {pool} "
                f"which is already used by load balancer {lb}"
            )
        case (Change.UNCHANGED, Change.UNCHANGED):
            return (
                f"Load balancer {lb} already uses pool {pool} "
                "which has this tunnel as an origin"
            )
        case _:
            return (
                f"Something went wrong: failed to modify load balancer {lb} "
                f"with pool {pool}; please check the traffic manager configuration"
            )


def success_summary(result: RouteResult) -> str:
    """Describe what applying a route did, for logging."""
    match result:
        case DNSRouteResult():
            return _dns_summary(result)
        case LBRouteResult():
            return _lb_summary(result)
    raise TypeError(f"unsupported route result {type(result).__name__}")


def route_description(route: Route) -> str:
    """Describe a route before it is applied."""
    match route:
        case DNSRoute(hostname=hostname, overwrite_existing=overwrite):
            suffix = " (overwriting existing records)" if overwrite else ""
            return f"CNAME {hostname}{suffix}"
        case LBRoute(hostname=hostname, pool_name=pool):
            return f"load balancer {hostname} with pool {pool}"
    raise TypeError(f"unsupported route {type(route).__name__}")
