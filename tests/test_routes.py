"""Tests for route construction and summaries."""

import pytest

from tunnelctl.exceptions import UnrecognizedRouteTypeError, UsageError, ValidationError
from tunnelctl.models import Change, DNSRoute, DNSRouteResult, LBRoute, LBRouteResult
from tunnelctl.routes import (
    build_dns_route,
    build_lb_route,
    route_description,
    route_from_args,
    success_summary,
)


class TestBuildDNSRoute:
    def test_valid_route(self):
        route = build_dns_route(["dns", "my-tunnel", "app.example.com"], overwrite_existing=True)

        assert route == DNSRoute(hostname="app.example.com", overwrite_existing=True)
        assert "app.example.com" in route_description(route)

    def test_wildcard_hostname(self):
        route = build_dns_route(["dns", "my-tunnel", "*.example.com"])

        assert route.hostname == "*.example.com"
        assert route.overwrite_existing is False

    def test_wrong_argument_count(self):
        with pytest.raises(UsageError, match="Expected 3 arguments, got 2"):
            build_dns_route(["dns", "my-tunnel"])

        with pytest.raises(UsageError, match="Expected 3 arguments, got 4"):
            build_dns_route(["dns", "my-tunnel", "a.example.com", "extra"])

    def test_empty_hostname(self):
        with pytest.raises(UsageError, match="third argument should be the hostname"):
            build_dns_route(["dns", "my-tunnel", ""])

    def test_invalid_hostname(self):
        with pytest.raises(ValidationError, match="bad host.com is not a valid hostname"):
            build_dns_route(["dns", "my-tunnel", "bad host.com"])


class TestBuildLBRoute:
    def test_valid_route(self):
        route = build_lb_route(["lb", "my-tunnel", "lb.example.com", "pool-1"])

        assert route == LBRoute(hostname="lb.example.com", pool_name="pool-1")

    def test_wrong_argument_count(self):
        with pytest.raises(UsageError, match="Expected 4 arguments, got 3"):
            build_lb_route(["lb", "my-tunnel", "lb.example.com"])

    def test_empty_arguments(self):
        with pytest.raises(UsageError, match="load balancer name"):
            build_lb_route(["lb", "my-tunnel", "", "pool"])

        with pytest.raises(UsageError, match="pool name"):
            build_lb_route(["lb", "my-tunnel", "lb.example.com", ""])

    def test_invalid_load_balancer_name(self):
        with pytest.raises(ValidationError, match="is not a valid load balancer name"):
            build_lb_route(["lb", "my-tunnel", "-lb.example.com", "pool"])

    def test_wildcard_pool_rejected(self):
        with pytest.raises(ValidationError, match=r"\*pool is not a valid pool name"):
            build_lb_route(["lb", "my-tunnel", "lb.example.com", "*pool"])


class TestRouteFromArgs:
    def test_dispatch_dns(self):
        route = route_from_args(["dns", "t", "app.example.com"], overwrite_dns=True)

        assert isinstance(route, DNSRoute)
        assert route.overwrite_existing is True

    def test_dispatch_lb(self):
        route = route_from_args(["lb", "t", "lb.example.com", "pool"], overwrite_dns=True)

        assert isinstance(route, LBRoute)

    def test_unrecognized_route_type(self):
        with pytest.raises(UnrecognizedRouteTypeError, match="ip is not a recognized route type"):
            route_from_args(["ip", "t", "10.0.0.0/8"])

    def test_unrecognized_route_type_is_usage_error(self):
        with pytest.raises(UsageError):
            route_from_args(["cname", "t", "a.example.com"])

    def test_too_few_arguments(self):
        with pytest.raises(UsageError, match="route type"):
            route_from_args(["dns"])


class TestSuccessSummary:
    @pytest.mark.parametrize(
        "change,expected",
        [
            (Change.NEW, "Added CNAME app.example.com which will route to this tunnel"),
            (Change.UPDATED, "app.example.com updated to route to your tunnel"),
            (Change.UNCHANGED, "app.example.com is already configured to route to your tunnel"),
        ],
    )
    def test_dns_summary(self, change, expected):
        result = DNSRouteResult(hostname="app.example.com", change=change)

        assert success_summary(result) == expected

    def test_lb_summary_new(self):
        result = LBRouteResult(
            hostname="lb.example.com",
            pool_name="pool",
            load_balancer_change=Change.NEW,
            pool_change=Change.NEW,
        )

        assert success_summary(result) == (
            "Created load balancer lb.example.com and added a new pool pool "
            "with this tunnel as an origin"
        )

    def test_lb_summary_unchanged(self):
        result = LBRouteResult(
            hostname="lb.example.com",
            pool_name="pool",
            load_balancer_change=Change.UNCHANGED,
            pool_change=Change.UNCHANGED,
        )

        assert "already uses pool pool" in success_summary(result)

    def test_lb_summary_unexpected_combination(self):
        result = LBRouteResult(
            hostname="lb.example.com",
            pool_name="pool",
            load_balancer_change=Change.UNCHANGED,
            pool_change=Change.NEW,
        )

        assert success_summary(result).startswith("Something went wrong")

    def test_variants_render_differently(self):
        dns = DNSRouteResult(hostname="x.example.com", change=Change.NEW)
        lb = LBRouteResult(
            hostname="x.example.com",
            pool_name="pool",
            load_balancer_change=Change.NEW,
            pool_change=Change.NEW,
        )

        assert success_summary(dns) != success_summary(lb)
