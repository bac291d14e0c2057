"""Tests for the local control-plane backend."""

import uuid

import pytest

from tunnelctl.config import RunOptions
from tunnelctl.exceptions import TunnelNotFoundError, TunnelStoreError
from tunnelctl.filters import TunnelFilter
from tunnelctl.models import Change, Credentials, DNSRoute, LBRoute
from tunnelctl.store import LocalTunnelRunner, LocalTunnelStore

SECRET = b"s" * 32


def credentials_for(store, tunnel):
    return Credentials(
        account_tag=store.account_tag,
        tunnel_secret=SECRET,
        tunnel_id=tunnel.id,
        tunnel_name=tunnel.name,
    )


class TestCreateAndList:
    def test_create_tunnel(self, store):
        tunnel = store.create_tunnel("web", SECRET)

        assert tunnel.name == "web"
        assert tunnel.deleted_at is None
        assert store.get_tunnel(tunnel.id) == tunnel

    def test_secret_length_checked(self, store):
        with pytest.raises(TunnelStoreError, match="32 bytes"):
            store.create_tunnel("web", b"short")

    def test_duplicate_live_name_rejected(self, store):
        store.create_tunnel("web", SECRET)

        with pytest.raises(TunnelStoreError, match="already exists"):
            store.create_tunnel("web", SECRET)

    def test_name_reusable_after_delete(self, store):
        first = store.create_tunnel("web", SECRET)
        store.delete_tunnel(first.id)

        second = store.create_tunnel("web", SECRET)

        assert second.id != first.id

    def test_list_applies_filter(self, store):
        web = store.create_tunnel("web", SECRET)
        api = store.create_tunnel("api", SECRET)
        store.delete_tunnel(api.id)

        assert [t.id for t in store.list_tunnels(TunnelFilter())] == [web.id]
        assert len(store.list_tunnels(TunnelFilter().include_deleted())) == 2
        assert store.list_tunnels(TunnelFilter().by_name("api")) == []

    def test_unknown_tunnel(self, store):
        with pytest.raises(TunnelNotFoundError):
            store.get_tunnel(uuid.uuid4())


class TestConnectors:
    def test_runner_registers_connections(self, store):
        tunnel = store.create_tunnel("web", SECRET)
        runner = LocalTunnelRunner(store, colos=("LAX", "JFK"))

        connector = runner.run(credentials_for(store, tunnel), RunOptions(features=("a",)))

        assert store.list_active_connectors(tunnel.id) == [connector]
        assert connector.features == ["a"]
        assert len(store.get_tunnel(tunnel.id).connections) == 4
        assert {c.colo_name for c in connector.connections} == {"LAX", "JFK"}

    def test_runner_rejects_foreign_credentials(self, store):
        tunnel = store.create_tunnel("web", SECRET)
        credentials = credentials_for(store, tunnel).model_copy(
            update={"account_tag": "someone-else"}
        )

        with pytest.raises(TunnelStoreError, match="different account"):
            LocalTunnelRunner(store).run(credentials, RunOptions())

    def test_delete_refused_with_connections(self, store):
        tunnel = store.create_tunnel("web", SECRET)
        LocalTunnelRunner(store).run(credentials_for(store, tunnel), RunOptions())

        with pytest.raises(TunnelStoreError, match="active connections"):
            store.delete_tunnel(tunnel.id)

        store.cleanup_connections(tunnel.id)
        store.delete_tunnel(tunnel.id)
        assert store.get_tunnel(tunnel.id).is_deleted

    def test_cleanup_single_connector(self, store):
        tunnel = store.create_tunnel("web", SECRET)
        runner = LocalTunnelRunner(store)
        first = runner.run(credentials_for(store, tunnel), RunOptions())
        second = runner.run(credentials_for(store, tunnel), RunOptions())

        store.cleanup_connections(tunnel.id, first.id)

        assert store.list_active_connectors(tunnel.id) == [second]

    def test_cleanup_unknown_connector(self, store):
        tunnel = store.create_tunnel("web", SECRET)

        with pytest.raises(TunnelStoreError, match="is not running tunnel"):
            store.cleanup_connections(tunnel.id, uuid.uuid4())


class TestRoutes:
    def test_dns_route_lifecycle(self, store):
        web = store.create_tunnel("web", SECRET)
        api = store.create_tunnel("api", SECRET)
        route = DNSRoute(hostname="app.example.com")

        assert store.route_tunnel(web.id, route).change == Change.NEW
        assert store.route_tunnel(web.id, route).change == Change.UNCHANGED

        with pytest.raises(TunnelStoreError, match="record with that host already exists"):
            store.route_tunnel(api.id, route)

        overwrite = DNSRoute(hostname="app.example.com", overwrite_existing=True)
        assert store.route_tunnel(api.id, overwrite).change == Change.UPDATED

    def test_lb_route_changes(self, store):
        web = store.create_tunnel("web", SECRET)
        api = store.create_tunnel("api", SECRET)

        result = store.route_tunnel(web.id, LBRoute(hostname="lb.example.com", pool_name="p1"))
        assert (result.load_balancer_change, result.pool_change) == (Change.NEW, Change.NEW)

        result = store.route_tunnel(api.id, LBRoute(hostname="lb.example.com", pool_name="p1"))
        assert (result.load_balancer_change, result.pool_change) == (
            Change.UNCHANGED,
            Change.UPDATED,
        )

        result = store.route_tunnel(web.id, LBRoute(hostname="lb.example.com", pool_name="p2"))
        assert (result.load_balancer_change, result.pool_change) == (
            Change.UPDATED,
            Change.NEW,
        )

    def test_route_deleted_tunnel(self, store):
        tunnel = store.create_tunnel("web", SECRET)
        store.delete_tunnel(tunnel.id)

        with pytest.raises(TunnelStoreError, match="is deleted"):
            store.route_tunnel(tunnel.id, DNSRoute(hostname="a.example.com"))


class TestStateFile:
    def test_state_persisted(self, tmp_path):
        state_file = tmp_path / "state" / "state.json"
        store = LocalTunnelStore(str(state_file))
        tunnel = store.create_tunnel("web", SECRET)
        store.route_tunnel(tunnel.id, DNSRoute(hostname="app.example.com"))

        reloaded = LocalTunnelStore(str(state_file))

        assert reloaded.account_tag == store.account_tag
        assert reloaded.get_tunnel(tunnel.id) == tunnel
        assert (
            reloaded.route_tunnel(tunnel.id, DNSRoute(hostname="app.example.com")).change
            == Change.UNCHANGED
        )

    def test_memory_only_store_writes_nothing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        store = LocalTunnelStore()

        store.create_tunnel("web", SECRET)

        assert list(tmp_path.iterdir()) == []
