"""Tests for the version auto-responder and client-side queries."""

import threading

import pytest

from iqversion import (
    IqBuilder,
    IqType,
    NAMESPACE,
    ServiceDiscovery,
    Version,
    VersionConfig,
    VersionManager,
    enable_version,
    unpack_frame,
)
from iqversion.builder import reply_to
from iqversion.filters import iq_type

OWN = Version("Responder", "3.1", "Linux")


@pytest.fixture
def peers(pair, registry):
    """(asker, responder, responder's manager) with an identity configured."""
    a, b = pair
    manager = registry.get_instance_for(b)
    manager.set_version(OWN)
    return a, b, manager


def send_get(a, b):
    iq = IqBuilder(a.jid).get().to(b.jid).build()
    a.send(iq)
    return iq


def replies(conn):
    return [unpack_frame(f) for f in conn.outbox]


# ===================================================================
# Auto-responder
# ===================================================================

class TestAutoResponder:

    def test_reply_correlates_with_query(self, peers):
        a, b, _ = peers
        query = send_get(a, b)
        [reply] = replies(b)
        assert reply.type == IqType.RESULT
        assert reply.transid == query.transid
        assert reply.sourceid == query.destid
        assert reply.destid == query.sourceid
        assert reply.payload == OWN

    def test_no_identity_never_replies(self, pair, registry, clock):
        a, b = pair
        registry.get_instance_for(b)
        for t in (0, 500, 1000):
            clock.now = t
            send_get(a, b)
        assert len(b.outbox) == 0

    def test_no_identity_does_not_count_toward_flood(self, pair, registry, clock):
        a, b = pair
        manager = registry.get_instance_for(b)
        clock.now = 0
        send_get(a, b)
        manager.set_version(OWN)
        clock.now = 10
        send_get(a, b)
        assert len(b.outbox) == 1

    def test_identity_xml_cannot_carry_is_rejected(self, peers, clock):
        a, b, manager = peers
        with pytest.raises(ValueError):
            manager.set_version(Version("ctl\x01x", "1"))
        assert manager.get_version() == OWN
        send_get(a, b)
        assert [r.payload for r in replies(b)] == [OWN]

    def test_clearing_identity_stops_replies(self, peers, clock):
        a, b, manager = peers
        send_get(a, b)
        manager.set_version(None)
        clock.now = 1000
        send_get(a, b)
        assert len(b.outbox) == 1

    def test_later_identity_does_not_touch_sent_reply(self, peers, clock):
        a, b, manager = peers
        send_get(a, b)
        manager.set_version(Version("Other", "9"))
        clock.now = 1000
        send_get(a, b)
        first, second = replies(b)
        assert first.payload == OWN
        assert second.payload == Version("Other", "9")

    def test_flood_guard_sequence(self, peers, clock):
        a, b, _ = peers
        for t in (0, 50, 150):
            clock.now = t
            send_get(a, b)
        # t=0 answered, t=50 dropped, t=150 answered (150 - 50 >= 100)
        assert len(b.outbox) == 2

    def test_zero_interval_answers_everything(self, peers, clock):
        a, b, manager = peers
        manager.min_interval_ms = 0
        for _ in range(5):
            send_get(a, b)
        assert len(b.outbox) == 5

    def test_results_are_not_answered(self, peers):
        a, b, _ = peers
        query = IqBuilder(b.jid).get().to(a.jid).build()
        a.send(reply_to(query, Version("x", "y")))
        assert len(b.outbox) == 0

    def test_malformed_query_gets_no_reply(self, peers):
        _, b, _ = peers
        b.receive_frame(b'<iq type="get" id="q1"><query xmlns="jabber:iq:version"><name>')
        assert len(b.outbox) == 0

    def test_send_failure_is_swallowed(self, peers, log_records):
        a, b, manager = peers
        query = IqBuilder(a.jid).get().to(b.jid).build()
        b.close()
        manager._on_query(query)
        assert any("failed to answer" in r["message"] for r in log_records)

    def test_concurrent_queries_reply_once_per_interval(self, peers, clock):
        a, b, _ = peers
        clock.now = 5000
        n = 12
        barrier = threading.Barrier(n)

        def worker():
            barrier.wait()
            b.dispatch(IqBuilder(a.jid).get().to(b.jid).build())

        threads = [threading.Thread(target=worker) for _ in range(n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(b.outbox) == 1


# ===================================================================
# Setup and discovery
# ===================================================================

class TestSetup:

    def test_advertises_namespace(self, pair, registry, discovery):
        registry.get_instance_for(pair[1])
        assert discovery.includes_feature(NAMESPACE)

    def test_advertising_can_be_disabled(self, pair):
        disco = ServiceDiscovery()
        VersionManager(pair[1], discovery=disco, config=VersionConfig(advertise=False))
        assert not disco.includes_feature(NAMESPACE)

    def test_config_interval(self, pair):
        manager = VersionManager(pair[1], discovery=ServiceDiscovery(), config=VersionConfig(min_interval_ms=250))
        assert manager.min_interval_ms == 250

    def test_enable_version(self, pair, registry):
        a, b = pair
        manager = enable_version(b, "Client", "1.0", os="Haiku", min_interval_ms=0, registry=registry)
        assert manager is registry.get_instance_for(b)
        assert len(registry) == 1
        assert manager.get_version() == Version("Client", "1.0", "Haiku")
        assert manager.min_interval_ms == 0

    def test_enable_version_defaults_os_to_platform(self, pair, registry):
        manager = enable_version(pair[1], "Client", "1.0", registry=registry)
        assert manager.get_version() == Version.local("Client", "1.0")


# ===================================================================
# Client-side queries
# ===================================================================

class TestQuery:

    def test_query_returns_peer_version(self, peers, registry):
        a, b, _ = peers
        asker = registry.get_instance_for(a)
        assert asker.query(b.jid, timeout=1.0) == OWN

    def test_request_returns_result_iq(self, peers, registry):
        a, b, _ = peers
        reply = registry.get_instance_for(a).request(b.jid, timeout=1.0)
        assert reply.type == IqType.RESULT
        assert reply.sourceid == b.jid

    def test_query_times_out_without_identity(self, pair, registry):
        a, b = pair
        registry.get_instance_for(b)
        assert registry.get_instance_for(a).query(b.jid, timeout=0.05) is None

    def test_error_reply(self, pair, registry):
        a, b = pair

        def refuse(iq):
            b.send(IqBuilder(b.jid).error(iq.transid, "service-unavailable").to(iq.sourceid).build())

        b.add_listener(refuse, iq_type(IqType.GET))
        asker = registry.get_instance_for(a)
        reply = asker.request(b.jid, timeout=1.0)
        assert reply.type == IqType.ERROR
        assert reply.error == "service-unavailable"
        assert asker.query(b.jid, timeout=1.0) is None

    def test_request_removes_its_listener(self, peers, registry):
        a, b, _ = peers
        asker = registry.get_instance_for(a)
        before = len(a._listeners)
        asker.request(b.jid, timeout=1.0)
        assert len(a._listeners) == before

    def test_request_on_collected_connection(self):
        import gc
        from iqversion.transports.loopback import LoopbackConnection

        conn = LoopbackConnection("gone@x")
        manager = VersionManager(conn, discovery=ServiceDiscovery())
        del conn
        gc.collect()
        with pytest.raises(RuntimeError):
            manager.request("b@x")
