import fakeredis
import redis

from poolsafe.payments.ledger import ProcessedEventLedger


def test_in_memory_ledger_detects_redelivery():
    ledger = ProcessedEventLedger(ttl_seconds=60)
    assert ledger.first_delivery("evt_1") is True
    assert ledger.first_delivery("evt_1") is False
    assert ledger.first_delivery("evt_2") is True


def test_missing_event_id_is_always_first_delivery():
    ledger = ProcessedEventLedger()
    assert ledger.first_delivery(None) is True
    assert ledger.first_delivery("") is True


def test_redis_ledger_uses_set_nx_with_ttl():
    client = fakeredis.FakeRedis(decode_responses=True)
    ledger = ProcessedEventLedger(client=client, ttl_seconds=120)

    assert ledger.first_delivery("evt_1") is True
    assert ledger.first_delivery("evt_1") is False
    key = "poolsafe:webhook:event:evt_1"
    assert client.get(key) == "1"
    assert 0 < client.ttl(key) <= 120


def test_redis_ledger_shared_between_instances():
    server = fakeredis.FakeServer()
    a = ProcessedEventLedger(client=fakeredis.FakeRedis(server=server))
    b = ProcessedEventLedger(client=fakeredis.FakeRedis(server=server))
    assert a.first_delivery("evt_shared") is True
    assert b.first_delivery("evt_shared") is False


def test_redis_error_is_treated_as_first_delivery(caplog):
    class _Down:
        def set(self, *args, **kwargs):
            raise redis.ConnectionError("connection refused")

    ledger = ProcessedEventLedger(client=_Down())
    with caplog.at_level("ERROR"):
        assert ledger.first_delivery("evt_1") is True
    assert "redis unavailable" in caplog.text
