import base64
import importlib.util
import json

import pytest
from elastic_transport import ConnectionError as TransportConnectionError

from record_sink import ElasticsearchClient, RecordSink, SinkConfig


def load_module(name, path):
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _msg(topic, partition, offset, payload):
    return {
        "topic": topic,
        "partition": partition,
        "offset": offset,
        "timestamp": 1704067200000,
        "timestampType": "CREATE_TIME",
        "value": base64.b64encode(json.dumps(payload).encode()).decode(),
        "headers": [],
    }


def _event(*messages):
    records = {}
    for m in messages:
        records.setdefault(f"{m['topic']}-{m['partition']}", []).append(m)
    return {"eventSource": "aws:kafka", "records": records}


@pytest.fixture
def injector(monkeypatch, fake_es):
    module = load_module("injector", "services/record-sink/injector-lambda/app.py")

    def install(**config):
        cfg = SinkConfig(**config)
        sink = RecordSink(cfg, ElasticsearchClient(cfg, factory=fake_es))
        monkeypatch.setattr(module, "sink", sink)
        return sink

    module.install = install
    install()
    return module


def test_insert_event(injector, fake_es):
    injector.install(blacklisted_columns=frozenset({"card"}))
    event = _event(
        _msg("orders", 1, 5, {"id": "b", "card": "4111"}),
        _msg("orders", 0, 9, {"id": "a"}),
    )
    out = injector.lambda_handler(event, {})
    assert out == {"statusCode": 200, "body": {"inserted": 2}}

    ops = fake_es.instances[0].bulk_calls[0]
    assert ops[0] == {"index": {"_index": "orders-2024-01-01", "_id": "orders:0:9"}}
    assert ops[1] == {"id": "a"}
    assert ops[2] == {"index": {"_index": "orders-2024-01-01", "_id": "orders:1:5"}}
    assert ops[3] == {"id": "b"}


def test_insert_missing_column(injector, fake_es):
    injector.install(index_column="region")
    out = injector.lambda_handler(_event(_msg("orders", 0, 1, {"id": "a"})), {})
    assert out["statusCode"] == 422
    assert fake_es.instances == []


def test_insert_bad_payload(injector):
    msg = _msg("orders", 0, 1, {})
    msg["value"] = base64.b64encode(b"[1, 2]").decode()
    out = injector.lambda_handler(_event(msg), {})
    assert out["statusCode"] == 400


def test_insert_invalid_event(injector):
    out = injector.lambda_handler({"records": {"orders-0": [{"topic": "orders"}]}}, {})
    assert out["statusCode"] == 400
    assert out["body"]["error"] == "Invalid event"


def test_insert_partial_failure_lists_all(injector):
    sink = injector.sink
    sink.get_client().bulk_response = {
        "errors": True,
        "items": [
            {"index": {"_index": "orders-2024-01-01", "_id": "orders:0:1", "status": 400, "error": {"reason": "one"}}},
            {"index": {"_index": "orders-2024-01-01", "_id": "orders:0:2", "status": 400, "error": {"reason": "two"}}},
        ],
    }
    out = injector.lambda_handler(
        _event(_msg("orders", 0, 1, {}), _msg("orders", 0, 2, {})), {}
    )
    assert out["statusCode"] == 502
    assert len(out["body"]["failures"]) == 2


def test_insert_connection_failure(injector, monkeypatch):
    def broken(*a, **k):
        raise ValueError("bad host")

    cfg = SinkConfig()
    monkeypatch.setattr(injector, "sink", RecordSink(cfg, ElasticsearchClient(cfg, factory=broken)))
    out = injector.lambda_handler(_event(_msg("orders", 0, 1, {})), {})
    assert out["statusCode"] == 503


def test_readiness(injector):
    out = injector.lambda_handler({"operation": "readiness"}, {})
    assert out == {"statusCode": 200, "body": {"ready": True}}

    injector.sink.get_client().info_exc = TransportConnectionError("refused")
    out = injector.lambda_handler({"operation": "readiness"}, {})
    assert out == {"statusCode": 503, "body": {"ready": False}}


def test_unsupported_operation(injector):
    out = injector.lambda_handler({"operation": "drop-index"}, {})
    assert out["statusCode"] == 400


def test_insert_out_of_range_timestamp(injector, fake_es):
    msg = _msg("orders", 0, 1, {"id": "a"})
    msg["timestamp"] = 10**20
    out = injector.lambda_handler(_event(msg), {})
    assert out["statusCode"] == 400
    assert fake_es.instances == []


def test_malformed_event_and_operation(injector):
    assert injector.lambda_handler(["not", "a", "dict"], {})["statusCode"] == 400
    assert injector.lambda_handler({"operation": 5}, {})["statusCode"] == 400
