import os
import sys
import threading

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "common/layers/record-sink/python"))
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")


class FakeElasticsearch:
    """Stands in for ``elasticsearch.Elasticsearch`` in unit tests."""

    instances = []

    def __init__(self, *hosts, **kwargs):
        self.hosts = hosts
        self.kwargs = kwargs
        self.bulk_calls = []
        self.request_timeouts = []
        self.bulk_response = {"errors": False, "items": []}
        self.bulk_exc = None
        self.info_response = {"version": {"number": "8.13.0"}}
        self.info_exc = None
        self.closed = False
        self._timeout = None
        FakeElasticsearch.instances.append(self)

    def options(self, request_timeout=None, **kwargs):
        self._timeout = request_timeout
        return self

    def bulk(self, operations=None, **kwargs):
        self.request_timeouts.append(self._timeout)
        self.bulk_calls.append(operations)
        if self.bulk_exc is not None:
            raise self.bulk_exc
        return self.bulk_response

    def info(self, **kwargs):
        if self.info_exc is not None:
            raise self.info_exc
        return self.info_response

    def close(self):
        self.closed = True


class FakeSSM:
    class exceptions:
        class ParameterNotFound(Exception):
            pass

    def __init__(self):
        self.params = {}
        self.calls = []
        self._lock = threading.Lock()

    def get_parameter(self, Name, WithDecryption=False):
        self.calls.append(Name)
        if Name not in self.params:
            raise self.exceptions.ParameterNotFound(Name)
        return {"Parameter": {"Name": Name, "Value": self.params[Name]}}


@pytest.fixture
def fake_es():
    FakeElasticsearch.instances = []
    return FakeElasticsearch


@pytest.fixture
def ssm_stub(monkeypatch):
    import record_sink.get_ssm as g
    stub = FakeSSM()
    g._SSM_CACHE.clear()
    monkeypatch.setattr(g, "_ssm_client", stub)
    yield stub
    g._SSM_CACHE.clear()


@pytest.fixture(autouse=True)
def clean_sink_env(monkeypatch):
    for name in (
        "SSM_PARAMETER_PREFIX",
        "ELASTICSEARCH_HOST",
        "ES_BULK_TIMEOUT",
        "ES_INDEX",
        "ES_INDEX_COLUMN",
        "ES_DOC_ID_COLUMN",
        "ES_BLACKLISTED_COLUMNS",
        "ELASTICSEARCH_USER",
        "ELASTICSEARCH_PASSWORD",
        "ELASTICSEARCH_PASSWORD_SECRET_NAME",
        "ES_INCLUDE_DOC_TYPE",
        "LOG_LEVEL",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
