# Module Metadata
__author__ = "Koushik Sinha"
__version__ = "1.0.0"
__modified_by__ = "Koushik Sinha"

from .logging_utils import configure_logger
from .get_ssm import get_values_from_ssm, get_environment_prefix, get_config
from .get_secret import get_secret
from .errors import (
    SinkError,
    FieldNotFound,
    RecordDecodeError,
    DatastoreConnectionError,
    WriteError,
    PartialWriteError,
)
from .models import Record, SinkConfig, parse_duration
from .elasticsearch_client import ElasticsearchClient
from .sink import RecordSink
from .error_utils import log_exception, error_response, lambda_response

__all__ = [
    "configure_logger",
    "get_values_from_ssm",
    "get_environment_prefix",
    "get_config",
    "get_secret",
    "SinkError",
    "FieldNotFound",
    "RecordDecodeError",
    "DatastoreConnectionError",
    "WriteError",
    "PartialWriteError",
    "Record",
    "SinkConfig",
    "parse_duration",
    "ElasticsearchClient",
    "RecordSink",
    "lambda_response",
    "log_exception",
    "error_response",
]
