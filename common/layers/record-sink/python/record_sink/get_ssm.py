"""Shared helpers for reading configuration from the environment and SSM."""

import logging
import os
from typing import Optional

import boto3

__author__ = "Koushik Sinha"
__version__ = "1.0.1"
__modified_by__ = "Koushik Sinha"

logger = logging.getLogger(__name__)

_ssm_client = None

# Simple in-memory cache so a warm Lambda container doesn't repeatedly hit SSM
_SSM_CACHE: dict[str, Optional[str]] = {}


def _get_ssm_client():
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def get_values_from_ssm(name: str, decrypt: bool = False) -> Optional[str]:
    """Retrieve a parameter value from SSM with optional decryption.

    Returns ``None`` when the parameter does not exist; misses are cached too.
    Any other failure is logged and re-raised.
    """
    if name in _SSM_CACHE:
        return _SSM_CACHE[name]
    client = _get_ssm_client()
    try:
        resp = client.get_parameter(Name=name, WithDecryption=decrypt)
    except client.exceptions.ParameterNotFound:
        logger.debug("Parameter %s not found", name)
        _SSM_CACHE[name] = None
        return None
    except Exception as exc:
        logger.error("Error retrieving parameter %s: %s", name, exc)
        raise
    value = resp["Parameter"]["Value"]
    _SSM_CACHE[name] = value
    logger.info("Loaded parameter %s", name)
    return value


def get_environment_prefix() -> Optional[str]:
    """Return the SSM path under which sink parameters live, if configured."""
    prefix = os.environ.get("SSM_PARAMETER_PREFIX")
    if not prefix:
        return None
    return prefix.rstrip("/")


def get_config(name: str, decrypt: bool = False) -> Optional[str]:
    """Return configuration ``name`` from the environment or SSM.

    The environment variable wins when set.  Otherwise, if
    ``SSM_PARAMETER_PREFIX`` is defined, the value is read from
    ``<prefix>/<name>`` in Parameter Store.
    """

    value = os.environ.get(name)
    if value is not None:
        return value

    prefix = get_environment_prefix()
    if prefix is None:
        return None
    return get_values_from_ssm(f"{prefix}/{name}", decrypt)
