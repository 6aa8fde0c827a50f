"""Generative synthesis client.

Posts the user's intent to the external generation endpoint and returns the
blueprint document it answers with. Any failure is raised as
GenerationError; the composer decides what to do about it.

The endpoint answers either with the bare blueprint document or with the
envelope ``{"success": true, "data": {...}}``.
"""

import logging

import requests
from flask import current_app

from sitesmith.errors import GenerationError

logger = logging.getLogger(__name__)


def _get_generator_config():
    """Return generator config if an endpoint is configured, else None."""
    url = current_app.config.get("GENERATOR_API_URL")
    if not url:
        return None
    return {
        "url": url,
        "key": current_app.config.get("GENERATOR_API_KEY"),
        "timeout": current_app.config.get("GENERATOR_TIMEOUT", 60),
    }


def is_configured():
    return _get_generator_config() is not None


def generate_blueprint(intent):
    """Ask the generative service for a blueprint document.

    Args:
        intent: UserIntent

    Returns the raw blueprint dict (not yet schema-validated).
    Raises GenerationError on connection errors, timeouts, non-2xx
    responses and undecodable bodies.
    """
    config = _get_generator_config()
    if config is None:
        raise GenerationError("Generative service is not configured")

    headers = {"Content-Type": "application/json"}
    if config["key"]:
        headers["Authorization"] = f"Bearer {config['key']}"

    try:
        resp = requests.post(
            config["url"],
            json=intent.to_wire(),
            headers=headers,
            timeout=config["timeout"],
        )
        resp.raise_for_status()
        body = resp.json()
    except requests.RequestException as e:
        raise GenerationError(f"Generative service call failed: {e}") from e
    except ValueError as e:
        raise GenerationError("Generative service returned invalid JSON") from e

    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        if body.get("success") is False:
            raise GenerationError("Generative service reported failure")
        body = body["data"]

    if not isinstance(body, dict):
        raise GenerationError("Generative service returned a non-object document")

    logger.info(f"Generative blueprint received for {intent.business_name!r}")
    return body
