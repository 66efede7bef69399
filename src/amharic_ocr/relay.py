"""Forward recognised text to the remote storage backend."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from amharic_ocr.errors import RelayError

logger = logging.getLogger(__name__)

USER_AGENT = "amharic-ocr-relay/1.0"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class RelayResponse:
    status: int
    data: dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def forward_text(
    url: str,
    text: str,
    metadata: Optional[dict[str, Any]] = None,
    api_key: Optional[str] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> RelayResponse:
    """POST ``{"text", "metadata"}`` as JSON to ``url``.

    HTTP error statuses are returned, not raised; only a missing ``text`` or a
    failed connection raises :class:`RelayError`.  A response body that is
    not JSON is wrapped as ``{"message": <body>}``.
    """
    if not isinstance(text, str) or not text:
        raise RelayError("Missing required field: text (non-empty string)")
    if not url:
        raise RelayError("No backend URL configured")

    headers = {"User-Agent": USER_AGENT}
    if api_key:
        headers["x-api-key"] = api_key
    payload = {"text": text, "metadata": metadata or {}}

    logger.info("Forwarding %d characters to %s", len(text), url)
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.Timeout as e:
        raise RelayError(f"Request to remote backend timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise RelayError(f"Failed to connect to remote backend: {e}") from e

    try:
        data = response.json() if response.content else {}
    except ValueError:
        data = {"message": response.text or "Success"}
    if not isinstance(data, dict):
        data = {"data": data}

    logger.info("Backend responded with HTTP %d", response.status_code)
    return RelayResponse(status=response.status_code, data=data)
