"""Fetch EVM step traces from a node over JSON-RPC.

Works against any node exposing geth's ``debug_traceTransaction`` with the
default struct logger (geth, anvil, hardhat node, erigon).
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from solcover.core.config import get_settings
from solcover.core.errors import TraceFetchError

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)

# Memory and storage are irrelevant for probe collection and dominate
# the trace size.
_TRACER_OPTIONS = {
    "disableStorage": True,
    "disableMemory": True,
    "enableMemory": False,
    "disableStack": False,
    "enableReturnData": False,
}


def fetch_struct_logs(
    tx_hash: str,
    rpc_url: str | None = None,
    *,
    client: httpx.Client | None = None,
) -> list[dict[str, Any]]:
    """Return the struct logs of a mined transaction.

    Raises:
        TraceFetchError: on transport errors or a JSON-RPC error response
    """
    settings = get_settings()
    url = rpc_url or settings.rpc_url
    payload = {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": "debug_traceTransaction",
        "params": [tx_hash, _TRACER_OPTIONS],
    }

    owns_client = client is None
    http = client or httpx.Client(timeout=settings.rpc_timeout_seconds)
    try:
        response = http.post(url, json=payload)
        response.raise_for_status()
        body = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise TraceFetchError(f"Failed to trace {tx_hash}: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    if body.get("error"):
        error = body["error"]
        message = error.get("message", error) if isinstance(error, dict) else error
        raise TraceFetchError(
            f"Node rejected debug_traceTransaction for {tx_hash}: {message}",
            response=body,
        )

    struct_logs = (body.get("result") or {}).get("structLogs", [])
    logger.debug("Fetched %d trace steps for %s", len(struct_logs), tx_hash)
    return struct_logs
