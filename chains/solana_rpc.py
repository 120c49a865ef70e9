from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, Optional

import requests

from core.models import ParsedTransaction


log = logging.getLogger(__name__)

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"


INVALID_PARAMS = -32602


class LedgerUnavailable(Exception):
    """The RPC node could not answer; retrying later may succeed."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code  # JSON-RPC error code, when the node sent one


class SolanaRpcClient:
    """
    Minimal JSON-RPC client for getTransaction.

      POST {rpc_url}  {"method": "getTransaction", "params": [sig, {...}]}

    Returns None when the node reports no such (confirmed) transaction and
    raises LedgerUnavailable for transport / RPC failures, so callers can tell
    a bad signature from a flaky node.
    """

    def __init__(
        self,
        rpc_url: str = MAINNET_RPC_URL,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    def _call(self, method: str, params: list) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            r = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as e:
            raise LedgerUnavailable(f"{method} request failed: {e}") from e
        except ValueError as e:
            raise LedgerUnavailable(f"{method} returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise LedgerUnavailable(f"{method} returned an unexpected body: {data!r}")
        err = data.get("error")
        if err:
            code = err.get("code") if isinstance(err, dict) else None
            raise LedgerUnavailable(f"{method} RPC error: {err}", code=code)
        return data.get("result")

    def get_transaction(self, signature: str) -> Optional[ParsedTransaction]:
        try:
            result = self._call(
                "getTransaction",
                [
                    signature,
                    {
                        "encoding": "jsonParsed",
                        "commitment": "confirmed",
                        "maxSupportedTransactionVersion": 0,
                    },
                ],
            )
        except LedgerUnavailable as e:
            # malformed signature: no such transaction can ever exist
            if e.code == INVALID_PARAMS:
                log.info("getTransaction: %s rejected as invalid: %s", signature, e)
                return None
            raise
        if not isinstance(result, dict):
            log.info("getTransaction: %s not found at confirmed commitment", signature)
            return None
        return ParsedTransaction.from_rpc(result)
