from __future__ import annotations

from typing import Any, Callable, List, Optional


def _from_array(payload: Any) -> Optional[Any]:
    # Helius raw/enhanced webhooks: [ {signature, ...}, ... ]
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        return payload[0].get("signature")
    return None


def _from_event_transaction(payload: Any) -> Optional[Any]:
    # { "event": { "transaction": [ {signature, ...} ] } }
    if not isinstance(payload, dict):
        return None
    event = payload.get("event")
    if not isinstance(event, dict):
        return None
    txs = event.get("transaction")
    if isinstance(txs, list) and txs and isinstance(txs[0], dict):
        return txs[0].get("signature")
    return None


def _from_top_level(payload: Any) -> Optional[Any]:
    if isinstance(payload, dict):
        return payload.get("signature")
    return None


# Checked in order; first usable signature wins.
SIGNATURE_EXTRACTORS: List[Callable[[Any], Optional[Any]]] = [
    _from_array,
    _from_event_transaction,
    _from_top_level,
]


def find_signature(payload: Any) -> Optional[str]:
    for extract in SIGNATURE_EXTRACTORS:
        sig = extract(payload)
        if isinstance(sig, str) and sig.strip():
            return sig.strip()
    return None
