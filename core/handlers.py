from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from chains.solana_rpc import LedgerUnavailable, SolanaRpcClient
from core.extractor import extract_balance_change
from core.models import NOT_APPLICABLE, BalanceChange, WatchCriteria
from core.payloads import find_signature
from storage.supabase_store import StoreError


log = logging.getLogger(__name__)

SOURCE_STORE = "database"
SOURCE_LIVE = "live_solana_api"


@dataclass
class ServiceResponse:
    status: int
    body: Optional[Dict[str, Any]] = None


class TransactionService:
    """
    Orchestrates ledger fetch -> extraction -> (optional) store.

    With store=None this is the plain webhook server: queries always go to
    the ledger and webhooks are not persisted.
    """

    def __init__(
        self,
        ledger: SolanaRpcClient,
        criteria: WatchCriteria,
        store=None,
    ):
        self.ledger = ledger
        self.criteria = criteria
        self.store = store

    def _process(self, signature: str):
        if not self.criteria.is_complete:
            log.error("SOLANA_ADDR or USDC_MINT not set; cannot process %s", signature)
            return NOT_APPLICABLE
        tx = self.ledger.get_transaction(signature)
        return extract_balance_change(tx, signature, self.criteria)

    def ingest_webhook(self, payload: Any) -> ServiceResponse:
        signature = find_signature(payload)
        if not signature:
            log.warning("Webhook: no signature found in payload")
            return ServiceResponse(400, {"error": "No signature found in webhook payload"})

        log.info("Webhook: processing signature %s", signature)
        try:
            change = self._process(signature)
        except LedgerUnavailable as e:
            log.warning("Webhook: ledger unavailable for %s: %s", signature, e)
            return _ledger_unavailable(signature, e)

        if change is NOT_APPLICABLE:
            log.warning("Webhook: transaction %s not found or missing metadata", signature)
            return ServiceResponse(
                404, {"message": f"Transaction {signature} not processed or missing relevant data"}
            )

        if self.store is not None:
            try:
                self.store.upsert(change)
            except StoreError as e:
                log.error("Webhook: store error for %s: %s", signature, e)
                return ServiceResponse(
                    500, {"error": "Failed to store transaction data", "details": str(e)}
                )

        log.info(
            "Webhook: %s balance change %s, from %s to %s, tx: %s",
            self.criteria.asset.label(), change.delta, change.pre_amount, change.post_amount, signature,
        )
        return ServiceResponse(200, {"message": "Webhook processed successfully", "data": change.to_dict()})

    def query_signature(self, signature: str) -> ServiceResponse:
        signature = (signature or "").strip()
        if not signature:
            return ServiceResponse(400, {"error": "Transaction signature is required"})

        if self.store is not None:
            stored = self._lookup(signature)
            if stored is not None:
                log.info("GET /transaction: %s served from store", signature)
                return ServiceResponse(
                    200,
                    {
                        "signature": stored.signature,
                        "tokenTransfers": float(stored.ui_amount),
                        "timestamp": stored.transaction_timestamp,
                        "source": SOURCE_STORE,
                    },
                )

        try:
            change = self._process(signature)
        except LedgerUnavailable as e:
            log.warning("GET /transaction: ledger unavailable for %s: %s", signature, e)
            return _ledger_unavailable(signature, e)

        if change is NOT_APPLICABLE:
            log.warning("GET /transaction: %s not found or missing metadata", signature)
            return ServiceResponse(
                404, {"error": f"Transaction {signature} not found on Solana or missing relevant metadata"}
            )

        log.info("GET /transaction: %s fetched live from Solana", signature)
        if self.store is not None:
            self._write_back(change)

        return ServiceResponse(
            200,
            {
                "signature": change.signature,
                "tokenTransfers": float(change.delta),
                "timestamp": change.timestamp,
                "source": SOURCE_LIVE,
            },
        )

    def _lookup(self, signature: str):
        try:
            return self.store.get(signature)
        except StoreError as e:
            # fall through to the ledger; the live answer is still correct
            log.error("GET /transaction: store lookup failed for %s: %s", signature, e)
            return None

    def _write_back(self, change: BalanceChange) -> None:
        try:
            self.store.upsert(change)
        except StoreError as e:
            log.error("GET /transaction: write-back failed for %s: %s", change.signature, e)


def _ledger_unavailable(signature: str, err: Exception) -> ServiceResponse:
    return ServiceResponse(
        502,
        {"error": f"Solana RPC unavailable while fetching {signature}; retry later", "details": str(err)},
    )
