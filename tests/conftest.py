from typing import Any, Dict, List, Optional

import pytest

from chains.solana_rpc import LedgerUnavailable
from core.models import AssetSelector, ParsedTransaction, StoredRecord, WatchCriteria
from storage.supabase_store import StoreError


OWNER = "SOLANA_ADDR"
MINT = "USDC_MINT"


def rpc_tx(
    account_keys: Optional[List[Any]] = None,
    pre_balances: Optional[List[int]] = None,
    post_balances: Optional[List[int]] = None,
    pre_token: Optional[List[Dict[str, Any]]] = None,
    post_token: Optional[List[Dict[str, Any]]] = None,
    block_time: Optional[int] = 1700000000,
    with_meta: bool = True,
) -> Dict[str, Any]:
    """getTransaction(jsonParsed) result shaped like a mainnet node reply."""
    tx: Dict[str, Any] = {
        "slot": 250000000,
        "blockTime": block_time,
        "transaction": {
            "signatures": ["S1"],
            "message": {
                "accountKeys": [
                    {"pubkey": k, "signer": i == 0, "writable": True, "source": "transaction"}
                    for i, k in enumerate(account_keys or [])
                ],
            },
        },
        "meta": None,
    }
    if with_meta:
        tx["meta"] = {
            "err": None,
            "fee": 5000,
            "preBalances": pre_balances or [],
            "postBalances": post_balances or [],
            "preTokenBalances": pre_token or [],
            "postTokenBalances": post_token or [],
        }
    return tx


def token_balance(index: int, mint: str, owner: str, ui: Optional[str]) -> Dict[str, Any]:
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": owner,
        "programId": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
        "uiTokenAmount": {"amount": "0", "decimals": 6, "uiAmount": None, "uiAmountString": ui},
    }


class FakeLedger:
    def __init__(self, transactions: Optional[Dict[str, Dict[str, Any]]] = None, fail: bool = False):
        self.transactions = transactions or {}
        self.fail = fail
        self.calls: List[str] = []

    def get_transaction(self, signature: str) -> Optional[ParsedTransaction]:
        self.calls.append(signature)
        if self.fail:
            raise LedgerUnavailable("connection refused")
        raw = self.transactions.get(signature)
        return ParsedTransaction.from_rpc(raw) if raw is not None else None


class MemoryStore:
    def __init__(self, fail_writes: bool = False, fail_reads: bool = False):
        self.rows: Dict[str, StoredRecord] = {}
        self.fail_writes = fail_writes
        self.fail_reads = fail_reads
        self.upserts = 0

    def upsert(self, change) -> StoredRecord:
        if self.fail_writes:
            raise StoreError("duplicate key value violates unique constraint")
        self.upserts += 1
        record = StoredRecord.from_change(change)
        self.rows[record.signature] = record
        return record

    def get(self, signature: str) -> Optional[StoredRecord]:
        if self.fail_reads:
            raise StoreError("connection reset")
        return self.rows.get(signature)


@pytest.fixture
def token_criteria() -> WatchCriteria:
    return WatchCriteria(address=OWNER, asset=AssetSelector.token(MINT))


@pytest.fixture
def native_criteria() -> WatchCriteria:
    return WatchCriteria(address=OWNER, asset=AssetSelector.native())


@pytest.fixture
def usdc_tx() -> Dict[str, Any]:
    return rpc_tx(
        account_keys=["FEE_PAYER", OWNER],
        pre_token=[token_balance(2, MINT, OWNER, "10.0")],
        post_token=[token_balance(2, MINT, OWNER, "10.01")],
    )
