from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple


NATIVE_SENTINEL = "SOL"
LAMPORTS_PER_SOL = Decimal(1_000_000_000)


class AssetKind(str, Enum):
    NATIVE = "native"
    TOKEN = "token"


@dataclass(frozen=True)
class AssetSelector:
    """Which balance to watch: the native coin or one SPL token mint."""
    kind: AssetKind
    mint: Optional[str] = None  # set only for TOKEN

    @classmethod
    def native(cls) -> "AssetSelector":
        return cls(kind=AssetKind.NATIVE)

    @classmethod
    def token(cls, mint: str) -> "AssetSelector":
        return cls(kind=AssetKind.TOKEN, mint=mint)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["AssetSelector"]:
        v = (value or "").strip()
        if not v:
            return None
        if v.upper() == NATIVE_SENTINEL:
            return cls.native()
        return cls.token(v)

    def label(self) -> str:
        return NATIVE_SENTINEL if self.kind is AssetKind.NATIVE else (self.mint or "")


@dataclass(frozen=True)
class WatchCriteria:
    address: Optional[str]
    asset: Optional[AssetSelector]

    @property
    def is_complete(self) -> bool:
        return bool(self.address) and self.asset is not None


@dataclass(frozen=True)
class TokenBalance:
    account_index: int
    mint: str
    owner: str
    ui_amount_string: Optional[str]  # human-readable, decimals applied


@dataclass(frozen=True)
class ParsedTransaction:
    """Read-only view over a jsonParsed getTransaction result."""
    account_keys: Tuple[str, ...]
    pre_balances: Tuple[int, ...]
    post_balances: Tuple[int, ...]
    pre_token_balances: Tuple[TokenBalance, ...]
    post_token_balances: Tuple[TokenBalance, ...]
    block_time: Optional[int]
    has_meta: bool

    @classmethod
    def from_rpc(cls, tx: Dict[str, Any]) -> "ParsedTransaction":
        meta = tx.get("meta")
        message = (tx.get("transaction") or {}).get("message") or {}
        block_time = _block_time(tx.get("blockTime"))
        meta = meta if isinstance(meta, dict) else {}

        return cls(
            account_keys=tuple(_account_key(k) for k in (message.get("accountKeys") or [])),
            pre_balances=tuple(_as_int(b) for b in (meta.get("preBalances") or [])),
            post_balances=tuple(_as_int(b) for b in (meta.get("postBalances") or [])),
            pre_token_balances=_token_balances(meta.get("preTokenBalances")),
            post_token_balances=_token_balances(meta.get("postTokenBalances")),
            block_time=block_time,
            has_meta=isinstance(tx.get("meta"), dict),
        )


@dataclass(frozen=True)
class BalanceChange:
    signature: str
    pre_amount: Decimal
    post_amount: Decimal
    timestamp: Optional[str]  # ISO-8601, UTC

    @property
    def delta(self) -> Decimal:
        return self.post_amount - self.pre_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "preAmount": float(self.pre_amount),
            "postAmount": float(self.post_amount),
            "uiAmount": float(self.delta),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class StoredRecord:
    """Row in the solana_transactions table."""
    signature: str
    pre_amount: Decimal
    post_amount: Decimal
    ui_amount: Decimal
    transaction_timestamp: Optional[str]

    @classmethod
    def from_change(cls, change: BalanceChange) -> "StoredRecord":
        return cls(
            signature=change.signature,
            pre_amount=change.pre_amount,
            post_amount=change.post_amount,
            ui_amount=change.delta,
            transaction_timestamp=change.timestamp,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StoredRecord":
        return cls(
            signature=str(row.get("signature") or ""),
            pre_amount=parse_decimal(row.get("pre_amount")),
            post_amount=parse_decimal(row.get("post_amount")),
            ui_amount=parse_decimal(row.get("ui_amount")),
            transaction_timestamp=row.get("transaction_timestamp"),
        )

    def to_row(self) -> Dict[str, Any]:
        # numeric columns take strings, which keeps Decimal precision
        return {
            "signature": self.signature,
            "pre_amount": str(self.pre_amount),
            "post_amount": str(self.post_amount),
            "ui_amount": str(self.ui_amount),
            "transaction_timestamp": self.transaction_timestamp,
        }


class NotApplicable:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"


NOT_APPLICABLE = NotApplicable()


def parse_decimal(value: Any) -> Decimal:
    """Malformed or missing amounts count as zero."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return d if d.is_finite() else Decimal(0)


def epoch_to_iso(seconds: Optional[int]) -> Optional[str]:
    if seconds is None:
        return None
    try:
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return None
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _account_key(k: Any) -> str:
    if isinstance(k, dict):
        return str(k.get("pubkey") or "")
    return str(k or "")


def _as_int(v: Any) -> int:
    try:
        return int(v)
    except (TypeError, ValueError, OverflowError):
        return 0


def _block_time(v: Any) -> Optional[int]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    if isinstance(v, float) and not math.isfinite(v):
        return None
    return int(v)


def _token_balances(items: Any) -> Tuple[TokenBalance, ...]:
    out = []
    for b in (items or []):
        if not isinstance(b, dict):
            continue
        ui = b.get("uiTokenAmount") or {}
        out.append(
            TokenBalance(
                account_index=_as_int(b.get("accountIndex")),
                mint=b.get("mint") or "",
                owner=b.get("owner") or "",
                ui_amount_string=ui.get("uiAmountString") if isinstance(ui, dict) else None,
            )
        )
    return tuple(out)
