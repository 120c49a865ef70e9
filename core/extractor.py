from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence, Tuple, Union

from core.models import (
    LAMPORTS_PER_SOL,
    NOT_APPLICABLE,
    AssetKind,
    BalanceChange,
    ParsedTransaction,
    TokenBalance,
    WatchCriteria,
    NotApplicable,
    epoch_to_iso,
    parse_decimal,
)


ExtractResult = Union[BalanceChange, NotApplicable]


def extract_balance_change(
    tx: Optional[ParsedTransaction],
    signature: str,
    criteria: WatchCriteria,
) -> ExtractResult:
    """
    Net balance change of the watched (address, asset) pair in one transaction.

    Pure: no I/O, never raises for anything it can find inside the record.
    Returns NOT_APPLICABLE when the transaction is missing, has no meta, or
    the watch criteria are incomplete.
    """
    if tx is None or not tx.has_meta or not criteria.is_complete:
        return NOT_APPLICABLE

    if criteria.asset.kind is AssetKind.NATIVE:
        pre, post = _native_amounts(tx, criteria.address)
    else:
        pre, post = _token_amounts(tx, criteria.asset.mint, criteria.address)

    return BalanceChange(
        signature=signature,
        pre_amount=pre,
        post_amount=post,
        timestamp=epoch_to_iso(tx.block_time),
    )


def _native_amounts(tx: ParsedTransaction, address: str) -> Tuple[Decimal, Decimal]:
    try:
        idx = tx.account_keys.index(address)
    except ValueError:
        # not a participant: zero change
        return Decimal(0), Decimal(0)

    return _lamports_at(tx.pre_balances, idx), _lamports_at(tx.post_balances, idx)


def _lamports_at(balances: Sequence[int], idx: int) -> Decimal:
    lamports = balances[idx] if idx < len(balances) else 0
    return Decimal(lamports or 0) / LAMPORTS_PER_SOL


def _token_amounts(tx: ParsedTransaction, mint: str, owner: str) -> Tuple[Decimal, Decimal]:
    # pre and post are scanned independently: the token account may be
    # created or closed by this very transaction
    pre = _find_token_balance(tx.pre_token_balances, mint, owner)
    post = _find_token_balance(tx.post_token_balances, mint, owner)
    return _ui_amount(pre), _ui_amount(post)


def _find_token_balance(
    balances: Sequence[TokenBalance], mint: str, owner: str
) -> Optional[TokenBalance]:
    for b in balances:
        if b.mint == mint and b.owner == owner:
            return b
    return None


def _ui_amount(b: Optional[TokenBalance]) -> Decimal:
    if b is None:
        return Decimal(0)
    return parse_decimal(b.ui_amount_string)
