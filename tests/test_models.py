from decimal import Decimal

import pytest

from core.models import (
    AssetKind,
    AssetSelector,
    BalanceChange,
    ParsedTransaction,
    StoredRecord,
    WatchCriteria,
    epoch_to_iso,
    parse_decimal,
)


class TestAssetSelector:
    @pytest.mark.parametrize("value", ["SOL", "sol", " Sol "])
    def test_native_sentinel(self, value):
        assert AssetSelector.parse(value) == AssetSelector.native()

    def test_mint(self):
        sel = AssetSelector.parse("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")
        assert sel.kind is AssetKind.TOKEN
        assert sel.mint == "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_unset(self, value):
        assert AssetSelector.parse(value) is None

    def test_label(self):
        assert AssetSelector.native().label() == "SOL"
        assert AssetSelector.token("M").label() == "M"


def test_watch_criteria_completeness():
    assert WatchCriteria("A", AssetSelector.native()).is_complete
    assert not WatchCriteria(None, AssetSelector.native()).is_complete
    assert not WatchCriteria("A", None).is_complete


class TestParsedTransaction:
    def test_tolerates_empty_result(self):
        tx = ParsedTransaction.from_rpc({})
        assert tx.has_meta is False
        assert tx.account_keys == ()
        assert tx.block_time is None

    def test_null_token_lists(self):
        tx = ParsedTransaction.from_rpc({"meta": {"preTokenBalances": None, "postBalances": [5]}})
        assert tx.has_meta is True
        assert tx.pre_token_balances == ()
        assert tx.post_balances == (5,)

    def test_token_balance_without_owner(self):
        tx = ParsedTransaction.from_rpc(
            {"meta": {"postTokenBalances": [{"accountIndex": 2, "mint": "M", "uiTokenAmount": {}}]}}
        )
        (b,) = tx.post_token_balances
        assert (b.account_index, b.mint, b.owner, b.ui_amount_string) == (2, "M", "", None)


class TestParseDecimal:
    @pytest.mark.parametrize(
        "value,expected",
        [("10.01", Decimal("10.01")), (3, Decimal(3)), ("  2.5 ", Decimal("2.5")),
         (None, Decimal(0)), ("", Decimal(0)), ("abc", Decimal(0)), ("Infinity", Decimal(0)),
         (True, Decimal(0))],
    )
    def test_values(self, value, expected):
        assert parse_decimal(value) == expected


def test_epoch_to_iso():
    assert epoch_to_iso(0) == "1970-01-01T00:00:00.000Z"
    assert epoch_to_iso(None) is None
    assert epoch_to_iso(10**12) is None


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "1700000000", True])
def test_block_time_must_be_a_finite_number(value):
    assert ParsedTransaction.from_rpc({"blockTime": value, "meta": {}}).block_time is None


def test_overflowing_lamports_count_as_zero():
    tx = ParsedTransaction.from_rpc({"meta": {"preBalances": [float("inf"), 7]}})
    assert tx.pre_balances == (0, 7)


class TestRecords:
    def test_balance_change_dict(self):
        change = BalanceChange("S1", Decimal("10.0"), Decimal("10.01"), None)
        assert change.to_dict() == {
            "signature": "S1",
            "preAmount": 10.0,
            "postAmount": 10.01,
            "uiAmount": 0.01,
            "timestamp": None,
        }

    def test_stored_record_projection(self):
        change = BalanceChange("S1", Decimal("1"), Decimal("0.25"), "2024-01-01T00:00:00.000Z")
        rec = StoredRecord.from_change(change)
        assert rec.ui_amount == Decimal("-0.75")
        assert rec.to_row() == {
            "signature": "S1",
            "pre_amount": "1",
            "post_amount": "0.25",
            "ui_amount": "-0.75",
            "transaction_timestamp": "2024-01-01T00:00:00.000Z",
        }

    def test_stored_record_from_row_accepts_numbers(self):
        rec = StoredRecord.from_row(
            {"signature": "S1", "pre_amount": 10, "post_amount": 10.01, "ui_amount": 0.01,
             "transaction_timestamp": None}
        )
        assert rec.ui_amount == Decimal("0.01")
        assert rec.post_amount == Decimal("10.01")
