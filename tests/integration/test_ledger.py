"""Tests for honorary_quote_fee/integration/ledger.py and the in-memory collaborators."""

import pytest

from honorary_quote_fee.core.errors import AccountMismatch
from honorary_quote_fee.integration import InMemoryFeeClaimGateway, InMemoryLedger, InMemoryLockedAmountOracle, LedgerError
from honorary_quote_fee.state.accounts import PositionAccount, TokenAccount, VestingContract


def _ledger() -> InMemoryLedger:
    ledger = InMemoryLedger(now=100)
    ledger.add_token_account(TokenAccount(address="x", mint="QUOTE", owner="alice", amount=50))
    ledger.add_token_account(TokenAccount(address="y", mint="QUOTE", owner="bob"))
    ledger.add_token_account(TokenAccount(address="z", mint="BASE", owner="bob"))
    ledger.add_position(PositionAccount(address="pos1", pool="pool1"))
    return ledger


class TestTransfers:
    def test_transfer(self):
        ledger = _ledger()
        ledger.transfer("x", "y", 20)
        assert ledger.balance("x") == 30
        assert ledger.balance("y") == 20

    def test_insufficient_funds(self):
        with pytest.raises(LedgerError):
            _ledger().transfer("x", "y", 51)

    def test_mint_mismatch(self):
        with pytest.raises(LedgerError):
            _ledger().transfer("x", "z", 1)

    def test_unknown_account(self):
        with pytest.raises(LedgerError):
            _ledger().transfer("x", "nope", 1)

    def test_duplicate_account(self):
        with pytest.raises(LedgerError):
            _ledger().add_token_account(TokenAccount(address="x", mint="QUOTE", owner="eve"))

    def test_negative_amount_rejected_by_account(self):
        with pytest.raises(ValueError):
            TokenAccount(address="w", mint="QUOTE", owner="eve", amount=-1)


class TestAtomic:
    def test_rollback_on_error(self):
        ledger = _ledger()
        before = ledger.state_digest()
        with pytest.raises(RuntimeError):
            with ledger.atomic():
                ledger.transfer("x", "y", 10)
                ledger.put_record("pool1", "progress", b"\x01")
                raise RuntimeError("boom")
        assert ledger.state_digest() == before
        assert ledger.get_record("pool1", "progress") is None

    def test_commit_on_success(self):
        ledger = _ledger()
        with ledger.atomic():
            ledger.transfer("x", "y", 10)
        assert ledger.balance("y") == 10

    def test_nested_inner_failure_keeps_outer_work(self):
        ledger = _ledger()
        with ledger.atomic():
            ledger.transfer("x", "y", 5)
            with pytest.raises(LedgerError):
                with ledger.atomic():
                    ledger.transfer("x", "y", 5)
                    ledger.transfer("x", "y", 1_000)
        assert ledger.balance("y") == 5

    def test_unknown_record_kind(self):
        with pytest.raises(ValueError):
            _ledger().put_record("pool1", "other", b"")


class TestClock:
    def test_advance(self):
        ledger = _ledger()
        assert ledger.advance(50) == 150
        ledger.set_now(10)
        assert ledger.now() == 10


class TestGateway:
    def test_claim_moves_pending_fees(self):
        ledger = _ledger()
        ledger.accrue_fees("pos1", quote=40, base=3)
        claim = InMemoryFeeClaimGateway(ledger).claim_fees(position="pos1", quote_treasury="y", base_fee_check="z")
        assert claim.quote_claimed == 40
        assert claim.base_fee_present is True
        assert claim.base_claimed == 3
        assert ledger.balance("y") == 40
        assert ledger.balance("z") == 3
        assert ledger.position("pos1").pending_quote_fee == 0

    def test_second_claim_is_empty(self):
        ledger = _ledger()
        ledger.accrue_fees("pos1", quote=40)
        gw = InMemoryFeeClaimGateway(ledger)
        gw.claim_fees(position="pos1", quote_treasury="y", base_fee_check="z")
        claim = gw.claim_fees(position="pos1", quote_treasury="y", base_fee_check="z")
        assert claim.quote_claimed == 0
        assert claim.base_fee_present is False


class TestOracle:
    def test_reads_schedule_at_now(self):
        ledger = _ledger()
        ledger.add_vesting(VestingContract(
            address="v1", mint="QUOTE", recipient="bob", recipient_destination="y",
            total_deposited=1_000, withdrawn=100, cliff_time=50, cliff_amount=200,
            period_seconds=10, amount_per_period=30,
        ))
        reading = InMemoryLockedAmountOracle(ledger).read("v1", now=100)
        # 200 at the cliff + 5 periods * 30 = 350 vested, 100 withdrawn
        assert reading.claimable == 250
        assert reading.withdrawn == 100
        assert reading.recipient_destination == "y"

    def test_before_cliff(self):
        contract = VestingContract(
            address="v1", mint="QUOTE", recipient="bob", recipient_destination="y",
            total_deposited=1_000, cliff_time=500, cliff_amount=200,
        )
        assert contract.claimable(499) == 0
        assert contract.vested(500) == 200

    def test_vesting_capped_at_deposit(self):
        contract = VestingContract(
            address="v1", mint="QUOTE", recipient="bob", recipient_destination="y",
            total_deposited=100, amount_per_period=60,
        )
        assert contract.vested(10) == 100

    def test_unknown_contract(self):
        with pytest.raises(AccountMismatch):
            InMemoryLockedAmountOracle(_ledger()).read("ghost", now=0)

    def test_withdraw_beyond_claimable(self):
        ledger = _ledger()
        ledger.add_vesting(VestingContract(
            address="v1", mint="QUOTE", recipient="bob", recipient_destination="y", total_deposited=1_000,
        ))
        with pytest.raises(LedgerError):
            ledger.withdraw_vested("v1", 1)
