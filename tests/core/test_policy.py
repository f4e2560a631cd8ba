"""Tests for honorary_quote_fee/core/policy.py — policy creation and position binding."""

from dataclasses import replace

import pytest

from honorary_quote_fee.core.errors import (
    AccountMismatch,
    ArithmeticOverflow,
    HonoraryPositionAlreadyConfigured,
    InvalidBaseline,
    InvalidFeeMode,
    InvalidFeeShare,
    Unauthorized,
)
from honorary_quote_fee.core.policy import configure_honorary_position, initialize_policy
from honorary_quote_fee.core.types import DistributionProgress
from honorary_quote_fee.state.accounts import (
    CollectFeeMode,
    PoolAccount,
    PositionAccount,
    TokenAccount,
    honorary_owner_address,
)

POOL = PoolAccount(address="pool1", base_mint="BASE", quote_mint="QUOTE")
CREATOR = TokenAccount(address="creator_ata", mint="QUOTE", owner="creator")
OWNER = honorary_owner_address("pool1")


def _init(**overrides):
    kwargs = dict(
        pool=POOL,
        authority="admin",
        creator_account=CREATOR,
        investor_fee_share_bps=5_000,
        y0=1_000_000,
        daily_cap_quote=0,
        min_payout=0,
    )
    kwargs.update(overrides)
    return initialize_policy(**kwargs)


def _configure(policy, **overrides):
    kwargs = dict(
        caller="admin",
        existing=None,
        position=PositionAccount(address="pos1", pool="pool1"),
        quote_treasury=TokenAccount(address="treasury", mint="QUOTE", owner=OWNER),
        base_fee_check=TokenAccount(address="base_check", mint="BASE", owner=OWNER),
    )
    kwargs.update(overrides)
    return configure_honorary_position(policy, **kwargs)


class TestInitializePolicy:
    def test_creates_policy_and_empty_progress(self):
        policy, progress = _init(daily_cap_quote=50_000, min_payout=1_000)
        assert policy.pool == "pool1"
        assert policy.quote_mint == "QUOTE"
        assert policy.base_mint == "BASE"
        assert policy.creator_destination == "creator_ata"
        assert policy.daily_cap_quote == 50_000
        assert policy.min_payout == 1_000
        assert progress == DistributionProgress()
        assert progress.day_anchor_time is None

    def test_fee_share_bounds(self):
        _init(investor_fee_share_bps=0)
        _init(investor_fee_share_bps=10_000)
        with pytest.raises(InvalidFeeShare):
            _init(investor_fee_share_bps=10_001)
        with pytest.raises(InvalidFeeShare):
            _init(investor_fee_share_bps=-1)

    def test_zero_baseline(self):
        with pytest.raises(InvalidBaseline):
            _init(y0=0)

    def test_amounts_out_of_range(self):
        with pytest.raises(ArithmeticOverflow):
            _init(daily_cap_quote=-1)
        with pytest.raises(ArithmeticOverflow):
            _init(min_payout=1 << 64)

    def test_non_int_rejected(self):
        with pytest.raises(TypeError):
            _init(y0=1.5)

    def test_pool_must_collect_quote_only(self):
        for mode in (CollectFeeMode.BOTH, CollectFeeMode.ONLY_BASE):
            with pytest.raises(InvalidFeeMode):
                _init(pool=replace(POOL, collect_fee_mode=mode))

    def test_creator_destination_mint(self):
        with pytest.raises(AccountMismatch):
            _init(creator_account=replace(CREATOR, mint="BASE"))

    def test_empty_authority(self):
        with pytest.raises(Unauthorized):
            _init(authority="")

    def test_policy_is_frozen(self):
        policy, _ = _init()
        with pytest.raises(AttributeError):
            policy.y0 = 1  # type: ignore


class TestConfigureHonoraryPosition:
    def test_binds_accounts(self):
        policy, _ = _init()
        bound = _configure(policy)
        assert bound.position == "pos1"
        assert bound.quote_treasury == "treasury"
        assert bound.base_fee_check == "base_check"
        assert bound.owner == OWNER

    def test_wrong_caller(self):
        policy, _ = _init()
        with pytest.raises(Unauthorized):
            _configure(policy, caller="mallory")

    def test_only_once(self):
        policy, _ = _init()
        bound = _configure(policy)
        with pytest.raises(HonoraryPositionAlreadyConfigured):
            _configure(policy, existing=bound)

    def test_position_of_other_pool(self):
        policy, _ = _init()
        with pytest.raises(AccountMismatch):
            _configure(policy, position=PositionAccount(address="pos1", pool="pool2"))

    def test_position_must_be_empty(self):
        policy, _ = _init()
        with pytest.raises(AccountMismatch):
            _configure(policy, position=PositionAccount(address="pos1", pool="pool1", pending_quote_fee=1))
        with pytest.raises(AccountMismatch):
            _configure(policy, position=PositionAccount(address="pos1", pool="pool1", liquidity=10))

    def test_treasury_must_be_program_owned(self):
        policy, _ = _init()
        with pytest.raises(AccountMismatch):
            _configure(policy, quote_treasury=TokenAccount(address="treasury", mint="QUOTE", owner="someone"))

    def test_treasury_mint(self):
        policy, _ = _init()
        with pytest.raises(AccountMismatch):
            _configure(policy, quote_treasury=TokenAccount(address="treasury", mint="BASE", owner=OWNER))

    def test_base_check_mint(self):
        policy, _ = _init()
        with pytest.raises(AccountMismatch):
            _configure(policy, base_fee_check=TokenAccount(address="base_check", mint="QUOTE", owner=OWNER))

    def test_owner_is_pool_specific(self):
        assert honorary_owner_address("pool1") != honorary_owner_address("pool2")
