"""Tests for honorary_quote_fee/integration/rpc_client.py against an in-process fake node."""

import json
import socketserver
import threading
from contextlib import contextmanager

import pytest

from honorary_quote_fee.core import AccountMismatch, CrankAccounts, PageEntry
from honorary_quote_fee.integration import Distributor, DistributorConfig, InMemoryLedger, run_day
from honorary_quote_fee.integration.rpc_client import (
    LedgerRpcError,
    LedgerTcpClient,
    LedgerTcpConfig,
    RpcFeeClaimGateway,
    RpcLockedAmountOracle,
)
from honorary_quote_fee.state.accounts import PoolAccount, PositionAccount, TokenAccount, honorary_owner_address


class _FakeNode(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, replies):
        super().__init__(("127.0.0.1", 0), _Handler)
        self.replies = replies
        self.commands = []


class _Handler(socketserver.StreamRequestHandler):
    def handle(self):
        line = self.rfile.readline().decode("utf-8").strip()
        self.server.commands.append(line)
        verb = line.split(" ", 1)[0]
        reply = self.server.replies.get(verb, "ERROR: unknown command")
        self.wfile.write((reply + "\r\n").encode("utf-8"))


@contextmanager
def _node(replies):
    server = _FakeNode(replies)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server, LedgerTcpClient(LedgerTcpConfig(port=server.server_address[1], timeout_s=2.0))
    finally:
        server.shutdown()
        server.server_close()


VESTING_A = {
    "vesting_ref": "a",
    "mint": "QUOTE",
    "recipient": "inv_a",
    "recipient_destination": "ata_a",
    "total_deposited": 1_000_000,
    "withdrawn": 0,
    "claimable": 0,
}


class TestClient:
    def test_claim_fees(self):
        with _node({"claimfees": "CLAIMED: 100 0"}) as (server, client):
            assert client.claim_fees("pos1", "treasury", "base_check") == (100, 0)
            assert server.commands == ["claimfees pos1 treasury base_check"]

    def test_vesting(self):
        with _node({"vesting": "VESTING: " + json.dumps(VESTING_A)}) as (server, client):
            assert client.vesting("a", 42)["total_deposited"] == 1_000_000
            assert server.commands == ["vesting a 42"]

    def test_balance(self):
        with _node({"getbalance": "BALANCE: 77"}) as (_, client):
            assert client.get_balance("treasury") == 77

    def test_error_reply(self):
        with _node({"claimfees": "ERROR: position locked"}) as (_, client):
            with pytest.raises(LedgerRpcError, match="position locked"):
                client.claim_fees("pos1", "treasury", "base_check")

    def test_unexpected_reply(self):
        with _node({"getbalance": "SEQUENCE: 1"}) as (_, client):
            with pytest.raises(LedgerRpcError):
                client.get_balance("treasury")

    def test_malformed_amounts(self):
        with _node({"claimfees": "CLAIMED: -5 0"}) as (_, client):
            with pytest.raises(LedgerRpcError):
                client.claim_fees("pos1", "treasury", "base_check")

    def test_non_json_vesting(self):
        with _node({"vesting": "VESTING: {nope"}) as (_, client):
            with pytest.raises(LedgerRpcError):
                client.vesting("a", 0)

    def test_rejects_whitespace_arguments(self):
        client = LedgerTcpClient()
        with pytest.raises(ValueError):
            client.claim_fees("pos 1", "treasury", "base_check")

    def test_connection_refused(self):
        with _node({}) as (server, _):
            port = server.server_address[1]
        client = LedgerTcpClient(LedgerTcpConfig(port=port, timeout_s=0.5))
        with pytest.raises(LedgerRpcError):
            client.get_balance("x")

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            LedgerTcpClient(LedgerTcpConfig(port=70_000))
        with pytest.raises(ValueError):
            LedgerTcpClient(LedgerTcpConfig(timeout_s=0))


class TestAdapters:
    def test_oracle_parses_reading(self):
        with _node({"vesting": "VESTING: " + json.dumps(VESTING_A)}) as (_, client):
            reading = RpcLockedAmountOracle(client).read("a", now=1)
        assert reading.vesting_ref == "a"
        assert reading.recipient == "inv_a"
        assert reading.total_deposited == 1_000_000

    def test_oracle_rejects_bad_fields(self):
        bad = dict(VESTING_A, withdrawn=True)
        with _node({"vesting": "VESTING: " + json.dumps(bad)}) as (_, client):
            with pytest.raises(LedgerRpcError):
                RpcLockedAmountOracle(client).read("a", now=1)

    def test_gateway_mirrors_claim_into_ledger(self):
        ledger = InMemoryLedger()
        ledger.add_token_account(TokenAccount(address="treasury", mint="QUOTE", owner="pda"))
        ledger.add_token_account(TokenAccount(address="base_check", mint="BASE", owner="pda"))
        with _node({"claimfees": "CLAIMED: 100 2"}) as (_, client):
            claim = RpcFeeClaimGateway(client, ledger).claim_fees(
                position="pos1", quote_treasury="treasury", base_fee_check="base_check",
            )
        assert claim.quote_claimed == 100
        assert claim.base_fee_present is True
        assert ledger.balance("treasury") == 100
        assert ledger.balance("base_check") == 2


ACCOUNTS = CrankAccounts("pool1", "pos1", "treasury", "base_check", "creator_ata")


def _rpc_ledger() -> InMemoryLedger:
    owner = honorary_owner_address("pool1")
    ledger = InMemoryLedger(now=1_000)
    ledger.add_pool(PoolAccount(address="pool1", base_mint="BASE", quote_mint="QUOTE"))
    ledger.add_position(PositionAccount(address="pos1", pool="pool1"))
    for addr, mint, who in (
        ("treasury", "QUOTE", owner),
        ("base_check", "BASE", owner),
        ("creator_ata", "QUOTE", "creator"),
        ("ata_a", "QUOTE", "inv_a"),
    ):
        ledger.add_token_account(TokenAccount(address=addr, mint=mint, owner=who))
    return ledger


def _rpc_distributor(ledger: InMemoryLedger, port: int) -> Distributor:
    config = DistributorConfig(backend="rpc", rpc_port=port, rpc_timeout_s=2.0)
    d = Distributor(ledger, config=config)
    d.initialize_policy(
        pool="pool1", authority="admin", creator_destination="creator_ata",
        investor_fee_share_bps=5_000, y0=1_000_000,
    )
    d.configure_honorary_position(
        pool="pool1", caller="admin", position="pos1", quote_treasury="treasury", base_fee_check="base_check",
    )
    return d


def _verbs(server) -> list:
    return [c.split(" ", 1)[0] for c in server.commands]


class TestDistributorOverRpc:
    def test_full_day(self):
        ledger = _rpc_ledger()
        replies = {"claimfees": "CLAIMED: 100000 0", "vesting": "VESTING: " + json.dumps(VESTING_A)}
        with _node(replies) as (server, _):
            d = _rpc_distributor(ledger, server.server_address[1])
            run_day(d, ACCOUNTS, [PageEntry("a", "ata_a")])
            # Vesting reads come first; the claim is the last remote call.
            assert _verbs(server) == ["vesting", "claimfees"]

        assert ledger.balance("ata_a") == 50_000
        assert ledger.balance("creator_ata") == 50_000

    def test_bad_vesting_mint_never_claims(self):
        ledger = _rpc_ledger()
        bad = dict(VESTING_A, mint="OTHER")
        replies = {"claimfees": "CLAIMED: 100000 0", "vesting": "VESTING: " + json.dumps(bad)}
        with _node(replies) as (server, _):
            d = _rpc_distributor(ledger, server.server_address[1])
            with pytest.raises(AccountMismatch):
                run_day(d, ACCOUNTS, [PageEntry("a", "ata_a")])
            assert "claimfees" not in _verbs(server)

        assert ledger.balance("treasury") == 0
        assert d.progress("pool1").day_open is False

    def test_wrong_destination_owner_never_claims(self):
        ledger = _rpc_ledger()
        ledger.add_token_account(TokenAccount(address="ata_b", mint="QUOTE", owner="mallory"))
        vesting_b = dict(VESTING_A, vesting_ref="b", recipient="inv_b", recipient_destination="ata_b")
        replies = {"claimfees": "CLAIMED: 100000 0", "vesting": "VESTING: " + json.dumps(vesting_b)}
        with _node(replies) as (server, _):
            d = _rpc_distributor(ledger, server.server_address[1])
            with pytest.raises(AccountMismatch):
                run_day(d, ACCOUNTS, [PageEntry("b", "ata_b")])
            assert "claimfees" not in _verbs(server)

    def test_vesting_read_failure_never_claims(self):
        ledger = _rpc_ledger()
        replies = {"claimfees": "CLAIMED: 100000 0", "vesting": "ERROR: no such vesting"}
        with _node(replies) as (server, _):
            d = _rpc_distributor(ledger, server.server_address[1])
            with pytest.raises(LedgerRpcError):
                run_day(d, ACCOUNTS, [PageEntry("a", "ata_a")])
            assert _verbs(server) == ["vesting"]

        assert ledger.balance("treasury") == 0
