"""
Tests for domain-separated signing and the wallet context
"""
import asyncio

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from errors import OwnerMismatch, SignerUnavailable
from encoding.requests import build_approve_request, build_trade_request
from signing.signer import DomainSeparatedSigner, LocalAccountAgent, SigningAgent, request_digest
from signing.wallet import WalletContext, WalletSession

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_OWNER = "0x" + "22" * 20


class RecordingAgent(SigningAgent):
    """Fake wallet returning a fixed raw signature"""

    def __init__(self, address, raw_signature="aa" * 64 + "01"):
        self.address = address
        self.raw_signature = raw_signature
        self.sign_calls = []

    async def connected_address(self):
        return self.address

    async def personal_sign(self, digest_hex, address):
        self.sign_calls.append((digest_hex, address))
        return self.raw_signature


class PendingAgent(RecordingAgent):
    """Waits forever, like a wallet prompt nobody answers"""

    async def personal_sign(self, digest_hex, address):
        self.sign_calls.append((digest_hex, address))
        await asyncio.Event().wait()


def test_digest_is_keccak_of_domain_and_payload():
    payload = b"\x01\x02\x03"
    assert request_digest("TradeRequest", payload) == bytes(Web3.keccak(b"TradeRequest::" + payload))
    assert len(request_digest("TradeRequest", payload)) == 32


def test_domains_separate_request_types():
    payload = b"same bytes"
    digests = {request_digest(name, payload) for name in ("TradeRequest", "ApproveRequest", "CreateTokenRequest")}
    assert len(digests) == 3


@pytest.mark.asyncio
async def test_local_agent_signature_recovers_to_owner():
    agent = LocalAccountAgent(PRIVATE_KEY)
    signer = DomainSeparatedSigner(agent)
    request = build_trade_request(agent.address, "TST", "BUY", "10", "9")

    signed = await signer.sign(request)

    packed = bytes.fromhex(signed.signature_hex)
    assert len(packed) == 86
    assert packed[0] == 2
    assert packed[65] in (27, 28)
    assert packed[66:] == bytes.fromhex(agent.address[2:])

    message = encode_defunct(hexstr="0x" + signed.digest.hex())
    recovered = Account.recover_message(message, signature=packed[1:66])
    assert recovered == agent.address
    assert signed.digest == DomainSeparatedSigner.digest(request)


@pytest.mark.asyncio
async def test_packs_declared_owner_and_normalizes_v():
    owner = "0x" + "33" * 20
    agent = RecordingAgent(owner.upper().replace("0X", "0x"))
    signed = await DomainSeparatedSigner(agent).sign(build_approve_request(owner, "0x" + "ab" * 32, "1000"))

    assert signed.signature_hex == "02" + "aa" * 64 + "1c" + "33" * 20
    digest_hex, _ = agent.sign_calls[0]
    assert digest_hex == "0x" + signed.digest.hex()
    assert signed.to_graphql()["signatureHex"] == signed.signature_hex


@pytest.mark.asyncio
async def test_owner_mismatch_is_checked_before_signing():
    agent = RecordingAgent("0x" + "33" * 20)
    with pytest.raises(OwnerMismatch):
        await DomainSeparatedSigner(agent).sign(build_trade_request(OTHER_OWNER, "TST", "BUY", "1", "0"))
    assert agent.sign_calls == []


@pytest.mark.asyncio
async def test_signer_unavailable():
    request = build_trade_request(OTHER_OWNER, "TST", "BUY", "1", "0")
    with pytest.raises(SignerUnavailable):
        await DomainSeparatedSigner(None).sign(request)
    with pytest.raises(SignerUnavailable):
        await DomainSeparatedSigner(RecordingAgent(None)).sign(request)


@pytest.mark.asyncio
async def test_timeout_propagates():
    agent = PendingAgent(OTHER_OWNER)
    request = build_trade_request(OTHER_OWNER, "TST", "BUY", "1", "0")
    with pytest.raises(asyncio.TimeoutError):
        await DomainSeparatedSigner(agent).sign(request, timeout=0.01)


@pytest.mark.asyncio
async def test_cancellation_propagates():
    agent = PendingAgent(OTHER_OWNER)
    request = build_trade_request(OTHER_OWNER, "TST", "BUY", "1", "0")
    task = asyncio.ensure_future(DomainSeparatedSigner(agent).sign(request))
    while not agent.sign_calls:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


class TestWalletSession:
    def test_effective_owner_defaults_to_wallet(self):
        assert WalletContext(wallet_address=OTHER_OWNER).effective_owner == OTHER_OWNER
        assert WalletContext(wallet_address=OTHER_OWNER, owner="0x" + "44" * 20).effective_owner == "0x" + "44" * 20
        assert not WalletContext().is_connected

    def test_external_change_notifies_subscribers(self):
        session = WalletSession()
        seen = []
        unsubscribe = session.subscribe(seen.append)

        session.apply_external_change(wallet_address=OTHER_OWNER)
        session.apply_external_change(wallet_address=OTHER_OWNER)
        unsubscribe()
        session.disconnect()

        assert [ctx.wallet_address for ctx in seen] == [OTHER_OWNER]
        assert session.context == WalletContext()

    def test_matches_ignores_case_and_prefix(self):
        context = WalletContext(wallet_address=OTHER_OWNER)
        assert context.matches("22" * 20)
        assert not context.matches("0x" + "23" * 20)

    @pytest.mark.asyncio
    async def test_connect_reads_agent_address(self):
        session = WalletSession()
        context = await session.connect(RecordingAgent(OTHER_OWNER))
        assert context.wallet_address == OTHER_OWNER
        assert session.context is context
