"""
Tests for the offline signing script
"""
import pytest
from eth_account import Account

from errors import LinadError, OwnerMismatch
from sign_requests import main, sign_from_env

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = Account.from_key(PRIVATE_KEY).address

BASE_ENV = {
    "SECRET_KEY": PRIVATE_KEY,
    "NAME": "Test Token",
    "SYMBOL": "TST",
    "DECIMALS": "9",
    "INITIAL_SUPPLY": "800000000",
}


@pytest.mark.asyncio
async def test_create_token_only():
    results = await sign_from_env(dict(BASE_ENV))
    assert [label for label, _ in results] == ["CREATE_TOKEN_SIG"]
    signature_hex = results[0][1]
    assert len(bytes.fromhex(signature_hex)) == 86
    assert signature_hex.endswith(ADDRESS[2:].lower())


@pytest.mark.asyncio
async def test_all_signatures_in_order():
    env = dict(
        BASE_ENV,
        SPENDER_APP_ID="ab" * 32,
        WLIN_ALLOWANCE="1000",
        TST_ALLOWANCE="500",
        BUY_AMOUNT="1",
        BUY_MIN_OUT="0.5",
        SELL_AMOUNT="10",
        SELL_MIN_OUT="0.01",
    )
    labels = [label for label, _ in await sign_from_env(env)]
    assert labels == ["CREATE_TOKEN_SIG", "WLIN_APPROVE_SIG", "TST_APPROVE_SIG", "BUY_SIG", "SELL_SIG"]


@pytest.mark.asyncio
async def test_trade_needs_both_amount_and_min_out():
    labels = [label for label, _ in await sign_from_env(dict(BASE_ENV, BUY_AMOUNT="1"))]
    assert "BUY_SIG" not in labels


@pytest.mark.asyncio
async def test_foreign_owner_is_refused():
    with pytest.raises(OwnerMismatch):
        await sign_from_env(dict(BASE_ENV, OWNER="0x" + "22" * 20))


@pytest.mark.asyncio
async def test_missing_variable():
    env = dict(BASE_ENV)
    del env["SYMBOL"]
    with pytest.raises(LinadError):
        await sign_from_env(env)


def test_main_prints_signatures(monkeypatch, capsys):
    monkeypatch.setattr("sign_requests.load_dotenv", lambda: None)
    for name, value in BASE_ENV.items():
        monkeypatch.setenv(name, value)
    for name in ("OWNER", "SPENDER_APP_ID", "BUY_AMOUNT", "SELL_AMOUNT"):
        monkeypatch.delenv(name, raising=False)

    assert main() == 0
    assert capsys.readouterr().out.startswith("CREATE_TOKEN_SIG=02")


def test_main_reports_missing_key(monkeypatch, capsys):
    monkeypatch.setattr("sign_requests.load_dotenv", lambda: None)
    monkeypatch.delenv("SECRET_KEY", raising=False)

    assert main() == 1
    assert "SECRET_KEY" in capsys.readouterr().err
