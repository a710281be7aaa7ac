"""
Offline request signing - prints signatureHex values for manual GraphQL calls

Inputs come from the environment (a .env file is honoured):
    SECRET_KEY       secp256k1 private key (hex)
    NAME, SYMBOL, DECIMALS, INITIAL_SUPPLY
    OWNER            optional, defaults to the key's address
    SPENDER_APP_ID   with WLIN_ALLOWANCE and/or TST_ALLOWANCE
    BUY_AMOUNT, BUY_MIN_OUT
    SELL_AMOUNT, SELL_MIN_OUT
"""
import asyncio
import os
import sys
from typing import Dict, List, Tuple

from dotenv import load_dotenv

from errors import LinadError
from encoding.requests import (
    Side,
    build_approve_request,
    build_create_token_request,
    build_trade_request,
)
from signing.signer import DomainSeparatedSigner, LocalAccountAgent


def required_env(env: Dict[str, str], name: str) -> str:
    value = env.get(name)
    if value is None or not value.strip():
        raise LinadError(f"Missing env var {name}", code="missing_env")
    return value.strip()


def optional_env(env: Dict[str, str], name: str):
    value = env.get(name)
    return value.strip() if value and value.strip() else None


async def sign_from_env(env: Dict[str, str]) -> List[Tuple[str, str]]:
    """Return (label, signatureHex) pairs in output order"""
    agent = LocalAccountAgent(required_env(env, "SECRET_KEY"))
    signer = DomainSeparatedSigner(agent)
    owner = optional_env(env, "OWNER") or agent.address
    symbol = required_env(env, "SYMBOL")

    requests = [
        ("CREATE_TOKEN_SIG", build_create_token_request(
            owner,
            required_env(env, "NAME"),
            symbol,
            int(required_env(env, "DECIMALS")),
            required_env(env, "INITIAL_SUPPLY"),
        )),
    ]

    spender_app_id = optional_env(env, "SPENDER_APP_ID")
    if spender_app_id:
        spender = spender_app_id if spender_app_id.startswith("0x") else f"0x{spender_app_id}"
        for label, var in (("WLIN_APPROVE_SIG", "WLIN_ALLOWANCE"), ("TST_APPROVE_SIG", "TST_ALLOWANCE")):
            allowance = optional_env(env, var)
            if allowance:
                requests.append((label, build_approve_request(owner, spender, allowance)))

    for label, side, amount_var, min_out_var in (
        ("BUY_SIG", Side.BUY, "BUY_AMOUNT", "BUY_MIN_OUT"),
        ("SELL_SIG", Side.SELL, "SELL_AMOUNT", "SELL_MIN_OUT"),
    ):
        amount = optional_env(env, amount_var)
        min_out = optional_env(env, min_out_var)
        if amount and min_out:
            requests.append((label, build_trade_request(owner, symbol, side, amount, min_out)))

    results = []
    for label, request in requests:
        signed = await signer.sign(request)
        results.append((label, signed.signature_hex))
    return results


def main() -> int:
    load_dotenv()
    try:
        results = asyncio.run(sign_from_env(dict(os.environ)))
    except (LinadError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    for label, signature_hex in results:
        print(f"{label}={signature_hex}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
