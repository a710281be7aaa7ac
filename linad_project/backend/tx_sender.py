"""
Request submission - sign linad requests and send them to the Linera service
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from errors import SignerUnavailable, TokenNotResolved
from encoding.amounts import attos_to_decimal, decimal_to_attos
from encoding.requests import (
    Side,
    build_approve_request,
    build_create_token_request,
    build_trade_request,
)
from amm.models import TradeQuote
from amm.quote_engine import quote_trade
from linera_client import LineraClient
from linera_config import LinadSettings, get_settings
from polling import TOKEN_LOOKUP_POLICY, RetryPolicy, poll_until
from signing.signer import DomainSeparatedSigner, SignedRequest
from signing.wallet import WalletContext

logger = logging.getLogger(__name__)

CREATE_TOKEN_MUTATION = """mutation CreateToken($owner: String!, $name: String!, $symbol: String!, $decimals: Int!, $supply: String!, $sig: String!) {
  createToken(request: { payload: { owner: $owner, metadata: { name: $name, symbol: $symbol, decimals: $decimals }, initialSupply: $supply }, signatureHex: $sig })
}"""

APPROVE_MUTATION = """mutation Approve($owner: String!, $spender: String!, $allowance: String!, $sig: String!) {
  approve(request: { payload: { owner: $owner, spender: $spender, allowance: $allowance }, signatureHex: $sig })
}"""

TRADE_MUTATION = """mutation Trade($owner: String!, $symbol: String!, $side: Side!, $amount: String!, $minOut: String!, $sig: String!) {
  %s(trade: { payload: { owner: $owner, symbol: $symbol, side: $side, amount: $amount, minOut: $minOut }, signatureHex: $sig })
}"""


@dataclass
class CreateTokenResult:
    signed: SignedRequest
    response: Any
    token_app_id: Optional[str] = None


@dataclass
class TradeExecution:
    quote: TradeQuote
    approval: SignedRequest
    trade: SignedRequest
    response: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quote": self.quote.to_dict(),
            "approval_signature": self.approval.signature_hex,
            "trade_signature": self.trade.signature_hex,
            "response": self.response,
        }


def _owner_of(context: WalletContext) -> str:
    owner = context.effective_owner
    if not owner:
        raise SignerUnavailable("Connect a wallet before submitting requests")
    return owner


class RequestSubmitter:
    """
    Builds, signs and submits requests on behalf of a wallet context.

    The context is passed per call; nothing here keeps track of who is
    connected.
    """

    def __init__(
        self,
        client: LineraClient,
        signer: DomainSeparatedSigner,
        settings: Optional[LinadSettings] = None,
        lookup_policy: RetryPolicy = TOKEN_LOOKUP_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        sign_timeout: Optional[float] = None,
    ):
        self.client = client
        self.signer = signer
        self.settings = settings or get_settings()
        self.lookup_policy = lookup_policy
        self.sleep = sleep
        self.sign_timeout = sign_timeout

    async def create_token(
        self,
        context: WalletContext,
        name: str,
        symbol: str,
        decimals: Optional[int] = None,
        supply: Optional[str] = None,
        wait_for_app_id: bool = True,
    ) -> CreateTokenResult:
        """
        Sign and submit a CreateTokenRequest, then wait for the factory to
        report the new token's application id.

        Raises:
            TokenNotResolved: the id did not show up within the lookup policy
        """
        request = build_create_token_request(
            owner=_owner_of(context),
            name=name.strip(),
            symbol=symbol.strip(),
            decimals=self.settings.default_decimals if decimals is None else decimals,
            supply=supply or self.settings.default_supply,
        )
        signed = await self.signer.sign(request, timeout=self.sign_timeout)
        payload = request.to_graphql()
        response = await self.client.execute(
            self.settings.token_factory_app_id,
            CREATE_TOKEN_MUTATION,
            {
                "owner": payload["owner"],
                "name": request.name,
                "symbol": request.symbol,
                "decimals": request.decimals,
                "supply": payload["initialSupply"],
                "sig": signed.signature_hex,
            },
        )
        logger.info(f"Submitted createToken for {request.symbol}")

        result = CreateTokenResult(signed=signed, response=response)
        if wait_for_app_id:
            result.token_app_id = await self.wait_for_token_app_id(request.symbol)
        return result

    async def wait_for_token_app_id(self, symbol: str) -> str:
        app_id = await poll_until(
            lambda: self.client.fetch_token_app_id(symbol),
            policy=self.lookup_policy,
            sleep=self.sleep,
            description=f"token app id for {symbol}",
        )
        if not app_id:
            raise TokenNotResolved(
                f"Token {symbol} was submitted but its application id is not visible yet"
            )
        logger.info(f"Token {symbol} resolved to application {app_id}")
        return app_id

    async def approve(
        self,
        context: WalletContext,
        app_id: str,
        spender: str,
        allowance: str,
    ) -> SignedRequest:
        """Approve `spender` to move up to `allowance` on the fungible application `app_id`"""
        request = build_approve_request(_owner_of(context), spender, allowance)
        signed = await self.signer.sign(request, timeout=self.sign_timeout)
        payload = request.to_graphql()
        await self.client.execute(
            app_id,
            APPROVE_MUTATION,
            {
                "owner": payload["owner"],
                "spender": payload["spender"],
                "allowance": payload["allowance"],
                "sig": signed.signature_hex,
            },
        )
        logger.info(f"Approved {spender} for {allowance} on {app_id}")
        return signed

    async def trade(
        self,
        context: WalletContext,
        symbol: str,
        side,
        amount: str,
        min_out: str,
    ):
        request = build_trade_request(_owner_of(context), symbol, side, amount, min_out)
        signed = await self.signer.sign(request, timeout=self.sign_timeout)
        payload = request.to_graphql()
        mutation = "buy" if request.side is Side.BUY else "sell"
        response = await self.client.execute(
            self.settings.matching_engine_app_id,
            TRADE_MUTATION % mutation,
            {**payload, "sig": signed.signature_hex},
        )
        logger.info(f"Submitted {mutation} of {payload['amount']} {symbol} (min out {payload['minOut']})")
        return signed, response

    async def execute_trade(
        self,
        context: WalletContext,
        symbol: str,
        side,
        amount: str,
        token_app_id: Optional[str] = None,
        slippage_bps: Optional[int] = None,
    ) -> TradeExecution:
        """
        Quote against a fresh pool snapshot, approve the matching engine on the
        input asset, then submit the trade with the quoted minimum output.
        """
        side = Side.parse(side)
        pool = await self.client.fetch_pool_state(symbol)
        quote = quote_trade(
            pool,
            side,
            decimal_to_attos(amount),
            self.settings.slippage_bps if slippage_bps is None else slippage_bps,
        )

        if side is Side.BUY:
            input_app_id = self.settings.wlin_app_id
        else:
            input_app_id = token_app_id or await self.client.fetch_token_app_id(symbol)
            if not input_app_id:
                raise TokenNotResolved(f"No token application registered for {symbol}")

        approval = await self.approve(
            context,
            input_app_id,
            self.settings.matching_engine_owner,
            self.settings.trade_allowance,
        )
        signed, response = await self.trade(
            context, symbol, side, amount, attos_to_decimal(quote.min_out)
        )
        return TradeExecution(quote=quote, approval=approval, trade=signed, response=response)
