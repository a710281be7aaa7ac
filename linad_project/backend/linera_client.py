"""
Linera GraphQL client - queries and mutations against the linad applications
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from errors import GraphQLRequestError, PoolUninitialized
from encoding.amounts import loose_amount_to_attos
from amm.models import PoolState
from linera_config import LinadSettings, get_settings

logger = logging.getLogger(__name__)

POOL_STATE_QUERY = """query Pool($symbol: String!) {
  poolConfig(symbol: $symbol) {
    totalCurveSupply
    feeBps
    vX
    vY
  }
  wlinReserve(symbol: $symbol)
  tokenReserve(symbol: $symbol)
}"""

TOKEN_APP_ID_QUERY = """query TokenAppId($symbol: String!) {
  tokenAppId(symbol: $symbol)
}"""

BALANCE_QUERY = """query Balance($owner: String!) {
  balance(owner: $owner)
}"""

FAUCET_MINT_MUTATION = """mutation FaucetMint($amount: String!, $owner: String!) {
  faucetMint(amount: $amount, owner: $owner)
}"""


def has_graphql_errors(body: Any) -> bool:
    """The service reports failures either as `errors` or as a non-empty `error` list"""
    if not isinstance(body, dict):
        return False
    if body.get("errors"):
        return True
    error = body.get("error")
    return isinstance(error, list) and len(error) > 0


def _fee_bps(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        return 0
    try:
        return int(str(raw).strip())
    except ValueError:
        raise GraphQLRequestError(f"Unexpected feeBps value {raw!r}")


def pool_state_from_query(data: Dict[str, Any], symbol: Optional[str] = None) -> PoolState:
    """
    Build a PoolState from the `data` of POOL_STATE_QUERY.

    Raises:
        PoolUninitialized: a reserve is missing or unparseable
    """
    data = data or {}
    config = data.get("poolConfig") or {}
    x = loose_amount_to_attos(data.get("wlinReserve"))
    y = loose_amount_to_attos(data.get("tokenReserve"))
    if x is None or y is None:
        raise PoolUninitialized(f"No readable reserves for pool {symbol}")

    return PoolState(
        x=x,
        y=y,
        v_x=loose_amount_to_attos(config.get("vX")) or 0,
        v_y=loose_amount_to_attos(config.get("vY")) or 0,
        fee_bps=_fee_bps(config.get("feeBps")),
        total_curve_supply=loose_amount_to_attos(config.get("totalCurveSupply")),
        symbol=symbol,
    )


class LineraClient:
    """
    Client for the Linera node service GraphQL endpoint.

    Every application is reached at {endpoint}/chains/{chain}/applications/{app}.
    """

    def __init__(self, settings: Optional[LinadSettings] = None):
        self.settings = settings or get_settings()
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.settings.http_timeout_seconds),
            )
        return self.session

    async def close(self):
        """Close the session"""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self) -> "LineraClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def application_url(self, app_id: str) -> str:
        endpoint = self.settings.graphql_endpoint.rstrip("/")
        return f"{endpoint}/chains/{self.settings.chain_id}/applications/{app_id}"

    async def execute(self, app_id: str, query: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        """
        POST a GraphQL document to one application and return its `data`.

        Raises:
            GraphQLRequestError: non-2xx status, a GraphQL error list, or a
                transport failure (status None)
        """
        session = await self._get_session()
        url = self.application_url(app_id)
        try:
            async with session.post(url, json={"query": query, "variables": variables or {}}) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = {"error": [await response.text()]}
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"GraphQL request to {url} failed: {e!r}")
            raise GraphQLRequestError(f"Could not reach {url}: {e!r}", errors=[str(e)]) from e

        if status >= 400 or has_graphql_errors(body):
            errors = []
            if isinstance(body, dict):
                errors = body.get("errors") or body.get("error") or []
            if not isinstance(errors, list):
                errors = [errors]
            logger.error(f"GraphQL request to {url} failed ({status}): {errors}")
            raise GraphQLRequestError(
                f"GraphQL request failed with status {status}",
                status=status,
                errors=errors,
            )
        return body.get("data") if isinstance(body, dict) else None

    async def fetch_pool_state(self, symbol: str) -> PoolState:
        data = await self.execute(
            self.settings.matching_engine_app_id, POOL_STATE_QUERY, {"symbol": symbol}
        )
        return pool_state_from_query(data, symbol)

    async def fetch_token_app_id(self, symbol: str) -> Optional[str]:
        data = await self.execute(
            self.settings.token_factory_app_id, TOKEN_APP_ID_QUERY, {"symbol": symbol.strip()}
        )
        app_id = (data or {}).get("tokenAppId")
        if isinstance(app_id, str) and app_id.strip():
            return app_id.strip()
        return None

    async def fetch_balance(self, owner: str, app_id: Optional[str] = None) -> Optional[int]:
        """Balance in attos on a fungible application (wLin by default)"""
        data = await self.execute(
            app_id or self.settings.wlin_app_id, BALANCE_QUERY, {"owner": owner.strip()}
        )
        return loose_amount_to_attos((data or {}).get("balance"))

    async def faucet_mint(self, owner: str, amount: str) -> Any:
        logger.info(f"Requesting {amount} wLin from faucet for {owner}")
        return await self.execute(
            self.settings.faucet_app_id, FAUCET_MINT_MUTATION, {"amount": amount, "owner": owner}
        )
