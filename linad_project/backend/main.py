"""
FastAPI backend server for linad - request encoding, trade quoting and price charts
"""
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from errors import (
    FormatError,
    GraphQLRequestError,
    LinadError,
    OwnerMismatch,
    PoolUninitialized,
    PriceOutOfRange,
    SignerUnavailable,
    SlippageExceeded,
    TokenNotResolved,
    ZeroQuote,
)
from encoding.amounts import decimal_to_attos
from encoding.identity import encode_signature_hex
from encoding.requests import (
    build_approve_request,
    build_create_token_request,
    build_intent_request,
    build_trade_request,
)
from amm.models import PoolState
from amm.quote_engine import quote_trade
from amm.spot_price import compute_spot_price
from charts.candles import PricePoint, build_candles, summarize_series
from linera_client import LineraClient
from linera_config import get_settings
from price_sampler import InMemoryPriceHistoryStore, PriceSampler
from signing.signer import request_digest
from transaction_simulator import TradeSimulator

logger = logging.getLogger(__name__)

app = FastAPI(title="linad Backend API", version="1.0.0")

# CORS middleware to allow frontend requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
settings = get_settings()
linera_client: Optional[LineraClient] = None
price_store = InMemoryPriceHistoryStore()
price_sampler: Optional[PriceSampler] = None

_STATUS_BY_ERROR = (
    (FormatError, 400),
    (PoolUninitialized, 422),
    (ZeroQuote, 422),
    (PriceOutOfRange, 422),
    (SlippageExceeded, 422),
    (OwnerMismatch, 409),
    (SignerUnavailable, 409),
    (TokenNotResolved, 404),
    (GraphQLRequestError, 502),
)


def http_error(error: LinadError) -> HTTPException:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status, detail=error.to_dict())
    return HTTPException(status_code=500, detail=error.to_dict())


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    global linera_client, price_sampler
    linera_client = LineraClient(settings)
    price_sampler = PriceSampler(linera_client, price_store, settings)
    logger.info(f"linad backend using {settings.graphql_endpoint}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    if linera_client:
        await linera_client.close()

# -------------------- Request/Response Models --------------------

class PoolModel(BaseModel):
    """Pool reserves as human decimal strings"""
    x: str
    y: str
    v_x: str = "0"
    v_y: str = "0"
    fee_bps: int = Field(default=0, ge=0, le=10_000)
    total_curve_supply: Optional[str] = None
    symbol: Optional[str] = None

    def to_pool_state(self) -> PoolState:
        return PoolState(
            x=decimal_to_attos(self.x),
            y=decimal_to_attos(self.y),
            v_x=decimal_to_attos(self.v_x),
            v_y=decimal_to_attos(self.v_y),
            fee_bps=self.fee_bps,
            total_curve_supply=(
                None if self.total_curve_supply is None else decimal_to_attos(self.total_curve_supply)
            ),
            symbol=self.symbol,
        )


class QuoteRequest(BaseModel):
    side: str
    amount: str
    pool: Optional[PoolModel] = None
    symbol: Optional[str] = None
    slippage_bps: Optional[int] = Field(default=None, ge=0, le=10_000)


class TradeLeg(BaseModel):
    side: str
    amount: str


class SimulateRequest(BaseModel):
    pool: PoolModel
    trades: List[TradeLeg]
    slippage_bps: Optional[int] = Field(default=None, ge=0, le=10_000)


class SignaturePackRequest(BaseModel):
    signature: str
    address: str


class CandlesRequest(BaseModel):
    points: List[Dict[str, Any]]
    bucket_seconds: int = Field(default=60, gt=0)


class PricePointRequest(BaseModel):
    token_app_id: str
    value: float
    time: Optional[float] = None


_BUILDERS = {
    "trade": lambda f: build_trade_request(f["owner"], f["symbol"], f["side"], f["amount"], f["minOut"]),
    "approve": lambda f: build_approve_request(f["owner"], f["spender"], f["allowance"]),
    "create-token": lambda f: build_create_token_request(
        f["owner"], f["name"], f["symbol"], int(f["decimals"]), f["supply"]
    ),
    "intent": lambda f: build_intent_request(f["owner"], f["symbol"], f["side"], f["amount"], f["limitPrice"]),
}

# -------------------- API Endpoints --------------------

@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "service": "linad Backend API"}


@app.get("/health")
async def health():
    """Health check with service status"""
    return {
        "status": "healthy",
        "services": {
            "linera_client": linera_client is not None,
            "price_sampler": price_sampler is not None,
        },
        "chain_id": settings.chain_id,
        "reserve_recovery_fallback": settings.reserve_recovery_fallback,
    }


async def _load_pool(pool: Optional[PoolModel], symbol: Optional[str]) -> PoolState:
    if pool is not None:
        return pool.to_pool_state()
    if not symbol:
        raise HTTPException(status_code=400, detail="Either pool or symbol is required")
    if not linera_client:
        raise HTTPException(status_code=503, detail="Linera client not initialized")
    return await linera_client.fetch_pool_state(symbol)


@app.post("/api/quote")
async def quote(request: QuoteRequest):
    """Quote a trade against a supplied pool or the live pool for a symbol"""
    try:
        pool = await _load_pool(request.pool, request.symbol)
        slippage = settings.slippage_bps if request.slippage_bps is None else request.slippage_bps
        result = quote_trade(pool, request.side, decimal_to_attos(request.amount), slippage)
        return {"quote": result.to_dict(), "pool": pool.to_dict()}
    except LinadError as e:
        raise http_error(e)


@app.get("/api/pools/{symbol}")
async def get_pool(symbol: str):
    try:
        pool = await _load_pool(None, symbol)
        return {"pool": pool.to_dict()}
    except LinadError as e:
        raise http_error(e)


@app.get("/api/pools/{symbol}/spot-price")
async def get_spot_price(symbol: str):
    try:
        pool = await _load_pool(None, symbol)
    except LinadError as e:
        raise http_error(e)
    result = compute_spot_price(pool, recovery_enabled=settings.reserve_recovery_fallback)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.to_dict())
    return result.to_dict()


@app.post("/api/simulate")
async def simulate(request: SimulateRequest):
    try:
        simulator = TradeSimulator(recovery_enabled=settings.reserve_recovery_fallback)
        slippage = settings.slippage_bps if request.slippage_bps is None else request.slippage_bps
        steps = simulator.simulate_sequence(
            request.pool.to_pool_state(),
            [(leg.side, decimal_to_attos(leg.amount)) for leg in request.trades],
            slippage,
        )
        return {"steps": [step.to_dict() for step in steps]}
    except LinadError as e:
        raise http_error(e)


@app.post("/api/requests/{request_type}/encode")
async def encode_request(request_type: str, fields: Dict[str, Any]):
    """Canonical payload bytes and the digest a wallet must sign"""
    builder = _BUILDERS.get(request_type)
    if builder is None:
        raise HTTPException(status_code=404, detail=f"Unknown request type {request_type}")
    try:
        request = builder(fields)
        payload = request.to_bcs()
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Missing field {e.args[0]}")
    except LinadError as e:
        raise http_error(e)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    digest = request_digest(request.TYPE_NAME, payload)
    return {
        "type_name": request.TYPE_NAME,
        "payload_hex": payload.hex(),
        "digest_hex": "0x" + digest.hex(),
        "graphql_payload": request.to_graphql(),
    }


@app.post("/api/signatures/pack")
async def pack_signature(request: SignaturePackRequest):
    try:
        return {"signature_hex": encode_signature_hex(request.signature, request.address)}
    except LinadError as e:
        raise http_error(e)


@app.post("/api/candles")
async def candles(request: CandlesRequest):
    result = build_candles(request.points, request.bucket_seconds)
    return {
        "candles": [c.to_dict() for c in result],
        "summary": summarize_series(request.points, request.bucket_seconds),
    }


@app.get("/api/prices")
async def get_prices(token_app_id: str):
    points = await price_store.series(token_app_id)
    return {
        "data": [p.to_dict() for p in points],
        "candles": [c.to_dict() for c in build_candles(points)],
    }


@app.post("/api/prices")
async def append_price(request: PricePointRequest):
    point_time = request.time if request.time is not None else int(time.time() * 1000)
    try:
        await price_store.append(request.token_app_id, PricePoint(time=point_time, value=request.value))
    except LinadError as e:
        raise http_error(e)
    return {"ok": True}


@app.delete("/api/prices")
async def reset_prices(token_app_id: str):
    await price_store.reset(token_app_id)
    return {"ok": True}


@app.post("/api/prices/{token_app_id}/sample")
async def sample_price(token_app_id: str, symbol: str):
    if not price_sampler:
        raise HTTPException(status_code=503, detail="Price sampler not initialized")
    result = await price_sampler.sample_now(token_app_id, symbol)
    if result.skipped:
        return {"ok": False, "skipped": True}
    if not result.success:
        detail = result.spot.to_dict() if result.spot else {"error": str(result.error)}
        raise HTTPException(status_code=422, detail=detail)
    return {"ok": True, "point": result.point.to_dict(), "source": result.spot.source}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
