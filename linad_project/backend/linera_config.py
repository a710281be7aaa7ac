"""
Configuration for the linad backend - Linera GraphQL endpoint, application ids, trading defaults
"""
import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_GRAPHQL_ENDPOINT = "http://127.0.0.1:8080"
DEFAULT_CHAIN_ID = "761f62d709008c57a8eafb9d374522aa13f0a87b68ec4221861c73e0d1b67ced"
DEFAULT_TOKEN_FACTORY_APP_ID = "ff081619d9553ae6919dd0ed2268cd1ad988140275701136fe54805d31027990"
DEFAULT_MATCHING_ENGINE_APP_ID = "d3f86c75ffb1f389531b93def776a4de877e4b23ea58b348746f4fce910a31be"
DEFAULT_WLIN_APP_ID = "6a570896ff23d7a1db44398bae8b2ad12101af56cd244a7d694ed94ead048731"
DEFAULT_FAUCET_APP_ID = "5531238ece651244a3dfab368d5f9ae7c0fe5641c2fc70384e75ef3a427fd1f1"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


class LinadSettings(BaseModel):
    """Runtime settings; services receive an instance rather than reading the environment"""
    graphql_endpoint: str = DEFAULT_GRAPHQL_ENDPOINT
    chain_id: str = DEFAULT_CHAIN_ID
    token_factory_app_id: str = DEFAULT_TOKEN_FACTORY_APP_ID
    matching_engine_app_id: str = DEFAULT_MATCHING_ENGINE_APP_ID
    wlin_app_id: str = DEFAULT_WLIN_APP_ID
    faucet_app_id: str = DEFAULT_FAUCET_APP_ID
    default_decimals: int = Field(default=9, ge=0, le=255)
    default_supply: str = "800000000"
    slippage_bps: int = Field(default=100, ge=0, le=10_000)
    trade_allowance: str = "1000"
    sample_interval_seconds: float = Field(default=15.0, gt=0)
    reserve_recovery_fallback: bool = True
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    @classmethod
    def from_env(cls) -> "LinadSettings":
        return cls(
            graphql_endpoint=os.getenv("LINERA_GRAPHQL_ENDPOINT", DEFAULT_GRAPHQL_ENDPOINT),
            chain_id=os.getenv("LINAD_CHAIN_ID", DEFAULT_CHAIN_ID),
            token_factory_app_id=os.getenv("LINAD_TOKEN_FACTORY_APP_ID", DEFAULT_TOKEN_FACTORY_APP_ID),
            matching_engine_app_id=os.getenv("LINAD_MATCHING_ENGINE_APP_ID", DEFAULT_MATCHING_ENGINE_APP_ID),
            wlin_app_id=os.getenv("LINAD_WLIN_APP_ID", DEFAULT_WLIN_APP_ID),
            faucet_app_id=os.getenv("LINAD_FAUCET_APP_ID", DEFAULT_FAUCET_APP_ID),
            default_decimals=int(os.getenv("LINAD_DEFAULT_DECIMALS", "9")),
            default_supply=os.getenv("LINAD_DEFAULT_SUPPLY", "800000000"),
            slippage_bps=int(os.getenv("LINAD_SLIPPAGE_BPS", "100")),
            trade_allowance=os.getenv("LINAD_TRADE_ALLOWANCE", "1000"),
            sample_interval_seconds=float(os.getenv("LINAD_SAMPLE_INTERVAL_SECONDS", "15")),
            reserve_recovery_fallback=_env_bool("LINAD_RESERVE_RECOVERY_FALLBACK", True),
            http_timeout_seconds=float(os.getenv("LINAD_HTTP_TIMEOUT_SECONDS", "10")),
        )

    @property
    def matching_engine_owner(self) -> str:
        """The matching engine as an AccountOwner (approval spender)"""
        return f"0x{self.matching_engine_app_id}"


# Global settings instance (will be initialized on first use)
_settings: Optional[LinadSettings] = None


def get_settings() -> LinadSettings:
    """Get or create the settings instance"""
    global _settings
    if _settings is None:
        _settings = LinadSettings.from_env()
        logger.info(f"Using Linera GraphQL endpoint {_settings.graphql_endpoint}, chain {_settings.chain_id}")
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
