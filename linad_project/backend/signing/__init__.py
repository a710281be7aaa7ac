"""
Request signing and wallet context
"""

from .signer import (
    DomainSeparatedSigner,
    LocalAccountAgent,
    SignedRequest,
    SigningAgent,
    request_digest,
)
from .wallet import WalletContext, WalletSession

__all__ = [
    "DomainSeparatedSigner",
    "LocalAccountAgent",
    "SignedRequest",
    "SigningAgent",
    "request_digest",
    "WalletContext",
    "WalletSession",
]
