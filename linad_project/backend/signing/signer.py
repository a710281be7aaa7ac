"""
Domain-separated request signing

digest = keccak256(utf8("{TypeName}::") ++ bcs(payload)). The digest goes to a
signing agent as a personal_sign request; the raw signature that comes back is
packed for the chain verifier together with the caller-declared owner address.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from errors import OwnerMismatch, SignerUnavailable
from encoding.identity import encode_signature_hex, normalize_hex

logger = logging.getLogger(__name__)


def request_digest(type_name: str, payload: bytes) -> bytes:
    domain = f"{type_name}::".encode("utf-8")
    return bytes(Web3.keccak(domain + payload))


class SigningAgent(ABC):
    """External wallet able to personal_sign a 32-byte digest"""

    @abstractmethod
    async def connected_address(self) -> Optional[str]:
        """Address the agent currently signs as, or None when disconnected"""

    @abstractmethod
    async def personal_sign(self, digest_hex: str, address: str) -> str:
        """Return the raw 65-byte r||s||v signature as hex"""


class LocalAccountAgent(SigningAgent):
    """Signs with an in-process key (scripts, tests, local development)"""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def connected_address(self) -> Optional[str]:
        return self._account.address

    async def personal_sign(self, digest_hex: str, address: str) -> str:
        message = encode_defunct(hexstr=digest_hex)
        signed = self._account.sign_message(message)
        return bytes(signed.signature).hex()


@dataclass(frozen=True)
class SignedRequest:
    request: Any
    payload: bytes
    digest: bytes
    signature_hex: str

    def to_graphql(self) -> Dict[str, Any]:
        return {"payload": self.request.to_graphql(), "signatureHex": self.signature_hex}


class DomainSeparatedSigner:
    """Hashes a request under its type domain and obtains a packed signature"""

    def __init__(self, agent: Optional[SigningAgent] = None):
        self.agent = agent

    @staticmethod
    def digest(request) -> bytes:
        return request_digest(request.TYPE_NAME, request.to_bcs())

    async def sign(self, request, timeout: Optional[float] = None) -> SignedRequest:
        """
        Sign a request built by the encoding module.

        The declared owner is compared with the agent's connected identity
        before the agent is asked for anything. Cancellation and timeouts
        propagate to the caller.

        Raises:
            SignerUnavailable: no agent, or the agent has no connected account
            OwnerMismatch: request owner is not the connected account
        """
        if self.agent is None:
            raise SignerUnavailable("No signing agent available")

        connected = await self.agent.connected_address()
        if not connected:
            raise SignerUnavailable("Signing agent has no connected account")

        owner_hex = request.owner.to_hex()
        if normalize_hex(owner_hex) != normalize_hex(connected):
            raise OwnerMismatch(
                f"Owner {owner_hex} must match the connected wallet {connected}"
            )

        payload = request.to_bcs()
        digest = request_digest(request.TYPE_NAME, payload)
        digest_hex = "0x" + digest.hex()
        logger.debug(f"Requesting signature for {request.TYPE_NAME} digest {digest_hex}")

        raw_signature = await asyncio.wait_for(
            self.agent.personal_sign(digest_hex, connected),
            timeout=timeout,
        )
        signature_hex = encode_signature_hex(raw_signature, owner_hex)
        return SignedRequest(
            request=request,
            payload=payload,
            digest=digest,
            signature_hex=signature_hex,
        )
