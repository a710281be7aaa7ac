"""
Wallet context - the connected wallet and owner identity, passed explicitly
"""
import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from encoding.identity import AccountOwner, normalize_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletContext:
    """
    Immutable snapshot of who is acting.

    wallet_address is the identity the signing agent is connected as; owner is
    the chain account requests are made for (defaults to the wallet address).
    """
    wallet_address: Optional[str] = None
    owner: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return bool(self.wallet_address)

    @property
    def effective_owner(self) -> Optional[str]:
        return self.owner or self.wallet_address

    def owner_account(self) -> AccountOwner:
        return AccountOwner.parse(self.effective_owner or "")

    def matches(self, address: str) -> bool:
        if not self.wallet_address or not address:
            return False
        return normalize_hex(self.wallet_address) == normalize_hex(address)


ContextListener = Callable[[WalletContext], None]


class WalletSession:
    """
    Holds the current WalletContext and notifies listeners when it changes.

    External wallet events (account switched, disconnected) enter through
    apply_external_change; everything else reads `context` and passes the
    value along.
    """

    def __init__(self, context: Optional[WalletContext] = None):
        self._context = context or WalletContext()
        self._listeners: List[ContextListener] = []

    @property
    def context(self) -> WalletContext:
        return self._context

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply_external_change(
        self,
        wallet_address: Optional[str] = None,
        owner: Optional[str] = None,
        clear: bool = False,
    ) -> WalletContext:
        if clear:
            new_context = WalletContext()
        else:
            new_context = replace(
                self._context,
                wallet_address=wallet_address if wallet_address is not None else self._context.wallet_address,
                owner=owner if owner is not None else self._context.owner,
            )
        if new_context == self._context:
            return self._context

        self._context = new_context
        logger.info(f"Wallet context changed: wallet={new_context.wallet_address} owner={new_context.owner}")
        for listener in list(self._listeners):
            try:
                listener(new_context)
            except Exception as e:
                logger.error(f"Wallet context listener failed: {e}")
        return new_context

    async def connect(self, agent) -> WalletContext:
        """Adopt the agent's connected address as the wallet identity"""
        address = await agent.connected_address()
        if not address:
            return self.apply_external_change(clear=True)
        return self.apply_external_change(wallet_address=address)

    def disconnect(self) -> WalletContext:
        return self.apply_external_change(clear=True)
