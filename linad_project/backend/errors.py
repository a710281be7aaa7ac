"""
Error taxonomy for the linad request-encoding and quoting backend
"""
from typing import Optional


class LinadError(Exception):
    """Base class for every error raised by this backend"""

    code = "linad_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self):
        return {"code": self.code, "message": self.message}


class FormatError(LinadError, ValueError):
    """Malformed hex, wrong length, negative amount, too many fractional digits"""

    code = "format_error"


class InvalidAddressLength(FormatError):
    code = "invalid_address_length"


class InvalidSignatureLength(FormatError):
    code = "invalid_signature_length"


class PoolUninitialized(LinadError):
    """Effective reserves are zero, the pool cannot quote yet"""

    code = "pool_uninitialized"


class ZeroQuote(LinadError):
    code = "zero_quote"


class OwnerMismatch(LinadError):
    """Declared owner differs from the identity the signing agent is connected as"""

    code = "owner_mismatch"


class SignerUnavailable(LinadError):
    code = "signer_unavailable"


class PriceOutOfRange(LinadError):
    """Price or quote outside (0, 1000); rejected, never clamped"""

    code = "price_out_of_range"


class TokenNotResolved(LinadError):
    code = "token_not_resolved"


class GraphQLRequestError(LinadError):
    """The chain query service was unreachable or answered with an HTTP failure or a GraphQL error list"""

    code = "graphql_error"

    def __init__(self, message: str, status: Optional[int] = None, errors=None):
        super().__init__(message)
        self.status = status
        self.errors = errors or []


class SlippageExceeded(LinadError):
    """Output below the signed minimum; the contract rejects such a trade"""

    code = "slippage_exceeded"
