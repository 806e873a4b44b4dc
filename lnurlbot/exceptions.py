class LnurlError(Exception):
    """Base class for everything that can go wrong during an lnurl handshake."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LnurlDecodeError(LnurlError):
    """Malformed lnurl text, callback url or response payload."""


class LnurlTransportError(LnurlError):
    """DNS, connection or timeout failure, or a non-2xx status."""


class LnurlRemoteError(LnurlError):
    """
    The service answered with `{"status": "ERROR", "reason": ...}`.
    This is a documented server behavior, not a transport failure.
    """

    def __init__(self, host: str, reason: str):
        super().__init__(f"{host}: {reason}")
        self.host = host
        self.reason = reason


class LnurlUnsupportedError(LnurlError):
    def __init__(self, tag: str):
        super().__init__(f"Unsupported lnurl tag '{tag}'.")
        self.tag = tag


class LnurlProtocolError(LnurlError):
    """An invoice that does not match the negotiated metadata or amount."""


class PaymentError(Exception):
    def __init__(self, message: str, status: str = "pending"):
        super().__init__(message)
        self.message = message
        self.status = status


class InvoiceError(Exception):
    def __init__(self, message: str, status: str = "pending"):
        super().__init__(message)
        self.message = message
        self.status = status


class LedgerInvariantError(Exception):
    def __init__(self, account_id: int, balance: int):
        super().__init__(
            f"proxy account {account_id} balance is {balance}, it must always be 0"
        )
        self.account_id = account_id
        self.balance = balance
