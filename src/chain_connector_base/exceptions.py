from typing import List, Optional


class ChainConnectionError(Exception):
    """Raised when an RPC endpoint cannot be reached or returns an error"""
    pass

class WalletServiceError(Exception):
    """Raised when the wallet service API returns an error"""
    pass

class QuoteUnavailableError(Exception):
    """Raised when the quoting API returns no usable quote"""
    pass

class InsufficientBalanceError(Exception):
    """Raised when a computed trade exceeds the source balance"""
    pass

class TransferFailedError(Exception):
    """Raised when a submitted transaction fails; keeps hashes that were broadcast"""

    def __init__(self, message: str, transaction_hashes: Optional[List[str]] = None):
        super().__init__(message)
        self.transaction_hashes = list(transaction_hashes or [])

class MalformedRecommendationError(ValueError):
    """Raised when a recommendation cannot be parsed into an allocation"""
    pass

class AutomationNotRunningError(Exception):
    """Raised when a recommendation is submitted while automation is stopped"""
    pass
