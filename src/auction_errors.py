# --- auction_errors.py ---

class AuctionError(Exception):
    """Base class for auction-specific errors."""
    pass

class InitializationError(AuctionError):
    pass

class SetupFileError(InitializationError):
    def __init__(self, message, line_number=None):
        if line_number is not None:
            message = f"{message} (L{line_number})"
        super().__init__(message)
        self.line_number = line_number

class LifecycleError(AuctionError):
    """The host called an operation the current auction state does not allow."""
    pass

class PoolError(LifecycleError):
    pass

class LedgerError(AuctionError):
    """A settlement would break budget or slot conservation. Nothing was applied."""
    pass

class LobbyError(AuctionError):
    pass

class LogFileError(AuctionError):
    pass
