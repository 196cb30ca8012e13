class ScannerError(Exception):
    pass


class InvalidTokenAddressError(ScannerError):
    pass


class TotalDataUnavailableError(ScannerError):
    """Every invoked analyzer degraded; a score from defaults alone is meaningless."""


class AnalyzerTimeoutError(ScannerError):
    """Overall scan deadline exceeded."""


class InvalidScanOptionsError(ScannerError):
    pass


class InvalidStatusTransitionError(ScannerError):
    pass


class AnalyzerError(ScannerError):
    """Single analyzer failure. Contained by the scanner, replaced by a default."""


class HoneypotCheckError(AnalyzerError):
    pass


class AuthorityCheckError(AnalyzerError):
    pass


class HolderAnalysisError(AnalyzerError):
    pass


class LiquidityCheckError(AnalyzerError):
    pass


class CacheError(ScannerError):
    pass
