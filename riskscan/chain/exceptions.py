class ChainClientError(Exception):
    pass


class AccountNotFoundError(ChainClientError):
    pass


class SimulationUnavailableError(ChainClientError):
    """Quote/simulation backend is down, which says nothing about the token itself."""
