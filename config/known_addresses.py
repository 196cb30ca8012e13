"""Static address tables: holder labels and verified liquidity lockers.

Kept out of the analyzers so the tables can be extended without touching
scanner logic.
"""

KNOWN_HOLDER_LABELS: dict[str, str] = {
    # Raydium
    "5Q544fKrFoe6tsEbD7S8EmxGTJYAKtTVhAW5Q5pge4j1": "Raydium AMM",
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8": "Raydium Authority",
    # Orca
    "9W959DqEETiGZocYWCQPaJ6sBmUzgfxXfqGeTEdp3aQP": "Orca Whirlpool",
    # Burn / native
    "1111111111111111111111111111111111111111111": "Burn Address",
    "So11111111111111111111111111111111111111112": "Wrapped SOL",
}

CONTRACT_LABEL = "Contract/Program"

VERIFIED_LOCK_PROGRAMS: frozenset[str] = frozenset({
    "TLckm2U5YEp3K2qDHhKvDL4m28WkNJuMsyZDN5Yb3Z1",  # Team Finance
    "UCr11111111111111111111111111111111111111",  # Unicrypt
})
