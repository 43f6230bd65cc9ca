from .polymarket import PolymarketClient, parse_clob_market, parse_gamma_market

__all__ = [
    "PolymarketClient",
    "parse_clob_market",
    "parse_gamma_market",
]
