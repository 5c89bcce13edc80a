from .values import ValueDiagnostics, normalize_store_token, parse_amount, parse_period_key

__all__ = [
    "ValueDiagnostics",
    "normalize_store_token",
    "parse_amount",
    "parse_period_key",
]
