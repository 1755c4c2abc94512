"""Domain models and calculators for the portfolio and savings tracker.

This package holds the immutable (Pydantic) entities for ledger transactions,
portfolio holdings, savings assets and goals, together with the pure
calculators built on them. They are independent from persistence models so
that business rules can be tested without a database.
"""

__all__ = [
    "asset",
    "base_types",
    "cash_flow",
    "errors",
    "financial_goal",
    "ownership",
    "portfolio",
    "portfolio_holding",
    "pricing",
    "progress",
    "repository",
    "transaction",
    "validation",
]
