"""
ZentriBank Retail Banking Backend

Cash accounts, admin-approved ledger transactions, transfers and a simulated
crypto wallet. All balance mutations are atomic and use Decimal precision.
"""

__version__ = "1.0.0"
