"""
Services package for Reports module
"""

from .balances import BalanceReportService

__all__ = [
    "BalanceReportService"
]
