"""
Routers package for Reports module
"""

from .balances import router as balances_router
