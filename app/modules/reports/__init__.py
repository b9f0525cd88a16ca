"""
Reports Module

Read-only reports over the ledger tables. This module creates no tables:
it aggregates contacts, invoices and payments on demand.

- services/ -> query building and aggregation
- routers/ -> FastAPI endpoints
- schemas/ -> Pydantic response models
"""
