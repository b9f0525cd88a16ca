"""
Balance Reports Router

FastAPI router for receivable/payable summaries and balance reconciliation.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Path

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.ledger.service import LedgerService
from ..services.balances import BalanceReportService
from ..schemas import (
    BalanceSummaryResponse,
    BalanceDriftResponse,
    ContactBalanceItem,
    ReconcileResponse,
    OpenInvoicesResponse
)


router = APIRouter(prefix="/reports/balances", tags=["Reports"])


@router.get("/summary", response_model=BalanceSummaryResponse)
async def get_balance_summary(
    store: store_dependency,
    as_of: Optional[date] = Query(None, description="Reference day (defaults to today)"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Total receivable/payable plus today's and this month's payments."""
    service = BalanceReportService(store, auth_context.tenant_id)
    return await service.get_summary(today=as_of)


@router.get("/receivable", response_model=OpenInvoicesResponse)
async def get_accounts_receivable(
    store: store_dependency,
    as_of: Optional[date] = Query(None, description="Reference day for overdue calculation"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = BalanceReportService(store, auth_context.tenant_id)
    return await service.get_open_invoices("sale", as_of)


@router.get("/payable", response_model=OpenInvoicesResponse)
async def get_accounts_payable(
    store: store_dependency,
    as_of: Optional[date] = Query(None, description="Reference day for overdue calculation"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = BalanceReportService(store, auth_context.tenant_id)
    return await service.get_open_invoices("purchase", as_of)


@router.get("/drift", response_model=BalanceDriftResponse)
async def get_balance_drift(
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Contacts whose stored balance disagrees with their invoices and payments."""
    service = BalanceReportService(store, auth_context.tenant_id)
    drifted = await service.balance_drift()
    return BalanceDriftResponse(contacts=drifted, total=len(drifted))


@router.get("/contacts/{contact_id}", response_model=ContactBalanceItem)
async def get_contact_balance(
    store: store_dependency,
    contact_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = BalanceReportService(store, auth_context.tenant_id)
    return await service.get_contact_balance(contact_id)


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_balances(
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Rewrite drifted balances from the ledger rows (one history entry per contact)."""
    service = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    corrected = await service.reconcile_balances()
    return ReconcileResponse(corrected=corrected, total_corrected=len(corrected))
