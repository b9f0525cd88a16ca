"""
Router para el módulo de Gastos (Bills)
"""

from fastapi import APIRouter, Depends, status, Query, Path, Response
from typing import Optional
from uuid import UUID
from datetime import date

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.bills.service import BillService, BillPaymentService
from app.modules.bills.schemas import (
    BillDetail, BillList, BillStatus, BillFilters,
    BillPaymentOut, BillPaymentList
)
from app.modules.ledger.schemas import PurchaseInvoiceCreate, PurchaseInvoiceUpdate, PaymentCreate, StatusUpdate
from app.modules.ledger.service import LedgerService

# Router principal
bills_router = APIRouter(prefix="/bills", tags=["Bills Module"])

# Sub-routers
payments_out_router = APIRouter(prefix="/payments-out", tags=["Payments Out"])


# ===== BILLS ENDPOINTS =====

@bills_router.post("/", response_model=BillDetail, status_code=status.HTTP_201_CREATED)
async def create_bill(
    bill_data: PurchaseInvoiceCreate,
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Crear factura de compra

    - status received/paid: incrementa stock y la deuda con el proveedor
    - status draft/ordered: sin efecto hasta recibir la mercancía
    """
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    bill = await ledger.create_purchase_invoice(bill_data)
    return await BillService(store, auth_context.tenant_id).get_bill(bill.id)


@bills_router.get("/", response_model=BillList)
async def list_bills(
    store: store_dependency,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    contact_id: Optional[UUID] = Query(None, description="Filtrar por proveedor"),
    status: Optional[BillStatus] = Query(None),
    search: Optional[str] = Query(None),
    auth_context: AuthContext = Depends(get_auth_context)
):
    filters = BillFilters(
        status=status.value if status else None,
        contact_id=contact_id,
        date_from=start_date,
        date_to=end_date,
        search=search
    )
    bills, total = await BillService(store, auth_context.tenant_id).get_bills(filters, limit, offset)
    return BillList(items=bills, total=total, limit=limit, offset=offset)


@bills_router.get("/{bill_id}", response_model=BillDetail)
async def get_bill(
    store: store_dependency,
    bill_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    return await BillService(store, auth_context.tenant_id).get_bill(bill_id)


@bills_router.put("/{bill_id}", response_model=BillDetail)
async def update_bill(
    bill_data: PurchaseInvoiceUpdate,
    store: store_dependency,
    bill_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Editar factura de compra (cabecera y líneas). Si está recibida se ajustan stock y deuda."""
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.update_purchase_invoice(bill_id, bill_data)
    return await BillService(store, auth_context.tenant_id).get_bill(bill_id)


@bills_router.patch("/{bill_id}/status", response_model=BillDetail)
async def update_bill_status(
    status_data: StatusUpdate,
    store: store_dependency,
    bill_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Recibir, reabrir o anular. Entrar/salir de received mueve stock y saldo."""
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.update_purchase_status(bill_id, status_data.status, status_data.expected_delivery_date)
    return await BillService(store, auth_context.tenant_id).get_bill(bill_id)


@bills_router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bill(
    store: store_dependency,
    bill_id: UUID = Path(...),
    restore_stock: bool = Query(True, description="Descontar del inventario la mercancía recibida"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Eliminar la compra revirtiendo deuda y pagos. Idempotente."""
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.delete_purchase_invoice(bill_id, restore_stock=restore_stock)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== PAYMENTS OUT ENDPOINTS =====

@payments_out_router.post("/", response_model=BillPaymentOut, status_code=status.HTTP_201_CREATED)
async def create_payment_out(
    payment_data: PaymentCreate,
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    return await ledger.create_payment_out(payment_data)


@payments_out_router.get("/", response_model=BillPaymentList)
async def list_payments_out(
    store: store_dependency,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    contact_id: Optional[UUID] = Query(None),
    bill_id: Optional[UUID] = Query(None),
    auth_context: AuthContext = Depends(get_auth_context)
):
    payments, total = await BillPaymentService(store, auth_context.tenant_id).get_payments(
        contact_id, bill_id, limit, offset
    )
    return BillPaymentList(items=payments, total=total, limit=limit, offset=offset)


@payments_out_router.get("/{payment_id}", response_model=BillPaymentOut)
async def get_payment_out(
    store: store_dependency,
    payment_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    return await BillPaymentService(store, auth_context.tenant_id).get_payment(payment_id)


@payments_out_router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment_out(
    store: store_dependency,
    payment_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.delete_payment_out(payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
