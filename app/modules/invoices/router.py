from fastapi import APIRouter, Depends, status, Query, Path, Response
from typing import List, Optional
from uuid import UUID
from datetime import date

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.schemas import (
    SaleInvoiceDetail, SaleInvoiceList, SaleInvoiceStatus, InvoiceFilters,
    PaymentInOut, PaymentInList
)
from app.modules.ledger.schemas import SaleInvoiceCreate, SaleInvoiceUpdate, PaymentCreate, StatusUpdate
from app.modules.ledger.service import LedgerService

# Router principal del módulo de facturas
router = APIRouter(prefix="/invoices", tags=["Invoices"])

# Pagos recibidos
payments_in_router = APIRouter(prefix="/payments-in", tags=["Payments In"])


@router.post("/", response_model=SaleInvoiceDetail, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: SaleInvoiceCreate,
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Crear una nueva factura de venta

    Descuenta el stock de los ítems y aumenta el saldo del cliente por el
    total, en una sola transacción. Si no se envía invoice_number se asigna
    el siguiente de la secuencia.
    """
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    invoice = await ledger.create_sale_invoice(invoice_data)
    return await InvoiceService(store, auth_context.tenant_id).get_invoice_by_id(invoice.id)


@router.get("/", response_model=SaleInvoiceList)
async def list_invoices(
    store: store_dependency,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = Query(None, description="Fecha inicial (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Fecha final (YYYY-MM-DD)"),
    contact_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    status: Optional[SaleInvoiceStatus] = Query(None, description="Estado de la factura"),
    search: Optional[str] = Query(None, description="Buscar por número, cliente o notas"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    filters = InvoiceFilters(
        status=status.value if status else None,
        contact_id=contact_id,
        date_from=start_date,
        date_to=end_date,
        search=search
    )
    invoices, total = await InvoiceService(store, auth_context.tenant_id).get_invoices(filters, limit, offset)
    return SaleInvoiceList(items=invoices, total=total, limit=limit, offset=offset)


@router.get("/{invoice_id}", response_model=SaleInvoiceDetail)
async def get_invoice(
    store: store_dependency,
    invoice_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    return await InvoiceService(store, auth_context.tenant_id).get_invoice_by_id(invoice_id)


@router.get("/{invoice_id}/payments", response_model=List[PaymentInOut])
async def get_invoice_payments(
    store: store_dependency,
    invoice_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = InvoiceService(store, auth_context.tenant_id)
    await service.get_invoice_by_id(invoice_id)
    return await service.get_invoice_payments(invoice_id)


@router.put("/{invoice_id}", response_model=SaleInvoiceDetail)
async def update_invoice(
    invoice_data: SaleInvoiceUpdate,
    store: store_dependency,
    invoice_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Editar una factura de venta

    Reemplaza cabecera y líneas. El stock y el saldo del cliente se ajustan a
    la diferencia entre la versión anterior y la nueva; los pagos se conservan.
    """
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.update_sale_invoice(invoice_id, invoice_data)
    return await InvoiceService(store, auth_context.tenant_id).get_invoice_by_id(invoice_id)


@router.patch("/{invoice_id}/status", response_model=SaleInvoiceDetail)
async def update_invoice_status(
    status_data: StatusUpdate,
    store: store_dependency,
    invoice_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Cambiar el estado (draft, unpaid, sent, overdue, cancelled). No mueve stock ni saldo."""
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.update_sale_status(invoice_id, status_data.status)
    return await InvoiceService(store, auth_context.tenant_id).get_invoice_by_id(invoice_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    store: store_dependency,
    invoice_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Eliminar la factura revirtiendo stock, saldo y pagos ligados. Idempotente."""
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.delete_sale_invoice(invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== PAGOS RECIBIDOS =====

@payments_in_router.post("/", response_model=PaymentInOut, status_code=status.HTTP_201_CREATED)
async def create_payment_in(
    payment_data: PaymentCreate,
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Registrar un pago recibido

    Con invoice_id actualiza amount_paid/amount_due/estado de la factura.
    Siempre disminuye el saldo del cliente.
    """
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    return await ledger.create_payment_in(payment_data)


@payments_in_router.get("/", response_model=PaymentInList)
async def list_payments_in(
    store: store_dependency,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    contact_id: Optional[UUID] = Query(None),
    auth_context: AuthContext = Depends(get_auth_context)
):
    payments, total = await InvoiceService(store, auth_context.tenant_id).get_payments(contact_id, limit, offset)
    return PaymentInList(items=payments, total=total, limit=limit, offset=offset)


@payments_in_router.get("/{payment_id}", response_model=PaymentInOut)
async def get_payment_in(
    store: store_dependency,
    payment_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    return await InvoiceService(store, auth_context.tenant_id).get_payment_by_id(payment_id)


@payments_in_router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment_in(
    store: store_dependency,
    payment_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Revertir el pago. Si ya no existe la operación no hace nada."""
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.delete_payment_in(payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
