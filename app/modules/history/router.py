from fastapi import APIRouter, Depends, Query, Path
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.history.service import HistoryService
from app.modules.history.schemas import HistoryList

router = APIRouter(prefix="/history", tags=["History"])


@router.get("/", response_model=HistoryList)
async def list_recent_history(
    store: store_dependency,
    invoice_type: Optional[str] = Query(None, description="sale, purchase, payment_in, payment_out, item, contact"),
    limit: int = Query(50, ge=1, le=500),
    auth_context: AuthContext = Depends(get_auth_context)
):
    entries = await HistoryService(store, auth_context.tenant_id).list_recent(invoice_type, limit)
    return HistoryList(items=entries, total=len(entries))


@router.get("/{invoice_id}", response_model=HistoryList)
async def get_document_history(
    store: store_dependency,
    invoice_id: UUID = Path(..., description="ID de la factura, pago o ítem"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Historial completo de un documento, en orden cronológico."""
    entries = await HistoryService(store, auth_context.tenant_id).list_for_document(invoice_id)
    return HistoryList(items=entries, total=len(entries))
