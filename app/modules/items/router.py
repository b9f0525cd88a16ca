from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.items.service import ItemService
from app.modules.items.schemas import ItemCreate, ItemUpdate, ItemOut, ItemList, StockAdjustment

router = APIRouter(
    prefix="/items",
    tags=["Items"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_data: ItemCreate,
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = ItemService(store, auth_context.tenant_id, auth_context.actor)
    return await service.create_item(item_data)


@router.get("/", response_model=ItemList)
async def list_items(
    store: store_dependency,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Búsqueda por nombre o SKU"),
    low_stock: Optional[bool] = Query(None, description="Solo ítems en o bajo el mínimo"),
    is_active: Optional[bool] = Query(None),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = ItemService(store, auth_context.tenant_id)
    items, total = await service.list_items(search, low_stock, is_active, limit, offset)
    return ItemList(items=items, total=total, limit=limit, offset=offset)


@router.get("/{item_id}", response_model=ItemOut)
async def get_item(
    store: store_dependency,
    item_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    return await ItemService(store, auth_context.tenant_id).get_item(item_id)


@router.patch("/{item_id}", response_model=ItemOut)
async def update_item(
    item_update: ItemUpdate,
    store: store_dependency,
    item_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = ItemService(store, auth_context.tenant_id, auth_context.actor)
    return await service.update_item(item_id, item_update)


@router.post("/{item_id}/adjust-stock", response_model=ItemOut)
async def adjust_stock(
    adjustment: StockAdjustment,
    store: store_dependency,
    item_id: UUID = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Ajuste manual de inventario.

    Rechaza (409) un ajuste que deje el stock en negativo.
    """
    service = ItemService(store, auth_context.tenant_id, auth_context.actor)
    return await service.adjust_stock(item_id, adjustment.quantity, adjustment.notes)
