"""
Router para el módulo de Contactos

Endpoints REST para clientes y proveedores. El saldo solo se consulta aquí;
lo modifican las facturas y los pagos.
"""

from fastapi import APIRouter, Depends, status, Query, Path, Response
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.contacts.service import ContactService
from app.modules.contacts.schemas import (
    ContactCreate, ContactUpdate, ContactOut, ContactList, ContactType
)
from app.modules.ledger.service import LedgerService

router = APIRouter(
    prefix="/contacts",
    tags=["Contacts"],
    responses={404: {"description": "Not found"}}
)


# ===== ENDPOINTS PRINCIPALES =====

@router.post("/", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
async def create_contact(
    contact_data: ContactCreate,
    store: store_dependency,
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Crear un nuevo contacto

    - **name**: Nombre del contacto (único por empresa)
    - **type**: customer, supplier o both
    - **opening_balance**: Saldo inicial (+ por cobrar, - por pagar)
    """
    service = ContactService(store, auth_context.tenant_id)
    return await service.create_contact(contact_data)


@router.get("/", response_model=ContactList)
async def get_contacts(
    store: store_dependency,
    limit: int = Query(20, ge=1, le=100, description="Número máximo de contactos a retornar"),
    offset: int = Query(0, ge=0, description="Número de contactos a omitir"),
    search: Optional[str] = Query(None, description="Búsqueda por nombre"),
    type: Optional[ContactType] = Query(None, description="Filtrar por tipo"),
    is_active: Optional[bool] = Query(None, description="Filtrar por estado activo"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = ContactService(store, auth_context.tenant_id)
    contacts, total = await service.list_contacts(
        type=type.value if type else None,
        search=search,
        is_active=is_active,
        limit=limit,
        offset=offset
    )
    return ContactList(items=contacts, total=total, limit=limit, offset=offset)


@router.get("/{contact_id}", response_model=ContactOut)
async def get_contact(
    store: store_dependency,
    contact_id: UUID = Path(..., description="ID del contacto"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    service = ContactService(store, auth_context.tenant_id)
    return await service.get_contact(contact_id)


@router.patch("/{contact_id}", response_model=ContactOut)
async def update_contact(
    contact_update: ContactUpdate,
    store: store_dependency,
    contact_id: UUID = Path(..., description="ID del contacto"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Actualizar datos del contacto (el saldo no es editable)."""
    service = ContactService(store, auth_context.tenant_id)
    return await service.update_contact(contact_id, contact_update)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    store: store_dependency,
    contact_id: UUID = Path(..., description="ID del contacto"),
    cascade: bool = Query(False, description="Borrar también sus facturas y pagos"),
    restore_stock: bool = Query(True, description="Revertir el stock de las facturas borradas"),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """
    Eliminar un contacto

    Con documentos asociados responde 409 salvo que se pida cascade. El borrado
    en cascada revierte saldos, pagos y (si restore_stock) el inventario.
    """
    ledger = LedgerService(store, auth_context.tenant_id, auth_context.actor)
    await ledger.delete_contact(contact_id, cascade=cascade, restore_stock=restore_stock)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
