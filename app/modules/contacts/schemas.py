"""
Esquemas Pydantic para el módulo de Contactos
"""

from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum


class ContactType(str, Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    BOTH = "both"


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: ContactType = ContactType.CUSTOMER
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    opening_balance: Decimal = Field(Decimal("0"), description="Saldo inicial (+ por cobrar, - por pagar)")
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    credit_days: int = Field(0, ge=0, le=365)
    notes: Optional[str] = None


class ContactUpdate(BaseModel):
    """El saldo no se edita aquí: solo lo mueve el ledger."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[ContactType] = None
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    credit_days: Optional[int] = Field(None, ge=0, le=365)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ContactOut(BaseModel):
    id: UUID
    name: str
    type: ContactType
    email: Optional[str] = None
    phone: Optional[str] = None
    opening_balance: Decimal
    current_balance: Decimal
    credit_limit: Optional[Decimal] = None
    credit_days: int
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContactList(BaseModel):
    items: List[ContactOut]
    total: int
    limit: int
    offset: int


class ContactBalance(BaseModel):
    """Saldo almacenado vs. saldo derivado de las filas del ledger"""
    contact_id: UUID
    name: str
    stored_balance: Decimal
    derived_balance: Decimal
    drift: Decimal
    in_sync: bool
