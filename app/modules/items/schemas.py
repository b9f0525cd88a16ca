from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sku: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    unit: str = Field("unit", max_length=20)
    sale_price: Decimal = Field(Decimal("0"), ge=0)
    purchase_price: Decimal = Field(Decimal("0"), ge=0)
    stock_quantity: Decimal = Field(Decimal("0"), ge=0, description="Stock inicial")
    low_stock_alert: Decimal = Field(Decimal("0"), ge=0)


class ItemUpdate(BaseModel):
    """El stock no se edita aquí: usar /items/{id}/adjust-stock."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sku: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    unit: Optional[str] = Field(None, max_length=20)
    sale_price: Optional[Decimal] = Field(None, ge=0)
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    low_stock_alert: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None


class StockAdjustment(BaseModel):
    quantity: Decimal = Field(..., description="Cantidad a sumar (+) o restar (-)")
    notes: Optional[str] = Field(None, max_length=255)


class ItemOut(BaseModel):
    id: UUID
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    unit: str
    sale_price: Decimal
    purchase_price: Decimal
    stock_quantity: Decimal
    low_stock_alert: Decimal
    is_low_stock: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ItemList(BaseModel):
    items: List[ItemOut]
    total: int
    limit: int
    offset: int
