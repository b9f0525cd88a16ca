from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from enum import Enum


class DocumentType(str, Enum):
    SALE_INVOICE = "sale_invoice"
    PURCHASE_INVOICE = "purchase_invoice"
    PAYMENT_IN = "payment_in"
    PAYMENT_OUT = "payment_out"


class SequenceConfigUpdate(BaseModel):
    """Cambios parciales; next_number y padding se validan de nuevo en el servicio."""
    prefix: Optional[str] = Field(None, max_length=20)
    next_number: Optional[int] = None
    padding: Optional[int] = None
    terms_and_conditions: Optional[str] = None
    notes: Optional[str] = None
    due_date_days: Optional[int] = Field(None, ge=0, le=365)
    show_bank_details: Optional[bool] = None


class SequenceConfigOut(BaseModel):
    id: UUID
    document_type: str
    prefix: str
    next_number: int
    padding: int
    terms_and_conditions: Optional[str] = None
    notes: Optional[str] = None
    due_date_days: int
    show_bank_details: bool
    preview: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
