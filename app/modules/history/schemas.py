from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List, Any, Dict
from uuid import UUID
from datetime import datetime
import json


class HistoryEntryOut(BaseModel):
    id: UUID
    invoice_id: UUID
    invoice_type: str
    action: str
    description: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    user_id: Optional[UUID] = None
    user_name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("old_values", "new_values", mode="before")
    @classmethod
    def parse_snapshot(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v


class HistoryList(BaseModel):
    items: List[HistoryEntryOut]
    total: int
