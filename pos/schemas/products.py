from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"

DEFAULT_CATEGORY_COLORS = {
    "Makanan": "#EF4444",
    "Minuman": "#3B82F6",
    "Katering": "#10B981",
    "Tambahan": "#F59E0B",
}
FALLBACK_COLOR = "#808080"

def default_color(category: str | None) -> str:
    return DEFAULT_CATEGORY_COLORS.get((category or "").strip(), FALLBACK_COLOR)

class ProductIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1, max_length=160)
    price: int = Field(gt=0)
    category: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    active: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: str | None) -> str | None:
        return (v or "").strip() or None

class ProductOut(BaseModel):
    id: str
    name: str
    price: float
    category: Optional[str] = None
    color: str
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
