"""Request/response schemas for purchases."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Range checks live in validate_amount so the API and the service agree
    amount_usd: float = Field(..., alias="amountUsd", allow_inf_nan=True)


class PurchaseResponse(BaseModel):
    success: bool = True
    positions_purchased: int
    positions_moved: int
    old_continent_rank: int
    new_continent_rank: int
    new_global_rank: int
    total_positions_purchased: int
    overtaken_count: int
    message: str
