"""Request bodies for the storefront API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LoginInput(BaseModel):
    username: str = Field(default="", description="Admin username")
    password: str = Field(description="Admin password")


class InventoryUpdateInput(BaseModel):
    color: str = Field(description="Color to overwrite")
    qty: int = Field(strict=True, ge=0, description="New on-hand quantity")


class CartItemInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    color: str = Field(min_length=1, description="Color being purchased")
    qty: int = Field(strict=True, ge=1, description="Units of this color")


class CheckoutInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Validated by CheckoutService so a malformed cart maps to EmptyCart
    items: Any = Field(default=None, description="List of {color, qty}")
    shipping_state: str | None = Field(
        default=None,
        alias="shippingState",
        description="Client-supplied shipping state, echoed to the operator",
    )
