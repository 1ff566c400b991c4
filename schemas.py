"""
Database Schemas

All account data lives in a single MongoDB collection (``Userdata`` by default).
Each user document embeds its cart, orders and saved addresses as arrays, so the
models below describe one document and the records nested inside it.

Field names follow the stored documents exactly; clients read them back verbatim.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

ProductId = Union[int, str]


class CartItem(BaseModel):
    productId: ProductId
    name: Optional[str] = None
    price: Optional[float] = None
    productImg: Optional[str] = None
    quantity: int = Field(1, ge=1)


class Order(BaseModel):
    OrderId: Union[int, str]
    Address: Any = None
    TotalAmount: Optional[Union[float, str]] = None
    ProductData: Any = None
    Phone_number: Optional[Union[int, str]] = None
    BaseAmount: Optional[Union[float, str]] = None
    CashHandlingCharge: Optional[Union[float, str]] = None
    DeliveryCharge: Optional[Union[float, str]] = None
    Tax: Optional[Union[float, str]] = None
    DeliveredDate: Optional[str] = None
    OrderedDate: Optional[str] = None
    CancelledDate: Optional[str] = None
    OrderStatus: str = Field("Ordered", description="Ordered | Cancelled")


class Address(BaseModel):
    id: Optional[str] = Field(None, description="Client supplied key used for edit/delete")
    Name: Optional[str] = None
    Email: Optional[str] = None
    Phone_number: Optional[Union[int, str]] = None
    PIN_Code: Optional[Union[int, str]] = None
    Locality: Optional[str] = None
    Address: Optional[str] = None
    City: Optional[str] = None
    State: Optional[str] = None
    Landmark: Optional[str] = None
    Alternate_Phone_Number: Optional[Union[int, str]] = None
    Address_Type: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return None if value is None else str(value)


class User(BaseModel):
    Username: Optional[str] = None
    Name: Optional[str] = None
    Email: str = Field(..., description="Stored exactly as sent, lookups are exact-match")
    Password: str = Field(..., description="BCrypt hashed password")
    Gender: Optional[str] = None
    Address: List[dict] = Field(default_factory=list)
    Phone_Number: Optional[Union[int, str]] = None
    addToCart: List[dict] = Field(default_factory=list)
    Orders: List[dict] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
