from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING

from ebookstore.models.ebook import Ebook

if TYPE_CHECKING:
    from ebookstore.models.order import Order


class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    ebook_id: int = Field(foreign_key="ebook.id")

    # copied from the catalog at purchase time
    price: float

    order: Optional["Order"] = Relationship(back_populates="items")
    ebook: Optional["Ebook"] = Relationship()
