"""
Marketplace item. Prices are Decimal, serialized as strings.
"""

from decimal import Decimal
from typing import Optional

from .base import WireModel


class EBook(WireModel):
    id: str
    title: str
    author: str
    price: Decimal
    description: str
    category: Optional[str] = None
