# provide dataclass models

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class User:
    login: str
    password: str
    role: str  # "customer", "employee" or "manager"
    fav_games: Optional[str]
    phone_num: Optional[str]
    num_overdue_games: int


@dataclass(frozen=True)
class CatalogEntry:
    game_id: str
    name: str
    genre: str
    price: float
    description: Optional[str]
    image_url: Optional[str]


@dataclass(frozen=True)
class RentalOrder:
    rental_order_id: str
    login: str
    total_copies: int
    total_price: float
    ordered_at: datetime
    due_date: datetime


@dataclass(frozen=True)
class OrderLine:
    rental_order_id: str
    game_id: str
    quantity: int


@dataclass(frozen=True)
class TrackingInfo:
    tracking_id: str
    rental_order_id: str
    status: str
    current_location: str
    courier: str
    last_updated: datetime
    comments: Optional[str]


@dataclass(frozen=True)
class CartLine:
    game_id: str
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    game_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderSummary:
    lines: List[PricedLine] = field(default_factory=list)
    total_copies: int = 0
    total_price: Decimal = Decimal("0.00")
