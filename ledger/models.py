from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class TradeItem(BaseModel):
    id: int
    seller: str
    venue_id: str = ""
    name: str
    description: str = ""
    price: Decimal
    quantity: int
    buyers: List[str] = Field(default_factory=list)
    image_ref: str = ""
    created_at: Optional[datetime] = None

    @property
    def sold_count(self) -> int:
        return len(self.buyers)

    @property
    def sold_out(self) -> bool:
        return self.quantity == 0


class RedemptionCode(BaseModel):
    id: int
    code: str
    amount: Decimal
    used: bool = False
    created_at: Optional[datetime] = None
    used_at: Optional[datetime] = None


class GameRecord(BaseModel):
    created_at: datetime
    star_cost: int
    game_id: str
    stars: int
    final_rank: str = ""
    is_active: bool = False
    order_type: str
