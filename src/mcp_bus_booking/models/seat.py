"""座位数据模型"""

from typing import Iterable, Literal, Set
from pydantic import BaseModel, Field

SeatPosition = Literal["window", "aisle", "middle"]

SEATS_PER_ROW = 4
# 排号用 A-Z，最多 26 排
MAX_SEATS = 26 * SEATS_PER_ROW


class Seat(BaseModel):
    """座位信息模型"""
    id: str = Field(..., description="座位编号，如 A1")
    number: str = Field(..., description="显示编号")
    position: SeatPosition = Field(..., description="座位位置")
    is_occupied: bool = Field(False, description="是否已被占用")
    is_selected: bool = Field(False, description="是否已选（由调用方维护）")
    price: float = Field(..., ge=0, description="座位价格")


class SeatSelection:
    """调用方持有的已选座位集合"""

    def __init__(self, seat_ids: Iterable[str] = ()):
        self._seat_ids: Set[str] = set(seat_ids)

    def __contains__(self, seat_id: str) -> bool:
        return seat_id in self._seat_ids

    def __len__(self) -> int:
        return len(self._seat_ids)

    def __iter__(self):
        return iter(sorted(self._seat_ids))

    def __repr__(self):
        return f"SeatSelection({sorted(self._seat_ids)})"

    def toggle(self, seat_id: str) -> bool:
        """切换选中状态，返回切换后是否选中"""
        if seat_id in self._seat_ids:
            self._seat_ids.remove(seat_id)
            return False
        self._seat_ids.add(seat_id)
        return True

    def clear(self):
        self._seat_ids.clear()

    def total_price(self, seats: Iterable[Seat]) -> float:
        """按座位单价累加已选座位总价"""
        return sum(seat.price for seat in seats if seat.id in self._seat_ids)
