"""座位图生成与选座"""

import logging
from typing import Iterable, List, Optional

from ..models.seat import MAX_SEATS, SEATS_PER_ROW, Seat, SeatSelection
from ..utils.config import get_settings

logger = logging.getLogger(__name__)

# 列号 -> 座位位置。第 2 列为 middle 而非 aisle，与现有布局数据保持一致
_COLUMN_POSITIONS = {0: "window", 1: "aisle", 2: "middle", 3: "window"}


class SeatUnavailableError(ValueError):
    """选择了已被占用的座位"""


def seat_id_for(row: int, col: int) -> str:
    """行列号(从0开始) -> 座位编号，如 (1, 2) -> B3"""
    return f"{chr(ord('A') + row)}{col + 1}"


def generate_seat_map(total_seats: int, occupied_ids: Iterable[str] = (),
                      price: Optional[float] = None) -> List[Seat]:
    """生成座位图

    每排 4 座，最后一排可以不满。total_seats <= 0 时返回空列表；
    超过 MAX_SEATS 时排号用尽，直接拒绝。未给出 price 时使用配置的默认座位价格。
    """
    if total_seats <= 0:
        return []
    if total_seats > MAX_SEATS:
        raise ValueError(f"座位数 {total_seats} 超过上限 {MAX_SEATS}")
    if price is None:
        price = get_settings().default_seat_price

    occupied = set(occupied_ids)
    seats: List[Seat] = []
    rows = -(-total_seats // SEATS_PER_ROW)

    for row in range(rows):
        for col in range(SEATS_PER_ROW):
            if len(seats) >= total_seats:
                break
            seat_id = seat_id_for(row, col)
            seats.append(Seat(
                id=seat_id,
                number=seat_id,
                position=_COLUMN_POSITIONS[col],
                is_occupied=seat_id in occupied,
                is_selected=False,
                price=price,
            ))

    return seats


def toggle_seat(selection: SeatSelection, seat: Seat) -> bool:
    """切换座位选中状态；已占用座位直接拒绝"""
    if seat.is_occupied:
        logger.warning(f"座位已被占用，无法选择: {seat.id}")
        raise SeatUnavailableError(f"座位 {seat.id} 已被占用")
    return selection.toggle(seat.id)


def rows_of(seats: List[Seat]) -> List[List[Seat]]:
    """按排切分座位图，用于展示"""
    return [seats[i:i + SEATS_PER_ROW] for i in range(0, len(seats), SEATS_PER_ROW)]
