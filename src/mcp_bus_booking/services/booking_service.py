"""订单服务"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from pydantic import ValidationError

from ..models.booking import Booking
from ..models.route import Route
from ..models.seat import Seat, SeatSelection
from ..utils.date_utils import get_today, validate_date
from ..utils.resources import read_json, resource_path

logger = logging.getLogger(__name__)


class BookingError(ValueError):
    """下单/退订失败"""


class BookingService:
    """内存订单簿，启动时用 bookings.json 预置数据"""

    def __init__(self):
        self.bookings: List[Booking] = []
        self.loaded = False

    async def load_bookings(self, path: Union[str, Path, None] = None):
        path = path or resource_path("bookings.json")
        data = await read_json(path)
        if data is None:
            return
        bookings = []
        for item in data:
            try:
                bookings.append(Booking.model_validate(item))
            except ValidationError as e:
                logger.warning(f"解析订单数据失败，跳过: {item!r}: {e.error_count()}个错误")
        self.bookings = bookings
        self.loaded = True
        logger.info(f"已加载{len(self.bookings)}个订单")

    async def ensure_loaded(self):
        if not self.loaded:
            await self.load_bookings()

    def list_bookings(self, status: Optional[str] = None) -> List[Booking]:
        if status is None:
            return list(self.bookings)
        return [b for b in self.bookings if b.status == status]

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        return None

    def booked_seats(self, route_id: str, travel_date: Optional[str] = None) -> Set[str]:
        """已确认订单占用的座位；不传日期时统计该线路全部确认订单"""
        seats: Set[str] = set()
        for b in self.bookings:
            if b.route_id != route_id or b.status != "confirmed":
                continue
            if travel_date and b.travel_date != travel_date:
                continue
            seats.update(b.seats)
        return seats

    def _next_id(self) -> str:
        numbers = [int(b.id[1:]) for b in self.bookings if b.id[:1] == "B" and b.id[1:].isdigit()]
        return f"B{max(numbers, default=0) + 1:03d}"

    def create_booking(self, route: Route, seat_map: List[Seat], seat_ids: Iterable[str],
                       travel_date: str, passenger_name: str, passenger_phone: str) -> Booking:
        """下单

        seat_map 应已包含所有占用信息（目录快照 + 已确认订单）。
        """
        seat_ids = list(seat_ids)
        errors = []
        if not seat_ids:
            errors.append("未选择座位")
        if len(set(seat_ids)) != len(seat_ids):
            errors.append("座位编号重复")
        if not validate_date(travel_date):
            errors.append(f"出行日期格式错误: {travel_date}")
        if not passenger_name.strip():
            errors.append("乘客姓名不能为空")
        if not passenger_phone.strip():
            errors.append("乘客电话不能为空")

        seats_by_id = {seat.id: seat for seat in seat_map}
        unknown = [s for s in seat_ids if s not in seats_by_id]
        if unknown:
            errors.append(f"座位不存在: {', '.join(unknown)}")
        occupied = [s for s in seat_ids if s in seats_by_id and seats_by_id[s].is_occupied]
        if occupied:
            errors.append(f"座位已被占用: {', '.join(occupied)}")

        if errors:
            logger.warning(f"下单失败: {route.id}: {errors}")
            raise BookingError("; ".join(errors))

        selection = SeatSelection(seat_ids)
        booking = Booking(
            id=self._next_id(),
            route_id=route.id,
            route_name=route.name,
            origin=route.origin,
            destination=route.destination,
            travel_date=travel_date,
            departure_time=route.departure_time,
            arrival_time=route.arrival_time,
            seats=list(selection),
            total_price=selection.total_price(seat_map),
            status="confirmed",
            booking_date=get_today(),
            passenger_name=passenger_name.strip(),
            passenger_phone=passenger_phone.strip(),
        )
        self.bookings.append(booking)
        logger.info(f"下单成功: {booking.id} {route.name} 座位 {booking.seats} 总价 {booking.total_price}")
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        """退订，仅已确认的订单可以退订"""
        booking = self.get_booking(booking_id)
        if booking is None:
            raise BookingError(f"订单不存在: {booking_id}")
        if booking.status != "confirmed":
            raise BookingError(f"订单状态为 {booking.status}，无法退订")

        cancelled = booking.model_copy(update={"status": "cancelled"})
        self.bookings = [cancelled if b.id == booking_id else b for b in self.bookings]
        logger.info(f"订单已退订: {booking_id}")
        return cancelled
