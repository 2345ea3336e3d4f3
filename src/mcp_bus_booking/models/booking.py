"""订单数据模型"""

from typing import List, Literal
from pydantic import BaseModel, Field

BookingStatus = Literal["confirmed", "cancelled", "completed"]


class Booking(BaseModel):
    """订单信息模型"""
    id: str = Field(..., description="订单号")
    route_id: str = Field(..., description="线路ID")
    route_name: str = Field(..., description="班车名称")
    origin: str = Field(..., description="出发城市")
    destination: str = Field(..., description="到达城市")
    travel_date: str = Field(..., description="出行日期 (YYYY-MM-DD)")
    departure_time: str = Field(..., description="出发时间")
    arrival_time: str = Field(..., description="到达时间")
    seats: List[str] = Field(default_factory=list, description="座位编号")
    total_price: float = Field(..., ge=0, description="总价")
    status: BookingStatus = Field(default="confirmed", description="订单状态")
    booking_date: str = Field(..., description="下单日期")
    passenger_name: str = Field(..., description="乘客姓名")
    passenger_phone: str = Field(..., description="乘客电话")
