"""线路数据模型"""

from typing import List, Optional, Literal
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from .query import SearchCriteria
from .seat import MAX_SEATS

BusType = Literal["AC", "Non-AC"]


class Route(BaseModel):
    """班车线路信息模型"""
    id: str = Field(..., description="线路ID")
    name: str = Field(..., description="班车名称")
    bus_type: BusType = Field(..., description="车型 (AC / Non-AC)")
    origin: str = Field(..., description="出发城市")
    destination: str = Field(..., description="到达城市")
    departure_time: str = Field(..., description="出发时间")
    arrival_time: str = Field(..., description="到达时间")
    duration: str = Field(..., description="历时")
    price: float = Field(..., ge=0, description="单座票价")
    available_seats: int = Field(..., ge=0, description="余座数")
    total_seats: int = Field(..., ge=0, le=MAX_SEATS, description="总座位数")
    amenities: List[str] = Field(default_factory=list, description="车载设施")
    rating: float = Field(0, description="评分")
    image: Optional[str] = Field(None, description="图片地址")

    # 目录快照中已被占用的座位
    occupied_seats: List[str] = Field(default_factory=list, description="已占座位编号")

    @model_validator(mode="after")
    def check_seat_counts(self) -> "Route":
        if self.available_seats > self.total_seats:
            raise ValueError(
                f"余座数 {self.available_seats} 大于总座位数 {self.total_seats}"
            )
        return self


class RouteSearchResult(BaseModel):
    """线路搜索结果"""
    routes: List[Route] = Field(default_factory=list, description="线路列表")
    criteria: SearchCriteria = Field(..., description="查询条件")
    search_date: datetime = Field(default_factory=datetime.now, description="查询时间")
    total: int = Field(0, description="结果总数")
