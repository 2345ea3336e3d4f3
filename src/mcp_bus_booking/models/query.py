"""查询条件模型"""

from typing import Literal, Optional
from pydantic import BaseModel, Field

SortKey = Literal["price", "rating", "departure"]
QuickFilter = Literal["all", "ac", "non-ac", "available"]


class SearchCriteria(BaseModel):
    """线路查询条件

    空字符串的出发地/目的地匹配所有线路。
    """
    origin: str = Field(default="", description="出发地（子串，不区分大小写）")
    destination: str = Field(default="", description="目的地（子串，不区分大小写）")
    travel_date: str = Field(default="", description="出行日期 (YYYY-MM-DD)")
    bus_type: Optional[Literal["AC", "Non-AC"]] = Field(None, description="车型过滤，精确匹配")
    sort_by: Optional[SortKey] = Field(None, description="排序方式")
    quick_filter: QuickFilter = Field(default="all", description="结果快捷筛选")
