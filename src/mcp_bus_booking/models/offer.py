"""优惠活动数据模型"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


class Offer(BaseModel):
    """优惠活动模型"""
    id: str = Field(..., description="活动ID")
    title: str = Field(..., description="标题")
    description: str = Field("", description="说明")
    discount: str = Field(..., description="优惠额度（展示用）")
    valid_until: str = Field(..., description="有效期至")
    code: str = Field(..., description="优惠码")
    offer_type: Literal["percentage", "flat", "cashback"] = Field(..., description="优惠类型")
    min_amount: Optional[float] = Field(None, description="最低消费")
    max_discount: Optional[float] = Field(None, description="最高优惠")
    is_active: bool = Field(True, description="是否有效")
