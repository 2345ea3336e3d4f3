"""日期工具"""

from datetime import datetime, date, timedelta
from typing import Union
import re

# 接受的输入格式，输出统一为 YYYY-MM-DD
_INPUT_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y")


def parse_date(value: Union[datetime, date, str]) -> date:
    """把字符串/日期对象解析为 date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"无法解析日期格式: {value}")


def format_date(dt: Union[datetime, date, str]) -> str:
    """格式化日期为YYYY-MM-DD格式"""
    return parse_date(dt).strftime("%Y-%m-%d")


def validate_date(date_str: str) -> bool:
    """验证日期格式"""
    pattern = r'^\d{4}-\d{2}-\d{2}$'
    if not re.match(pattern, date_str):
        return False

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
        return True
    except ValueError:
        return False


def get_today() -> str:
    """获取今天的日期"""
    return date.today().strftime("%Y-%m-%d")


def get_tomorrow() -> str:
    """获取明天的日期"""
    return (date.today() + timedelta(days=1)).strftime("%Y-%m-%d")
