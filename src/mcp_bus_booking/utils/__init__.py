"""工具包"""

from .config import get_settings
from .date_utils import format_date, validate_date, get_today

__all__ = ["get_settings", "format_date", "validate_date", "get_today"]
