"""线路目录过滤与排序"""

import logging
from typing import Callable, Dict, List, Sequence

from ..models.query import SearchCriteria
from ..models.route import Route

logger = logging.getLogger(__name__)

# “余座充足”的默认阈值：余座数需严格大于该值
AVAILABLE_SEATS_THRESHOLD = 5

_SORTERS: Dict[str, Callable[[List[Route]], List[Route]]] = {
    "price": lambda routes: sorted(routes, key=lambda r: r.price),
    "rating": lambda routes: sorted(routes, key=lambda r: r.rating, reverse=True),
    "departure": lambda routes: sorted(routes, key=lambda r: r.departure_time),
}


def filter_catalog(routes: Sequence[Route], criteria: SearchCriteria,
                   available_threshold: int = AVAILABLE_SEATS_THRESHOLD) -> List[Route]:
    """按出发地、目的地、车型过滤线路，并按需排序

    出发地/目的地为不区分大小写的子串匹配，车型为精确匹配。
    未指定排序时保持输入顺序；sorted 为稳定排序，同值线路也保持原顺序。
    """
    origin = criteria.origin.lower()
    destination = criteria.destination.lower()

    results = [
        route for route in routes
        if origin in route.origin.lower()
        and destination in route.destination.lower()
        and (criteria.bus_type is None or route.bus_type == criteria.bus_type)
    ]

    if criteria.sort_by:
        results = _SORTERS[criteria.sort_by](results)

    if criteria.quick_filter != "all":
        results = [r for r in results if _quick_filter_match(r, criteria.quick_filter, available_threshold)]

    logger.debug(f"线路过滤: {len(routes)} -> {len(results)} ({criteria.model_dump(exclude_defaults=True)})")
    return results


def _quick_filter_match(route: Route, quick_filter: str, available_threshold: int) -> bool:
    if quick_filter == "ac":
        return route.bus_type == "AC"
    if quick_filter == "non-ac":
        return route.bus_type == "Non-AC"
    if quick_filter == "available":
        return route.available_seats > available_threshold
    return True
