import asyncio
import json
import logging
from datetime import datetime
from typing import Dict, List
import uuid
import pytz

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
import uvicorn

from .models.query import SearchCriteria
from .models.route import Route
from .services.booking_service import BookingService
from .services.offer_service import OfferService
from .services.route_service import RouteService
from .services.seat_service import rows_of
from .utils.config import get_settings
from .utils.date_utils import validate_date

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
route_service = RouteService()
booking_service = BookingService()
offer_service = OfferService()

# MCP Protocol Version - Streamable HTTP transport
MCP_PROTOCOL_VERSION = "2025-03-26"
SERVER_NAME = "bus-booking-mcp-server"
SERVER_VERSION = "1.0.0"

# Connected clients for session management
connected_clients: Dict[str, Dict] = {}

_DATE_SCHEMA = {"type": "string", "title": "出行日期", "description": "格式：YYYY-MM-DD", "pattern": "^\\d{4}-\\d{2}-\\d{2}$"}

MCP_TOOLS = [
    {
        "name": "search-routes",
        "description": "班车线路查询。按出发地、目的地（不区分大小写的模糊匹配）和车型筛选，支持按票价、评分、出发时间排序，以及“仅空调/仅非空调/余座充足”快捷筛选。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "线路查询参数",
            "properties": {
                "origin": {"type": "string", "title": "出发地", "description": "例如：New York，留空匹配全部"},
                "destination": {"type": "string", "title": "目的地", "description": "例如：Boston，留空匹配全部"},
                "travel_date": _DATE_SCHEMA,
                "bus_type": {"type": "string", "title": "车型", "enum": ["AC", "Non-AC"]},
                "sort_by": {"type": "string", "title": "排序", "enum": ["price", "rating", "departure"]},
                "quick_filter": {"type": "string", "title": "快捷筛选", "enum": ["all", "ac", "non-ac", "available"], "default": "all"}
            },
            "additionalProperties": False
        }
    },
    {
        "name": "get-route-details",
        "description": "查询单条线路详情：车型、时刻、历时、票价、余座、车载设施、评分。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "线路详情参数",
            "properties": {
                "route_id": {"type": "string", "title": "线路ID", "minLength": 1}
            },
            "required": ["route_id"],
            "additionalProperties": False
        }
    },
    {
        "name": "get-seat-map",
        "description": "查询线路座位图。每排4座（靠窗/过道/中间/靠窗），标出已占用座位；指定日期时同时计入当天已确认订单的座位。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "座位图参数",
            "properties": {
                "route_id": {"type": "string", "title": "线路ID", "minLength": 1},
                "travel_date": _DATE_SCHEMA
            },
            "required": ["route_id"],
            "additionalProperties": False
        }
    },
    {
        "name": "create-booking",
        "description": "选座下单。总价为所选座位单价之和；已占用或不存在的座位会被拒绝。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "下单参数",
            "properties": {
                "route_id": {"type": "string", "title": "线路ID", "minLength": 1},
                "travel_date": _DATE_SCHEMA,
                "seats": {"type": "array", "title": "座位编号", "items": {"type": "string"}, "minItems": 1},
                "passenger_name": {"type": "string", "title": "乘客姓名", "minLength": 1},
                "passenger_phone": {"type": "string", "title": "乘客电话", "minLength": 1}
            },
            "required": ["route_id", "travel_date", "seats", "passenger_name", "passenger_phone"],
            "additionalProperties": False
        }
    },
    {
        "name": "list-bookings",
        "description": "查询订单列表，可按状态（confirmed/cancelled/completed）过滤。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "订单列表参数",
            "properties": {
                "status": {"type": "string", "title": "订单状态", "enum": ["confirmed", "cancelled", "completed"]}
            },
            "additionalProperties": False
        }
    },
    {
        "name": "cancel-booking",
        "description": "退订。仅已确认（confirmed）的订单可以退订。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "退订参数",
            "properties": {
                "booking_id": {"type": "string", "title": "订单号", "minLength": 1}
            },
            "required": ["booking_id"],
            "additionalProperties": False
        }
    },
    {
        "name": "list-offers",
        "description": "查询优惠活动及优惠码。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "优惠活动参数",
            "properties": {
                "active_only": {"type": "boolean", "title": "仅显示有效活动", "default": False}
            },
            "additionalProperties": False
        }
    },
    {
        "name": "get-current-time",
        "description": "获取当前日期和时间，方便用户选择出行日期。",
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "title": "获取当前时间参数",
            "properties": {
                "timezone": {"type": "string", "title": "时区", "description": "默认使用配置中的时区"}
            },
            "additionalProperties": False
        }
    }
]

app = FastAPI(
    title="Bus Booking MCP Server",
    version=SERVER_VERSION,
    description="基于MCP协议(2025-03-26 Streamable HTTP)的班车票务服务，支持线路查询、选座、下单与退订",
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

@app.get("/")
async def root():
    return {
        "name": "Bus Booking MCP Server",
        "version": SERVER_VERSION,
        "status": "running",
        "mcp_endpoint": "/mcp",
        "protocol_version": MCP_PROTOCOL_VERSION,
        "transport": "Streamable HTTP (2025-03-26)",
        "routes_loaded": len(route_service.routes),
        "tools": [tool["name"] for tool in MCP_TOOLS],
        "active_sessions": len(connected_clients)
    }

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "routes": len(route_service.routes),
        "bookings": len(booking_service.bookings),
        "active_sessions": len(connected_clients)
    }

@app.get("/schema/tools")
async def get_tools_schema():
    return {
        "tools": MCP_TOOLS,
        "schema_version": "http://json-schema.org/draft-07/schema#"
    }


def _jsonrpc_error(request_id, code: int, message: str, status_code: int, data=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return JSONResponse({"jsonrpc": "2.0", "id": request_id, "error": error}, status_code=status_code)


# MCP Streamable HTTP Transport Endpoints

@app.options("/mcp")
async def mcp_options():
    """Handle CORS preflight for /mcp endpoint"""
    return JSONResponse(
        {},
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "POST, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization, Mcp-Session-Id",
        }
    )

@app.post("/mcp")
async def mcp_endpoint_post(request: Request):
    """MCP Streamable HTTP Endpoint - POST for JSON-RPC messages"""
    request_id = None
    try:
        data = await request.json()

        # Validate JSON-RPC 2.0 format
        if not isinstance(data, dict) or data.get("jsonrpc") != "2.0":
            raise HTTPException(status_code=400, detail="Invalid JSON-RPC 2.0 message")

        method = data.get("method")
        params = data.get("params", {})
        request_id = data.get("id")

        if not method:
            raise HTTPException(status_code=400, detail="Method is required")

        logger.info(f"📨 Received MCP request: {method} (ID: {request_id})")

        # Handle initialization - no session ID required for this
        if method == "initialize":
            client_protocol_version = params.get("protocolVersion", MCP_PROTOCOL_VERSION)
            client_info = params.get("clientInfo", {})
            logger.info(f"🚀 Initialize request - Client Protocol: {client_protocol_version}, Client Info: {client_info}")

            session_id = str(uuid.uuid4())
            connected_clients[session_id] = {
                "connected_at": datetime.now().isoformat(),
                "user_agent": request.headers.get("user-agent", ""),
                "client_ip": request.client.host if request.client else "unknown",
                "initialized": False,
                "protocol_version": client_protocol_version
            }

            accepted_version = client_protocol_version or MCP_PROTOCOL_VERSION
            response = {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {
                    "protocolVersion": accepted_version,
                    "serverInfo": {
                        "name": SERVER_NAME,
                        "version": SERVER_VERSION,
                        "description": "班车票务服务，提供线路查询、座位图、下单、退订和优惠查询"
                    },
                    "capabilities": {
                        "tools": {},
                        "logging": {}
                    }
                }
            }
            logger.info(f"✅ Initialize response sent - Protocol: {accepted_version}, Session: {session_id}")
            return JSONResponse(
                response,
                headers={
                    "Mcp-Session-Id": session_id,
                    "Access-Control-Allow-Origin": "*"
                }
            )

        # For all other methods, require session ID
        session_id = request.headers.get("mcp-session-id")
        if not session_id:
            logger.error("❌ Missing Mcp-Session-Id header for non-initialize request")
            return _jsonrpc_error(request_id, -32000, "Bad Request: No valid session ID provided", 400)

        if session_id not in connected_clients:
            logger.error(f"❌ Invalid session ID: {session_id}")
            return _jsonrpc_error(request_id, -32000, "Invalid session ID", 404)

        if method == "tools/list":
            logger.info("📋 Tools list requested")
            return JSONResponse({
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"tools": MCP_TOOLS}
            })

        elif method == "tools/call":
            tool_name = params.get("name")
            arguments = params.get("arguments", {})

            if not tool_name:
                raise HTTPException(status_code=400, detail="Tool name is required")

            logger.info(f"🔧 Executing tool: {tool_name}")
            logger.info(f"📋 Arguments: {arguments}")

            try:
                handler = TOOL_HANDLERS.get(tool_name)
                if handler is None:
                    content = [{"type": "text", "text": f"❌ 未知工具: {tool_name}"}]
                else:
                    content = await handler(arguments)
                response = {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "result": {"content": content, "isError": False}
                }
                logger.info(f"✅ Tool {tool_name} executed successfully")
            except Exception as tool_error:
                logger.error(f"❌ Tool execution error: {tool_error}")
                response = {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "result": {
                        "content": [{"type": "text", "text": f"❌ 工具执行失败: {tool_error}"}],
                        "isError": True
                    }
                }
            return JSONResponse(response)

        # Notifications carry no response body
        elif method.startswith("notifications/"):
            notification_type = method.replace("notifications/", "")
            logger.info(f"📢 Received notification: {notification_type}")
            if notification_type == "initialized":
                connected_clients[session_id]["initialized"] = True
            return Response(status_code=202)

        elif method == "ping":
            return JSONResponse({
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"timestamp": datetime.now().isoformat(), "status": "alive"}
            })

        else:
            logger.warning(f"⚠️ Unknown method: {method}")
            return _jsonrpc_error(request_id, -32601, "Method not found", 404, {"method": method})

    except json.JSONDecodeError:
        logger.error("❌ Invalid JSON in request")
        return _jsonrpc_error(None, -32700, "Parse error", 400)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Unexpected error: {e}")
        return _jsonrpc_error(request_id, -32603, "Internal error", 500, {"error": str(e)})

@app.delete("/mcp")
async def mcp_endpoint_delete(request: Request):
    """MCP Streamable HTTP Endpoint - DELETE for session termination"""
    session_id = request.headers.get("mcp-session-id")

    if not session_id:
        return JSONResponse({"error": "Missing Mcp-Session-Id header"}, status_code=400)

    if session_id in connected_clients:
        del connected_clients[session_id]
        logger.info(f"🗑️ Session terminated: {session_id}")
        return Response(status_code=200)
    return JSONResponse({"error": "Invalid session ID"}, status_code=404)


def _text(text: str) -> List[dict]:
    return [{"type": "text", "text": text}]


def _format_route_line(i: int, route: Route) -> str:
    text = f"**{i}.** 🚌 **{route.name}** `[{route.id}]` ({route.bus_type})\n"
    text += f"      📍 {route.origin} → {route.destination}\n"
    text += f"      ⏰ `{route.departure_time}` → `{route.arrival_time}` (历时 {route.duration})\n"
    text += f"      💵 ${route.price:g} | 💺 余座 {route.available_seats}/{route.total_seats} | ⭐ {route.rating}\n"
    return text


# ========== 线路查询 ==========
async def search_routes_validated(args: dict) -> list:
    travel_date = (args.get("travel_date") or "").strip()
    if travel_date and not validate_date(travel_date):
        return _text("❌ 日期格式错误，请使用 YYYY-MM-DD 格式")
    try:
        criteria = SearchCriteria(
            origin=(args.get("origin") or "").strip(),
            destination=(args.get("destination") or "").strip(),
            travel_date=travel_date,
            bus_type=args.get("bus_type") or None,
            sort_by=args.get("sort_by") or None,
            quick_filter=args.get("quick_filter") or "all",
        )
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        return _text("❌ **参数验证失败:**\n" + "\n".join(f"{i+1}. {err}" for i, err in enumerate(errors)))

    logger.info(f"🔍 查询参数: {criteria.origin or '*'} → {criteria.destination or '*'} ({travel_date or '任意日期'})")
    result = await route_service.search_routes(criteria)
    if not result.routes:
        return _text(f"❌ 未找到匹配的线路（{criteria.origin or '*'} → {criteria.destination or '*'}）")

    text = f"🚌 **{criteria.origin or '*'} → {criteria.destination or '*'}**"
    if travel_date:
        text += f" ({travel_date})"
    text += f"\n\n📊 找到 **{result.total}** 条线路:\n\n"
    for i, route in enumerate(result.routes, 1):
        text += _format_route_line(i, route) + "\n"
    return _text(text)


async def get_route_details_validated(args: dict) -> list:
    route_id = str(args.get("route_id", "")).strip()
    if not route_id:
        return _text("❌ 线路ID不能为空")
    route = await route_service.get_route_by_id(route_id)
    if route is None:
        return _text(f"❌ 线路不存在: {route_id}")
    text = _format_route_line(1, route)
    if route.amenities:
        text += f"      🛋️ 设施: {', '.join(route.amenities)}\n"
    return _text(text)


# ========== 座位图 ==========
async def get_seat_map_validated(args: dict) -> list:
    route_id = str(args.get("route_id", "")).strip()
    travel_date = (args.get("travel_date") or "").strip()
    if not route_id:
        return _text("❌ 线路ID不能为空")
    if travel_date and not validate_date(travel_date):
        return _text("❌ 日期格式错误，请使用 YYYY-MM-DD 格式")

    await booking_service.ensure_loaded()
    booked = booking_service.booked_seats(route_id, travel_date or None)
    seats = await route_service.get_seat_map(route_id, booked)
    if seats is None:
        return _text(f"❌ 线路不存在: {route_id}")

    free = [s for s in seats if not s.is_occupied]
    text = f"💺 **座位图** `[{route_id}]`"
    if travel_date:
        text += f" ({travel_date})"
    text += f"\n\n🟩 可选 {len(free)} | ⛔ 已占 {len(seats) - len(free)}\n\n"
    for row in rows_of(seats):
        cells = [("⛔" if s.is_occupied else "🟩") + s.id for s in row]
        # 前两列与后两列之间为过道
        text += " ".join(cells[:2]) + "  |  " + " ".join(cells[2:]) + "\n"
    return _text(text)


# ========== 订单 ==========
async def create_booking_validated(args: dict) -> list:
    route_id = str(args.get("route_id", "")).strip()
    travel_date = (args.get("travel_date") or "").strip()
    seats = args.get("seats") or []
    errors = []
    if not route_id:
        errors.append("线路ID不能为空")
    if not travel_date:
        errors.append("出行日期不能为空")
    elif not validate_date(travel_date):
        errors.append("日期格式错误，请使用 YYYY-MM-DD 格式")
    if not isinstance(seats, list) or not all(isinstance(s, str) for s in seats):
        errors.append("座位编号必须为字符串列表")
    if errors:
        return _text("❌ **参数验证失败:**\n" + "\n".join(f"{i+1}. {err}" for i, err in enumerate(errors)))

    route = await route_service.get_route_by_id(route_id)
    if route is None:
        return _text(f"❌ 线路不存在: {route_id}")

    await booking_service.ensure_loaded()
    booked = booking_service.booked_seats(route_id, travel_date)
    seat_map = await route_service.get_seat_map(route_id, booked)
    # BookingError 交给 tools/call 统一处理为 isError
    booking = booking_service.create_booking(
        route, seat_map or [], [s.strip().upper() for s in seats], travel_date,
        args.get("passenger_name", ""), args.get("passenger_phone", ""),
    )
    text = f"✅ **下单成功** 订单号 `{booking.id}`\n\n"
    text += f"🚌 {booking.route_name}: {booking.origin} → {booking.destination}\n"
    text += f"📅 {booking.travel_date} `{booking.departure_time}`\n"
    text += f"💺 座位: {', '.join(booking.seats)}\n"
    text += f"💵 总价: ${booking.total_price:g}\n"
    return _text(text)


async def list_bookings_validated(args: dict) -> list:
    status = args.get("status") or None
    if status not in (None, "confirmed", "cancelled", "completed"):
        return _text(f"❌ 未知订单状态: {status}")
    await booking_service.ensure_loaded()
    bookings = booking_service.list_bookings(status)
    if not bookings:
        return _text("📭 暂无订单")
    text = f"🧾 共 **{len(bookings)}** 个订单:\n\n"
    for i, b in enumerate(bookings, 1):
        text += f"**{i}.** `{b.id}` [{b.status}] {b.route_name}: {b.origin} → {b.destination}\n"
        text += f"      📅 {b.travel_date} `{b.departure_time}` | 💺 {', '.join(b.seats)} | 💵 ${b.total_price:g}\n\n"
    return _text(text)


async def cancel_booking_validated(args: dict) -> list:
    booking_id = str(args.get("booking_id", "")).strip()
    if not booking_id:
        return _text("❌ 订单号不能为空")
    await booking_service.ensure_loaded()
    booking = booking_service.cancel_booking(booking_id)
    return _text(f"✅ 订单 `{booking.id}` 已退订")


# ========== 优惠 ==========
async def list_offers_validated(args: dict) -> list:
    active_only = bool(args.get("active_only", False))
    await offer_service.ensure_loaded()
    offers = offer_service.list_offers(active_only)
    if not offers:
        return _text("📭 暂无优惠活动")
    text = f"🎁 共 **{len(offers)}** 个优惠活动:\n\n"
    for i, o in enumerate(offers, 1):
        state = "有效" if o.is_active else "已失效"
        text += f"**{i}.** **{o.title}** `{o.code}` {o.discount} OFF [{state}]\n"
        text += f"      {o.description}\n"
        extra = [f"有效期至 {o.valid_until}"]
        if o.min_amount is not None:
            extra.append(f"最低消费 {o.min_amount:g}")
        if o.max_discount is not None:
            extra.append(f"最高优惠 {o.max_discount:g}")
        text += f"      {' | '.join(extra)}\n\n"
    return _text(text)


async def get_current_time_validated(args: dict) -> list:
    timezone_str = args.get("timezone") or settings.timezone
    try:
        tz = pytz.timezone(timezone_str)
    except pytz.exceptions.UnknownTimeZoneError:
        logger.warning(f"未知时区 {timezone_str}，使用 {settings.timezone}")
        tz = pytz.timezone(settings.timezone)
    now = datetime.now(tz)
    return _text(now.strftime("%Y-%m-%d %H:%M:%S") + f" {tz.zone}")


TOOL_HANDLERS = {
    "search-routes": search_routes_validated,
    "get-route-details": get_route_details_validated,
    "get-seat-map": get_seat_map_validated,
    "create-booking": create_booking_validated,
    "list-bookings": list_bookings_validated,
    "cancel-booking": cancel_booking_validated,
    "list-offers": list_offers_validated,
    "get-current-time": get_current_time_validated,
}

@app.on_event("startup")
async def startup_event():
    """应用启动时的初始化工作"""
    logger.info("🚀 启动班车票务MCP服务器...")
    logger.info(f"📋 协议版本: {MCP_PROTOCOL_VERSION}")
    await route_service.ensure_loaded()
    await booking_service.ensure_loaded()
    await offer_service.ensure_loaded()
    logger.info(f"✅ 已加载 {len(route_service.routes)} 条线路, {len(booking_service.bookings)} 个订单, {len(offer_service.offers)} 个优惠活动")

async def main_server():
    """启动MCP服务器"""
    logger.info(f"📡 MCP端点: http://{settings.server_host}:{settings.server_port}/mcp")
    logger.info(f"📚 健康检查: http://{settings.server_host}:{settings.server_port}/health")

    config = uvicorn.Config(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower()
    )
    uvicorn_server = uvicorn.Server(config)
    await uvicorn_server.serve()

def main():
    asyncio.run(main_server())

if __name__ == "__main__":
    main()
