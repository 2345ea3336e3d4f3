import pytest

from mcp_bus_booking import server


async def open_session(client) -> str:
    resp = await client.post("/mcp", json={
        "jsonrpc": "2.0", "id": 1, "method": "initialize",
        "params": {"protocolVersion": "2025-03-26", "clientInfo": {"name": "pytest"}},
    })
    assert resp.status_code == 200
    assert resp.json()["result"]["serverInfo"]["name"] == server.SERVER_NAME
    return resp.headers["mcp-session-id"]


async def call_tool(client, session_id, name, arguments=None):
    resp = await client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 2, "method": "tools/call",
              "params": {"name": name, "arguments": arguments or {}}},
        headers={"Mcp-Session-Id": session_id},
    )
    assert resp.status_code == 200
    result = resp.json()["result"]
    return result["content"][0]["text"], result["isError"]


@pytest.mark.asyncio
async def test_root_and_health(async_client):
    resp = await async_client.get("/")
    assert resp.status_code == 200
    assert "search-routes" in resp.json()["tools"]
    resp = await async_client.get("/health")
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_tools_schema_matches_handlers(async_client):
    resp = await async_client.get("/schema/tools")
    names = {tool["name"] for tool in resp.json()["tools"]}
    assert names == set(server.TOOL_HANDLERS)


@pytest.mark.asyncio
async def test_session_required(async_client):
    resp = await async_client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == -32000

    resp = await async_client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
                                   headers={"Mcp-Session-Id": "unknown"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_tools_list_ping_and_notifications(async_client):
    session_id = await open_session(async_client)
    headers = {"Mcp-Session-Id": session_id}

    resp = await async_client.post("/mcp", json={"jsonrpc": "2.0", "id": 3, "method": "tools/list"}, headers=headers)
    assert len(resp.json()["result"]["tools"]) == len(server.MCP_TOOLS)

    resp = await async_client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}, headers=headers)
    assert resp.status_code == 202
    assert server.connected_clients[session_id]["initialized"] is True

    resp = await async_client.post("/mcp", json={"jsonrpc": "2.0", "id": 4, "method": "ping"}, headers=headers)
    assert resp.json()["result"]["status"] == "alive"


@pytest.mark.asyncio
async def test_protocol_errors(async_client):
    session_id = await open_session(async_client)
    resp = await async_client.post("/mcp", json={"jsonrpc": "2.0", "id": 5, "method": "resources/unknown"},
                                   headers={"Mcp-Session-Id": session_id})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == -32601

    resp = await async_client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == -32700

    resp = await async_client.post("/mcp", json={"id": 1, "method": "ping"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_session(async_client):
    session_id = await open_session(async_client)
    resp = await async_client.delete("/mcp", headers={"Mcp-Session-Id": session_id})
    assert resp.status_code == 200
    assert session_id not in server.connected_clients
    resp = await async_client.delete("/mcp", headers={"Mcp-Session-Id": session_id})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_search_routes_sorted_by_price(async_client):
    session_id = await open_session(async_client)
    text, is_error = await call_tool(async_client, session_id, "search-routes",
                                     {"origin": "new york", "sort_by": "price", "travel_date": "2030-05-01"})
    assert not is_error
    assert "找到 **3** 条线路" in text
    assert text.index("Metro Comfort") < text.index("SwiftBus Express") < text.index("Royal Sleeper")
    assert "City Connect" not in text


@pytest.mark.asyncio
async def test_search_routes_validation(async_client):
    session_id = await open_session(async_client)
    text, _ = await call_tool(async_client, session_id, "search-routes", {"travel_date": "2030/05/01"})
    assert "日期格式错误" in text
    text, _ = await call_tool(async_client, session_id, "search-routes", {"sort_by": "cheapest"})
    assert "参数验证失败" in text
    text, _ = await call_tool(async_client, session_id, "search-routes", {"origin": "Chicago"})
    assert "未找到匹配的线路" in text


@pytest.mark.asyncio
async def test_route_details(async_client):
    session_id = await open_session(async_client)
    text, _ = await call_tool(async_client, session_id, "get-route-details", {"route_id": "3"})
    assert "Royal Sleeper" in text and "Sleeper Beds" in text
    text, _ = await call_tool(async_client, session_id, "get-route-details", {"route_id": "42"})
    assert "线路不存在" in text


@pytest.mark.asyncio
async def test_seat_map_includes_booked_seats(async_client):
    session_id = await open_session(async_client)
    text, _ = await call_tool(async_client, session_id, "get-seat-map",
                              {"route_id": "1", "travel_date": "2024-01-15"})
    assert "🟩 可选 33 | ⛔ 已占 7" in text
    assert "⛔A1 ⛔A2  |  ⛔A3 🟩A4" in text

    text, _ = await call_tool(async_client, session_id, "get-seat-map",
                              {"route_id": "1", "travel_date": "2024-01-16"})
    assert "⛔ 已占 5" in text


@pytest.mark.asyncio
async def test_booking_flow(async_client):
    session_id = await open_session(async_client)
    text, is_error = await call_tool(async_client, session_id, "create-booking", {
        "route_id": "1", "travel_date": "2030-05-01", "seats": ["b1", "B2"],
        "passenger_name": "Jane Roe", "passenger_phone": "+15550001",
    })
    assert not is_error
    assert "`B003`" in text
    assert "$90" in text

    # 同一天同一座位不能再订
    text, is_error = await call_tool(async_client, session_id, "create-booking", {
        "route_id": "1", "travel_date": "2030-05-01", "seats": ["B1"],
        "passenger_name": "Jane Roe", "passenger_phone": "+15550001",
    })
    assert is_error
    assert "已被占用" in text

    text, _ = await call_tool(async_client, session_id, "list-bookings", {"status": "confirmed"})
    assert "B001" in text and "B003" in text and "B002" not in text

    text, is_error = await call_tool(async_client, session_id, "cancel-booking", {"booking_id": "B003"})
    assert not is_error and "已退订" in text

    text, is_error = await call_tool(async_client, session_id, "cancel-booking", {"booking_id": "B002"})
    assert is_error


@pytest.mark.asyncio
async def test_create_booking_validation(async_client):
    session_id = await open_session(async_client)
    text, is_error = await call_tool(async_client, session_id, "create-booking", {"route_id": "1"})
    assert not is_error
    assert "出行日期不能为空" in text
    text, _ = await call_tool(async_client, session_id, "create-booking", {
        "route_id": "9", "travel_date": "2030-05-01", "seats": ["A2"],
        "passenger_name": "x", "passenger_phone": "y",
    })
    assert "线路不存在" in text


@pytest.mark.asyncio
async def test_offers_and_time(async_client):
    session_id = await open_session(async_client)
    text, _ = await call_tool(async_client, session_id, "list-offers", {"active_only": True})
    assert "STUDENT25" in text and "GROUP30" not in text

    text, _ = await call_tool(async_client, session_id, "get-current-time", {"timezone": "Europe/London"})
    assert text.endswith("Europe/London")
    text, _ = await call_tool(async_client, session_id, "get-current-time", {"timezone": "Mars/Base"})
    assert text.endswith(server.settings.timezone)


@pytest.mark.asyncio
async def test_unknown_tool(async_client):
    session_id = await open_session(async_client)
    text, is_error = await call_tool(async_client, session_id, "book-flight")
    assert "未知工具" in text
