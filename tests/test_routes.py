"""Tests for the HTTP API."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from deals_admin.main import app, build_gateway
from deals_admin.models import Deal, Retailer, UserProfile
from deals_admin.models.user_profile import ROLE_RETAILER
from deals_admin.services.auth import SupabaseAuthClient
from deals_admin.services.lifecycle import ReviewStatus
from deals_admin.settings import get_settings
from deals_admin.stores.redis import Cache

ADMIN = {"Authorization": "Bearer admin-token"}
RETAILER = {"Authorization": "Bearer retailer-token"}

TOKENS = {
    "Bearer admin-token": {"id": "a1", "email": "admin@deals.test"},
    "Bearer retailer-token": {"id": "u1", "email": "shop@deals.test"},
}


def _supabase(request: httpx.Request) -> httpx.Response:
    user = TOKENS.get(request.headers.get("Authorization", ""))
    if user is None:
        return httpx.Response(401, json={"msg": "invalid JWT"})
    return httpx.Response(200, json=user)


@pytest.fixture
async def client(db, admin):
    """Test client against the in-memory database, without running the lifespan."""
    async with db.session() as session:
        session.add(UserProfile(id="u1", email="shop@deals.test", role=ROLE_RETAILER, retailer_status="pending"))
        session.add(Retailer(id="r1", name="Outlet", email="owner@gmail.com", user_id="u1", website_url="None provided"))
        session.add(Deal(id="d1", product_name="4K TV", slug="tv", price=4000, original_price=10000, quantity=50))

    cache = Cache()
    app.state.db = db
    app.state.cache = cache
    app.state.auth_client = SupabaseAuthClient(
        "https://proj.supabase.co", "anon-key", transport=httpx.MockTransport(_supabase)
    )
    app.state.gateway = build_gateway(db, cache, get_settings())

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _deal_status(db, deal_id: str = "d1") -> ReviewStatus:
    async with db.session() as session:
        return (await session.get(Deal, deal_id)).status


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_approve_deal(client: AsyncClient, db):
    response = await client.post("/api/deals/d1/approve", headers=ADMIN, json={"notes": "Looks fine"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "approved"
    assert data["changed"] is True
    assert await _deal_status(db) is ReviewStatus.APPROVED


@pytest.mark.asyncio
async def test_approve_without_body(client: AsyncClient):
    response = await client.post("/api/retailers/r1/approve", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_reject_without_reason_is_400(client: AsyncClient, db):
    for body in (None, {}, {"reason": "  "}):
        response = await client.post("/api/deals/d1/reject", headers=ADMIN, json=body)
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_FAILED"
        assert "reason" in error["detail"]["errors"]
    assert await _deal_status(db) is ReviewStatus.PENDING


@pytest.mark.asyncio
async def test_reject_deal(client: AsyncClient, db):
    response = await client.post("/api/deals/d1/reject", headers=ADMIN, json={"reason": "Counterfeit"})
    assert response.status_code == 200
    assert await _deal_status(db) is ReviewStatus.REJECTED

    rejected = (await client.get("/api/deals/rejected", headers=ADMIN)).json()
    assert rejected[0]["rejectionReason"] == "Counterfeit"


@pytest.mark.asyncio
async def test_missing_or_invalid_session_is_401(client: AsyncClient, db):
    response = await client.post("/api/deals/d1/approve")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"

    response = await client.post("/api/deals/d1/approve", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert await _deal_status(db) is ReviewStatus.PENDING


@pytest.mark.asyncio
async def test_non_admin_is_403(client: AsyncClient, db):
    response = await client.post("/api/deals/d1/approve", headers=RETAILER)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UNAUTHORIZED"
    assert await _deal_status(db) is ReviewStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_entity_is_404(client: AsyncClient):
    response = await client.post("/api/retailers/missing/approve", headers=ADMIN)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_pending_lists(client: AsyncClient):
    retailers = (await client.get("/api/retailers/pending", headers=ADMIN)).json()
    assert [r["id"] for r in retailers] == ["r1"]
    assert [f["text"] for f in retailers[0]["riskFlags"]][:2] == [
        "Free email domain",
        "No website — cannot verify legitimacy",
    ]

    deals = (await client.get("/api/deals/pending", headers=ADMIN)).json()
    assert deals[0]["discount"] == 60
    assert deals[0]["riskLevel"] == "HIGH"


@pytest.mark.asyncio
async def test_stats_and_recently_cleared(client: AsyncClient):
    await client.post("/api/deals/d1/approve", headers=ADMIN)

    stats = (await client.get("/api/deals/stats", headers=ADMIN)).json()
    assert stats["approvedCount"] == 1
    assert stats["pendingCount"] == 0
    assert stats["approvalRate"] == 100

    cleared = (await client.get("/api/deals/recently-cleared", headers=ADMIN, params={"windowHours": 24})).json()
    assert [c["id"] for c in cleared] == ["d1"]
    assert cleared[0]["originalFlag"] == "Discount >50%, No image"


@pytest.mark.asyncio
async def test_category_create_list_delete(client: AsyncClient):
    created = await client.post(
        "/api/categories",
        headers=ADMIN,
        json={"name": "Electronics", "icon": "laptop"},
    )
    assert created.status_code == 201
    category_id = created.json()["data"]["id"]

    listed = (await client.get("/api/categories", headers=ADMIN)).json()
    assert listed[0]["slug"] == "electronics"
    assert listed[0]["dealCount"] == 0

    response = await client.delete(f"/api/categories/{category_id}", headers=ADMIN)
    assert response.status_code == 200


def _deal_body(**overrides) -> dict:
    body = {
        "productName": "4K TV",
        "slug": "tv",
        "description": "65 inch panel",
        "imageUrl": "https://img.example.com/tv.jpg",
        "dealUrl": "https://shop.example.com/tv",
        "category": "electronics",
        "retailer": "outlet",
        "price": 3000,
        "originalPrice": 10000,
        "quantity": 50,
        "expirationDate": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_deal_list_detail_and_update(client: AsyncClient):
    listed = await client.get("/api/deals", headers=ADMIN)
    assert listed.status_code == 200
    assert [d["id"] for d in listed.json()] == ["d1"]

    response = await client.put("/api/deals/d1", headers=ADMIN, json=_deal_body())
    assert response.status_code == 200
    assert response.json()["message"] == "Deal updated successfully"

    deal = (await client.get("/api/deals/d1", headers=ADMIN)).json()
    assert deal["savingsPercentage"] == 70
    assert deal["category"] == "electronics"
    assert deal["status"] == "pending"

    response = await client.put("/api/deals/d1", headers=ADMIN, json=_deal_body(isActive=True))
    assert response.status_code == 409

    response = await client.put("/api/deals/d1", headers=ADMIN, json=_deal_body(price=20000))
    assert response.status_code == 400
    assert "price" in response.json()["error"]["detail"]["errors"]

    assert (await client.get("/api/deals/missing", headers=ADMIN)).status_code == 404
    assert (await client.get("/api/deals", headers=RETAILER)).status_code == 403


@pytest.mark.asyncio
async def test_retailer_list_detail_and_update(client: AsyncClient):
    response = await client.put(
        "/api/retailers/r1",
        headers=ADMIN,
        json={"name": "Outlet", "logoUrl": "https://outlet.test/logo.png", "websiteUrl": "https://outlet.test"},
    )
    assert response.status_code == 200

    retailer = (await client.get("/api/retailers/r1", headers=ADMIN)).json()
    assert retailer["slug"] == "outlet"
    assert retailer["websiteUrl"] == "https://outlet.test"
    assert retailer["status"] == "pending"
    assert retailer["email"] == "owner@gmail.com"

    listed = (await client.get("/api/retailers", headers=ADMIN)).json()
    assert [r["id"] for r in listed] == ["r1"]


@pytest.mark.asyncio
async def test_category_update_and_order(client: AsyncClient):
    created = await client.post("/api/categories", headers=ADMIN, json={"name": "Electronics", "icon": "laptop"})
    category_id = created.json()["data"]["id"]

    response = await client.patch(f"/api/categories/{category_id}/order", headers=ADMIN, json={"order": 3})
    assert response.status_code == 200
    assert (await client.get(f"/api/categories/{category_id}", headers=ADMIN)).json()["order"] == 3

    response = await client.patch(f"/api/categories/{category_id}/order", headers=ADMIN, json={"order": -1})
    assert response.status_code == 400

    response = await client.put(
        f"/api/categories/{category_id}",
        headers=ADMIN,
        json={"name": "Consumer Electronics", "slug": "electronics", "icon": "laptop", "order": 3},
    )
    assert response.status_code == 200
    assert (await client.get(f"/api/categories/{category_id}", headers=ADMIN)).json()["name"] == "Consumer Electronics"

    # d1 is moved into the category, so deletion is refused
    await client.put("/api/deals/d1", headers=ADMIN, json=_deal_body())
    response = await client.delete(f"/api/categories/{category_id}", headers=ADMIN)
    assert response.status_code == 409
    assert response.json()["error"]["detail"]["dealCount"] == 1
