"""Tests for admin catalog operations."""

from datetime import datetime, timedelta, timezone

import pytest

from deals_admin.errors import ConflictError, NotFoundError, ValidationFailedError
from deals_admin.models import Category, Deal, Retailer
from deals_admin.schemas import CategoryCreate, DealCreate, DealUpdate, RetailerCreate, RetailerUpdate
from deals_admin.services.approval import ApprovalStateMachine
from deals_admin.services.catalog import CatalogService
from deals_admin.services.lifecycle import EntityKind, ReviewStatus
from deals_admin.services.review_queries import ReviewQueryService


async def _add(db, *rows):
    async with db.session() as session:
        session.add_all(rows)


async def _get(db, model, entity_id):
    async with db.session() as session:
        return await session.get(model, entity_id)


@pytest.fixture
def catalog(db, clock):
    return CatalogService(db, ApprovalStateMachine(db, clock=clock))


def _deal_payload(**overrides) -> DealCreate:
    data = {
        "productName": "Stand Mixer Pro",
        "description": "Five quart mixer",
        "imageUrl": "https://img.example.com/mixer.jpg",
        "dealUrl": "https://shop.example.com/mixer",
        "category": "home-kitchen",
        "retailer": "walmart",
        "price": 19999,
        "originalPrice": 29999,
        "quantity": 20,
        "expirationDate": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
    }
    data.update(overrides)
    return DealCreate.model_validate(data)


@pytest.mark.asyncio
async def test_create_deal_is_approved_and_counted(db, catalog):
    await _add(
        db,
        Category(id="c1", name="Home & Kitchen", slug="home-kitchen"),
        Retailer(id="r1", name="Walmart", slug="walmart", status=ReviewStatus.APPROVED),
    )

    deal_id = await catalog.create_deal(_deal_payload(), "a1", "admin@deals.test")

    deal = await _get(db, Deal, deal_id)
    assert deal.slug == "stand-mixer-pro"
    assert deal.status is ReviewStatus.APPROVED
    assert deal.is_active is True
    assert deal.savings_percentage == 33
    assert deal.created_by == "admin@deals.test"
    assert (await _get(db, Category, "c1")).deal_count == 1
    assert (await _get(db, Retailer, "r1")).deal_count == 1


@pytest.mark.asyncio
async def test_create_deal_validation_errors(catalog):
    with pytest.raises(ValidationFailedError) as exc:
        await catalog.create_deal(_deal_payload(price=40000), "a1")
    assert exc.value.errors == {"price": "Sale price must be less than original price"}


@pytest.mark.asyncio
async def test_duplicate_slug_is_conflict(catalog):
    await catalog.create_deal(_deal_payload(), "a1")
    with pytest.raises(ConflictError):
        await catalog.create_deal(_deal_payload(), "a1")


@pytest.mark.asyncio
async def test_create_retailer(db, catalog):
    payload = RetailerCreate(name="Best Buy", logoUrl="https://bb.com/logo.png", websiteUrl="https://bb.com")
    retailer_id = await catalog.create_retailer(payload, "a1")
    retailer = await _get(db, Retailer, retailer_id)
    assert retailer.slug == "best-buy"
    assert retailer.status is ReviewStatus.APPROVED
    assert retailer.approved_by == "a1"


@pytest.mark.asyncio
async def test_delete_retailer_blocked_by_deals(db, catalog):
    await _add(
        db,
        Retailer(id="r1", name="Walmart", slug="walmart", deal_count=2),
        Retailer(id="r2", name="Empty", slug="empty", deal_count=0),
    )

    with pytest.raises(ConflictError) as exc:
        await catalog.delete_retailer("r1")
    assert exc.value.detail["dealCount"] == 2

    await catalog.delete_retailer("r2")
    assert await _get(db, Retailer, "r2") is None

    with pytest.raises(NotFoundError):
        await catalog.delete_retailer("r2")


@pytest.mark.asyncio
async def test_delete_deal_decrements_counts(db, catalog):
    await _add(
        db,
        Category(id="c1", name="Home & Kitchen", slug="home-kitchen"),
        Retailer(id="r1", name="Walmart", slug="walmart", status=ReviewStatus.APPROVED),
    )
    deal_id = await catalog.create_deal(_deal_payload(), "a1")

    await catalog.delete_deal(deal_id)

    assert await _get(db, Deal, deal_id) is None
    assert (await _get(db, Category, "c1")).deal_count == 0
    assert (await _get(db, Retailer, "r1")).deal_count == 0


@pytest.mark.asyncio
async def test_toggle_deal(db, catalog):
    await _add(
        db,
        Deal(id="live", product_name="TV", slug="tv", price=1, original_price=2,
             status=ReviewStatus.APPROVED, is_active=True),
        Deal(id="queued", product_name="Lamp", slug="lamp", price=1, original_price=2),
    )

    assert await catalog.toggle_deal("live", "isFeatured") is True
    assert await catalog.toggle_deal("live", "isActive") is False
    assert await catalog.toggle_deal("live", "isActive") is True

    with pytest.raises(ConflictError):
        await catalog.toggle_deal("queued", "isActive")
    with pytest.raises(ValidationFailedError):
        await catalog.toggle_deal("live", "status")


@pytest.mark.asyncio
async def test_bulk_activation_only_touches_approved(db, catalog):
    await _add(
        db,
        Deal(id="a", product_name="A", slug="a", price=1, original_price=2, status=ReviewStatus.APPROVED),
        Deal(id="b", product_name="B", slug="b", price=1, original_price=2, status=ReviewStatus.REJECTED),
    )

    updated = await catalog.bulk_update_deals(["a", "b", "a"], is_active=True)

    assert updated == 1
    assert (await _get(db, Deal, "a")).is_active is True
    assert (await _get(db, Deal, "b")).is_active is False

    assert await catalog.bulk_update_deals(["a", "b"], is_featured=True) == 2

    with pytest.raises(ValidationFailedError):
        await catalog.bulk_update_deals([], is_active=False)
    with pytest.raises(ValidationFailedError):
        await catalog.bulk_update_deals(["a"])


@pytest.mark.asyncio
async def test_categories(db, catalog):
    await catalog.create_category(CategoryCreate(name="Toys", icon="gamepad", order=2))
    await catalog.create_category(CategoryCreate(name="Apparel", icon="shirt", order=1))

    categories = await catalog.list_categories()
    assert [c.slug for c in categories] == ["apparel", "toys"]

    with pytest.raises(ConflictError):
        await catalog.create_category(CategoryCreate(name="Toys", icon="gamepad"))

    await catalog.delete_category(categories[0].id)
    assert [c.slug for c in await catalog.list_categories()] == ["toys"]


def _update_payload(is_active: bool | None = None, **overrides) -> DealUpdate:
    data = _deal_payload(**overrides).model_dump(by_alias=True)
    return DealUpdate.model_validate({**data, "isActive": is_active})


def _lamp(deal_id: str = "p1", **kw) -> Deal:
    values = dict(id=deal_id, product_name="Lamp", slug=f"lamp-{deal_id}", price=1, original_price=2)
    values.update(kw)
    return Deal(**values)


@pytest.mark.asyncio
async def test_deleting_pending_deal_keeps_category_guarded(db, catalog):
    await _add(db, Category(id="c1", name="Home & Kitchen", slug="home-kitchen"))
    live_id = await catalog.create_deal(_deal_payload(), "a1")
    await _add(db, _lamp("p1", category="home-kitchen"))

    await catalog.delete_deal("p1")

    assert (await _get(db, Category, "c1")).deal_count == 1
    with pytest.raises(ConflictError) as exc:
        await catalog.delete_category("c1")
    assert exc.value.detail["dealCount"] == 1
    assert (await _get(db, Deal, live_id)).category == "home-kitchen"


@pytest.mark.asyncio
async def test_delete_guard_counts_referencing_deals(db, catalog):
    """A stale zero counter does not let a referenced row be deleted."""
    await _add(
        db,
        Category(id="c1", name="Toys", slug="toys", deal_count=0),
        Retailer(id="r1", name="Outlet", slug="outlet", deal_count=0),
        _lamp("p1", category="toys", retailer="outlet"),
        _lamp("p2", category="toys"),
    )

    with pytest.raises(ConflictError) as exc:
        await catalog.delete_category("c1")
    assert exc.value.detail["dealCount"] == 2
    with pytest.raises(ConflictError):
        await catalog.delete_retailer("r1")

    assert await _get(db, Category, "c1") is not None
    assert await _get(db, Retailer, "r1") is not None


@pytest.mark.asyncio
async def test_update_deal_moves_counts_and_recomputes_savings(db, catalog):
    await _add(
        db,
        Category(id="c1", name="Home & Kitchen", slug="home-kitchen"),
        Category(id="c2", name="Electronics", slug="electronics"),
        Retailer(id="r1", name="Walmart", slug="walmart", status=ReviewStatus.APPROVED),
        Retailer(id="r2", name="Target", slug="target", status=ReviewStatus.APPROVED),
    )
    deal_id = await catalog.create_deal(_deal_payload(), "a1", "admin@deals.test")

    await catalog.update_deal(
        deal_id,
        _update_payload(category="electronics", retailer="target", price=15000, originalPrice=30000),
    )

    deal = await _get(db, Deal, deal_id)
    assert deal.category == "electronics"
    assert deal.retailer == "target"
    assert deal.savings_percentage == 50
    assert deal.status is ReviewStatus.APPROVED
    assert deal.approved_by == "a1"
    assert deal.created_by == "admin@deals.test"
    assert (await _get(db, Category, "c1")).deal_count == 0
    assert (await _get(db, Category, "c2")).deal_count == 1
    assert (await _get(db, Retailer, "r1")).deal_count == 0
    assert (await _get(db, Retailer, "r2")).deal_count == 1


@pytest.mark.asyncio
async def test_update_deal_errors(db, catalog):
    await _add(db, _lamp("p1", slug="lamp"), _lamp("p2", slug="rug"))

    with pytest.raises(NotFoundError):
        await catalog.update_deal("nope", _update_payload())
    with pytest.raises(ValidationFailedError) as exc:
        await catalog.update_deal("p1", _update_payload(price=40000))
    assert "price" in exc.value.errors
    with pytest.raises(ConflictError):
        await catalog.update_deal("p1", _update_payload(is_active=True, slug="lamp"))
    with pytest.raises(ConflictError):
        await catalog.update_deal("p1", _update_payload(slug="rug"))

    deal = await _get(db, Deal, "p1")
    assert deal.slug == "lamp"
    assert deal.is_active is False


@pytest.mark.asyncio
async def test_update_retailer_carries_slug_to_deals(db, catalog):
    await _add(
        db,
        Retailer(id="r1", name="Walmart", slug="walmart", status=ReviewStatus.APPROVED, is_active=True),
        Retailer(id="r2", name="Applicant", slug="applicant", status=ReviewStatus.PENDING),
        _lamp("p1", retailer="walmart"),
    )
    payload = RetailerUpdate(
        name="Walmart US",
        slug="walmart-us",
        logoUrl="https://walmart.com/logo.png",
        websiteUrl="https://walmart.com",
        commission="4%",
    )

    await catalog.update_retailer("r1", payload)

    retailer = await _get(db, Retailer, "r1")
    assert retailer.name == "Walmart US"
    assert retailer.commission == "4%"
    assert retailer.is_active is True
    assert retailer.deal_count == 1
    assert (await _get(db, Deal, "p1")).retailer == "walmart-us"
    with pytest.raises(ConflictError):
        await catalog.delete_retailer("r1")

    applicant = RetailerUpdate(name="Applicant", logoUrl="https://a.test/logo.png", websiteUrl="https://a.test")
    with pytest.raises(ConflictError):
        await catalog.update_retailer("r2", applicant.model_copy(update={"is_active": True}))
    with pytest.raises(ConflictError):
        await catalog.update_retailer("r2", applicant.model_copy(update={"slug": "walmart-us"}))
    with pytest.raises(NotFoundError):
        await catalog.update_retailer("nope", applicant)


@pytest.mark.asyncio
async def test_update_category_and_order(db, catalog):
    await _add(
        db,
        Category(id="c1", name="Home", slug="home", icon="home", order=1),
        Category(id="c2", name="Toys", slug="toys", icon="gamepad", order=2),
        _lamp("p1", category="home"),
    )

    await catalog.update_category("c1", CategoryCreate(name="Home & Kitchen", slug="home-kitchen", icon="home", order=1))

    category = await catalog.get_category("c1")
    assert category.slug == "home-kitchen"
    assert category.deal_count == 1
    assert (await _get(db, Deal, "p1")).category == "home-kitchen"

    await catalog.update_category_order("c1", 5)
    assert [c.slug for c in await catalog.list_categories()] == ["toys", "home-kitchen"]

    with pytest.raises(ValidationFailedError):
        await catalog.update_category_order("c1", -1)
    with pytest.raises(NotFoundError):
        await catalog.update_category_order("nope", 1)
    with pytest.raises(ConflictError):
        await catalog.update_category("c2", CategoryCreate(name="Toys", slug="home-kitchen", icon="gamepad"))
    with pytest.raises(NotFoundError):
        await catalog.get_category("nope")


@pytest.mark.asyncio
async def test_list_and_get_deals(db, catalog):
    await _add(
        db,
        _lamp("old", created_at=datetime(2026, 3, 1, tzinfo=timezone.utc)),
        _lamp("new", created_at=datetime(2026, 3, 10, tzinfo=timezone.utc), status=ReviewStatus.REJECTED),
    )

    assert [d.id for d in await catalog.list_deals()] == ["new", "old"]

    deal = await catalog.get_deal("new")
    assert deal.status is ReviewStatus.REJECTED
    assert deal.model_dump(by_alias=True)["productName"] == "Lamp"

    with pytest.raises(NotFoundError):
        await catalog.get_deal("nope")


@pytest.mark.asyncio
async def test_list_and_get_retailers(db, catalog):
    await _add(
        db,
        Retailer(id="r1", name="Zeta Outlet", status=ReviewStatus.PENDING),
        Retailer(id="r2", name="Acme", slug="acme", status=ReviewStatus.APPROVED, deal_count=3),
    )

    assert [r.name for r in await catalog.list_retailers()] == ["Acme", "Zeta Outlet"]

    retailer = await catalog.get_retailer("r2")
    assert retailer.deal_count == 3
    assert retailer.status is ReviewStatus.APPROVED

    with pytest.raises(NotFoundError):
        await catalog.get_retailer("nope")


@pytest.mark.asyncio
async def test_catalog_writes_drop_cached_stats(db, clock, cache):
    machine = ApprovalStateMachine(db, cache, clock=clock)
    catalog = CatalogService(db, machine)
    queries = ReviewQueryService(db, cache, clock=clock)
    await _add(
        db,
        _lamp("p1"),
        _lamp("p2"),
        Retailer(id="r1", name="Applicant", status=ReviewStatus.PENDING),
    )
    assert (await queries.compute_stats(EntityKind.DEAL)).pending_count == 2
    assert (await queries.compute_stats(EntityKind.RETAILER)).pending_count == 1

    await catalog.delete_deal("p1")
    await catalog.delete_retailer("r1")

    assert (await queries.compute_stats(EntityKind.DEAL)).pending_count == 1
    assert (await queries.compute_stats(EntityKind.RETAILER)).pending_count == 0
