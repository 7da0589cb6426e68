"""Tests for review dashboard queries."""

from datetime import timedelta

import pytest

from deals_admin.models import Category, Deal, Retailer, UserProfile
from deals_admin.models.user_profile import ROLE_RETAILER
from deals_admin.services.approval import ApprovalStateMachine
from deals_admin.services.lifecycle import EntityKind, ReviewStatus
from deals_admin.services.review_queries import (
    ADMIN_PLACEHOLDER,
    NEW_PARTNER,
    NO_REASON_PLACEHOLDER,
    VERIFIED_PARTNER,
    ReviewQueryService,
    approval_rate,
)
from deals_admin.services.risk import FLAG_DEEP_DISCOUNT, FLAG_FREE_EMAIL, FLAG_NO_WEBSITE, STANDARD_REVIEW


async def _add(db, *rows):
    async with db.session() as session:
        session.add_all(rows)


@pytest.fixture
def queries(db, clock):
    return ReviewQueryService(db, clock=clock)


@pytest.fixture
def machine(db, clock):
    return ApprovalStateMachine(db, clock=clock)


def test_approval_rate():
    assert approval_rate(0, 0) == 0
    assert approval_rate(3, 1) == 75
    assert approval_rate(1, 2) == 33
    assert approval_rate(2, 1) == 67
    assert approval_rate(1, 7) == 13


@pytest.mark.asyncio
async def test_pending_retailers_newest_first_with_flags(db, clock, queries):
    await _add(
        db,
        UserProfile(id="u1", email="owner@gmail.com", role=ROLE_RETAILER),
        Retailer(
            id="old",
            name="Old Shop",
            email="ops@oldshop.com",
            website_url="https://oldshop.com",
            year_established=2000,
            created_at=clock.now - timedelta(days=2),
        ),
        Retailer(
            id="new",
            name="New Shop",
            user_id="u1",
            website_url="None provided",
            year_established=2015,
            created_at=clock.now - timedelta(hours=1),
        ),
        Retailer(id="done", name="Done", status=ReviewStatus.APPROVED, created_at=clock.now),
    )

    items = await queries.list_pending(EntityKind.RETAILER)

    assert [i.id for i in items] == ["new", "old"]
    # Email falls back to the linked profile
    assert items[0].email == "owner@gmail.com"
    assert [f.text for f in items[0].risk_flags] == [FLAG_FREE_EMAIL, FLAG_NO_WEBSITE]
    assert items[1].risk_flags == []


@pytest.mark.asyncio
async def test_pending_deals_resolve_retailer_and_category(db, clock, queries):
    await _add(
        db,
        Category(id="c1", name="Electronics", slug="electronics"),
        Retailer(id="r1", name="Target", slug="target", status=ReviewStatus.APPROVED),
        Deal(
            id="d1",
            product_name="4K TV",
            slug="tv",
            price=4000,
            original_price=10000,
            quantity=50,
            image_url="https://img.test/tv.jpg",
            category="electronics",
            retailer="target",
            created_at=clock.now - timedelta(hours=2),
        ),
        Deal(
            id="d2",
            product_name="Mystery Box",
            slug="box",
            price=900,
            original_price=1000,
            retailer="unknown-shop",
            created_at=clock.now - timedelta(hours=1),
        ),
    )

    items = await queries.list_pending(EntityKind.DEAL)

    assert [i.id for i in items] == ["d2", "d1"]
    box, tv = items
    assert tv.retailer_name == "Target"
    assert tv.retailer_status == VERIFIED_PARTNER
    assert tv.category == "Electronics"
    assert tv.discount == 60
    assert tv.risk_level.value == "HIGH"
    assert [f.text for f in tv.flags] == [FLAG_DEEP_DISCOUNT]
    assert box.sku == "N/A"
    assert box.quantity == 1
    assert box.retailer_status == NEW_PARTNER
    assert box.category == "Uncategorized"
    assert box.risk_level.value == "MEDIUM"


@pytest.mark.asyncio
async def test_approved_list_resolves_admin_display(db, admin, clock, machine, queries):
    await _add(
        db,
        Deal(id="d1", product_name="TV", slug="tv", price=1, original_price=2),
        Deal(id="d2", product_name="Mixer", slug="mixer", price=1, original_price=2),
    )
    await machine.approve(EntityKind.DEAL, "d1", "a1")
    clock.now += timedelta(minutes=5)
    await machine.approve(EntityKind.DEAL, "d2", "ghost-admin")

    items = await queries.list_approved(EntityKind.DEAL)

    assert [i.id for i in items] == ["d2", "d1"]
    assert items[0].approved_by_display == ADMIN_PLACEHOLDER
    assert items[1].approved_by_display == "admin@deals.test"
    assert items[1].name == "TV"


@pytest.mark.asyncio
async def test_rejected_list_uses_placeholder_reason(db, clock, queries):
    await _add(
        db,
        Retailer(id="r1", name="Shop", email="a@shop.test", status=ReviewStatus.REJECTED, rejection_reason=None),
    )
    items = await queries.list_rejected(EntityKind.RETAILER)
    assert len(items) == 1
    assert items[0].rejection_reason == NO_REASON_PLACEHOLDER
    assert items[0].email == "a@shop.test"


@pytest.mark.asyncio
async def test_stats_with_no_decisions(queries):
    stats = await queries.compute_stats(EntityKind.RETAILER)
    assert stats.pending_count == 0
    assert stats.approved_count == 0
    assert stats.rejected_count == 0
    assert stats.approval_rate == 0
    assert stats.cleared_today == 0
    assert stats.avg_review_hours is None


@pytest.mark.asyncio
async def test_stats_counts_and_rates(db, clock, machine, queries):
    await _add(
        db,
        *[
            Deal(
                id=f"d{i}",
                product_name=f"Item {i}",
                slug=f"item-{i}",
                price=1,
                original_price=2,
                created_at=clock.now - timedelta(hours=4),
            )
            for i in range(5)
        ],
    )
    for i in range(3):
        await machine.approve(EntityKind.DEAL, f"d{i}", "a1")
    await machine.reject(EntityKind.DEAL, "d3", "a1", "Duplicate listing")

    stats = await queries.compute_stats(EntityKind.DEAL)

    assert stats.pending_count == 1
    assert stats.approved_count == 3
    assert stats.rejected_count == 1
    assert stats.approval_rate == 75
    assert stats.cleared_today == 3
    assert stats.avg_review_hours == 4.0


@pytest.mark.asyncio
async def test_stats_window_excludes_old_decisions(db, clock, machine, queries):
    await _add(db, Deal(id="d1", product_name="Old", slug="old", price=1, original_price=2))
    await machine.reject(EntityKind.DEAL, "d1", "a1", "Expired")
    clock.now += timedelta(days=31)

    stats = await queries.compute_stats(EntityKind.DEAL)

    assert stats.rejected_count == 1
    assert stats.approval_rate == 0


@pytest.mark.asyncio
async def test_stats_are_cached_until_invalidated(db, clock, cache):
    queries = ReviewQueryService(db, cache, clock=clock)
    machine = ApprovalStateMachine(db, cache, clock=clock)
    await _add(db, Deal(id="d1", product_name="TV", slug="tv", price=1, original_price=2))

    first = await queries.compute_stats(EntityKind.DEAL)
    assert first.pending_count == 1

    # Direct write bypasses invalidation, so the cached value is served
    async with db.session() as session:
        session.add(Deal(id="d2", product_name="Mixer", slug="mixer", price=1, original_price=2))
    assert (await queries.compute_stats(EntityKind.DEAL)).pending_count == 1

    await machine.approve(EntityKind.DEAL, "d1", "a1")
    fresh = await queries.compute_stats(EntityKind.DEAL)
    assert fresh.pending_count == 1
    assert fresh.approved_count == 1


@pytest.mark.asyncio
async def test_recently_cleared(db, admin, clock, machine, queries):
    await _add(
        db,
        Retailer(id="r1", name="Target", slug="target", status=ReviewStatus.APPROVED),
        Deal(id="d1", product_name="TV", slug="tv", sku="TV-1", price=4000, original_price=10000,
             image_url="x", retailer="target"),
        Deal(id="d2", product_name="Mixer", slug="mixer", price=90, original_price=100, image_url="x"),
        Deal(id="d3", product_name="Lamp", slug="lamp", price=90, original_price=100, image_url="x"),
    )
    await machine.approve(EntityKind.DEAL, "d3", "a1")
    clock.now += timedelta(hours=30)
    await machine.approve(EntityKind.DEAL, "d1", "a1")
    clock.now += timedelta(minutes=1)
    await machine.approve(EntityKind.DEAL, "d2", "a1")

    items = await queries.recently_cleared(EntityKind.DEAL, window_hours=24, limit=10)

    assert [i.id for i in items] == ["d2", "d1"]
    mixer, tv = items
    assert tv.original_flag == FLAG_DEEP_DISCOUNT
    assert tv.retailer_name == "Target"
    assert tv.sku == "TV-1"
    assert tv.cleared_by == "admin@deals.test"
    assert mixer.original_flag == STANDARD_REVIEW
    assert mixer.sku == "N/A"

    limited = await queries.recently_cleared(EntityKind.DEAL, window_hours=24, limit=1)
    assert [i.id for i in limited] == ["d2"]
