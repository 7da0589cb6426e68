"""Tests for settings parsing."""

from deals_admin.settings import Settings


def test_async_database_url_rewrites_driver():
    s = Settings(DATABASE_URL="postgres://u:p@db.supabase.co:5432/postgres")
    assert s.async_database_url == "postgresql+asyncpg://u:p@db.supabase.co:5432/postgres"

    s = Settings(DATABASE_URL="postgresql+asyncpg://u:p@localhost/db")
    assert s.async_database_url == "postgresql+asyncpg://u:p@localhost/db"


def test_cors_origins_formats():
    assert Settings(CORS_ORIGINS='["https://a.com", "http://localhost:3000"]').cors_origins == [
        "https://a.com",
        "http://localhost:3000",
    ]
    assert Settings(CORS_ORIGINS="https://a.com, https://b.com").cors_origins == ["https://a.com", "https://b.com"]
    assert Settings(CORS_ORIGINS="").cors_origins == []


def test_review_defaults():
    s = Settings()
    assert s.rejection_reason_min_length == 1
    assert s.approval_rate_window_days == 30
    assert s.recently_cleared_window_hours == 24
    assert s.recently_cleared_limit == 10
