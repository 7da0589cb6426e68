"""SQLAlchemy ORM models.

Models represent database tables:
- retailers: Retailer applications and catalog retailers
- deals: Submitted and admin-created deals
- categories: Deal categories
- user_profiles: Account profiles (role, retailer status mirror)
"""

from deals_admin.models.category import Category
from deals_admin.models.deal import Deal
from deals_admin.models.retailer import Retailer
from deals_admin.models.user_profile import UserProfile

__all__ = ["Category", "Deal", "Retailer", "UserProfile"]
