# ===============================================================================
# PYTEST CONFIGURATION FOR THE PROMOTIONS ENGINE
# ===============================================================================
"""
Global test configuration.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- Pure domain tests use SimpleTestCase (no database)
- Service and repository tests use TestCase (transaction per test)
"""

import os

import django


def pytest_configure():
    """Configure Django settings for pytest"""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.test')

    # Configure Django
    django.setup()

# ===============================================================================
# PYTEST FIXTURES - ORDER SNAPSHOTS
# ===============================================================================

import pytest  # noqa: E402

from apps.common.types import Money  # noqa: E402
from apps.promotions.snapshots import LineItemSnapshot, OrderSnapshot  # noqa: E402


@pytest.fixture
def ron_order():
    """Two-line RON order worth 150.00 lei for a returning customer"""
    return OrderSnapshot(
        id='ORD-1001',
        currency='RON',
        customer_id='CUST-1',
        completed_order_count=3,
        line_items=(
            LineItemSnapshot(id='L1', product_id='P-HOST', unit_price=Money(5000, 'RON'), quantity=2),
            LineItemSnapshot(id='L2', product_id='P-DOMAIN', unit_price=Money(5000, 'RON'), quantity=1),
        ),
    )
