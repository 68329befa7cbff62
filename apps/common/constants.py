"""
Platform Constants

Centralized constants for promotion limits and money handling.
This file serves as the single source of truth for business rules that span multiple apps.

Following platform architecture principles:
- O(1) maintenance when commercial limits change
- Self-documenting business logic
- Consistent with apps/common/ pattern
"""

from decimal import Decimal
from typing import Final

# ===============================================================================
# MONEY & PERCENTAGES 💰
# ===============================================================================

# Percentages are stored as fractions: Decimal('1') == 100%
PERCENTAGE_MIN: Final[Decimal] = Decimal("0")       # Exclusive lower bound for discount rates
PERCENTAGE_MAX: Final[Decimal] = Decimal("1")       # Inclusive upper bound for discount rates

# Security limits
MAX_DISCOUNT_AMOUNT_CENTS: Final[int] = 100_000_000  # 1M in major currency units
MAX_USAGE_LIMIT: Final[int] = 1_000_000

# ===============================================================================
# PROMOTION LIMITS 🏷️
# ===============================================================================

PROMOTION_NAME_MAX_LENGTH: Final[int] = 100
PROMOTION_DESCRIPTION_MAX_LENGTH: Final[int] = 2000
PROMOTION_CODE_MIN_LENGTH: Final[int] = 3
PROMOTION_CODE_MAX_LENGTH: Final[int] = 50

PROMOTION_RULE_VALUE_MAX_LENGTH: Final[int] = 1000
PROMOTION_RULE_PROPERTY_MAX_LENGTH: Final[int] = 100

# Separator for list-valued rule operands ("sku-1,sku-2")
RULE_VALUE_LIST_SEPARATOR: Final[str] = ","

# ===============================================================================
# EVALUATION LIMITS ⚡
# ===============================================================================

# Upper bound on candidate promotions evaluated per order in one pricing pass
MAX_CANDIDATE_PROMOTIONS: Final[int] = 200
