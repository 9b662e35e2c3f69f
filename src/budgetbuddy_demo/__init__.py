"""Offline demo collaborators for BudgetBuddy.

Provides a fake bank and a fake budget so the sync flow can run end to
end without network access, used by ``budgetbuddy sync --demo`` and by
the journey tests.
"""

from budgetbuddy_demo.collaborators import (
    DemoBank,
    DemoBudget,
    DemoRuleStore,
    DemoSettings,
)
from budgetbuddy_demo.data import (
    DEMO_BUDGET_ID,
    DEMO_CATEGORIES,
    build_demo_transactions,
)

__version__ = "0.1.0"

__all__ = [
    "DEMO_BUDGET_ID",
    "DEMO_CATEGORIES",
    "DemoBank",
    "DemoBudget",
    "DemoRuleStore",
    "DemoSettings",
    "build_demo_transactions",
]
