"""Demo data definitions for a realistic German checking account.

All data is fictional and used for demonstration purposes only.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from budgetbuddy.domain.banking.value_objects import BankTransaction, Money
from budgetbuddy.domain.budget.value_objects import BudgetCategory

DEMO_BUDGET_ID = "demo-budget"


@dataclass(frozen=True)
class TransactionTemplate:
    """Template for one booked transaction, dated relative to today."""

    days_ago: int
    payee: Optional[str]
    memo: str
    amount: Decimal
    reference: str


# =============================================================================
# Budget categories
# =============================================================================

DEMO_CATEGORIES: list[BudgetCategory] = [
    BudgetCategory(id="cat-rent", name="Miete", group_name="Wohnen"),
    BudgetCategory(id="cat-utilities", name="Strom & Gas", group_name="Wohnen"),
    BudgetCategory(id="cat-groceries", name="Lebensmittel", group_name="Alltag"),
    BudgetCategory(id="cat-transport", name="Mobilität", group_name="Alltag"),
    BudgetCategory(id="cat-household", name="Haushalt", group_name="Alltag"),
    BudgetCategory(id="cat-streaming", name="Streaming", group_name="Freizeit"),
    BudgetCategory(id="cat-dining", name="Restaurants", group_name="Freizeit"),
    BudgetCategory(id="cat-income", name="Gehalt", group_name="Einnahmen"),
]


# =============================================================================
# Bank transactions
# =============================================================================

DEMO_TRANSACTION_TEMPLATES: list[TransactionTemplate] = [
    TransactionTemplate(
        days_ago=1,
        payee="REWE Markt GmbH",
        memo="REWE SAGT DANKE 4711",
        amount=Decimal("-47.83"),
        reference="REF-2024-0001",
    ),
    TransactionTemplate(
        days_ago=2,
        payee="AMAZON EU S.A R.L., NIEDERLASSUNG DEUTSCHLAND",
        memo="302-1234567-7654321 Amazon.de",
        amount=Decimal("-89.99"),
        reference="REF-2024-0002",
    ),
    TransactionTemplate(
        days_ago=3,
        payee="Hausverwaltung Schmidt & Partner",
        memo="Miete + Nebenkosten",
        amount=Decimal("-950.00"),
        reference="REF-2024-0003",
    ),
    TransactionTemplate(
        days_ago=4,
        payee="TechCorp GmbH",
        memo="Gehalt",
        amount=Decimal("3200.00"),
        reference="REF-2024-0004",
    ),
    TransactionTemplate(
        days_ago=5,
        payee="Netflix International B.V.",
        memo="Netflix Monatsabo",
        amount=Decimal("-13.99"),
        reference="REF-2024-0005",
    ),
    TransactionTemplate(
        days_ago=6,
        payee="DB Vertrieb GmbH",
        memo="Deutschlandticket",
        amount=Decimal("-49.00"),
        reference="REF-2024-0006",
    ),
    TransactionTemplate(
        days_ago=7,
        payee="REWE Markt GmbH",
        memo="REWE SAGT DANKE 4712",
        amount=Decimal("-23.17"),
        reference="REF-2024-0007",
    ),
    TransactionTemplate(
        days_ago=8,
        payee="PayPal Europe S.a.r.l. et Cie S.C.A",
        memo="PP.1234.PP . Lieferando, Ihr Einkauf bei Lieferando",
        amount=Decimal("-31.50"),
        reference="REF-2024-0008",
    ),
    TransactionTemplate(
        days_ago=9,
        payee="Vattenfall Europe Sales",
        memo="Stromabschlag",
        amount=Decimal("-78.00"),
        reference="REF-2024-0009",
    ),
]

# References already present in the demo budget from an earlier import
DEMO_EXISTING_REFERENCES: frozenset[str] = frozenset(
    {"REF-2024-0005", "REF-2024-0009"}
)


def build_demo_transactions(today: Optional[date] = None) -> list[BankTransaction]:
    """Materialize the templates into bank transactions."""
    today = today or date.today()
    return [
        BankTransaction(
            id=f"demo-tx-{index:03d}",
            booking_date=today - timedelta(days=template.days_ago),
            amount=Money(amount=template.amount, currency="EUR"),
            payee=template.payee,
            memo=template.memo,
            reference=template.reference,
        )
        for index, template in enumerate(DEMO_TRANSACTION_TEMPLATES, start=1)
    ]
