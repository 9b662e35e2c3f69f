"""Offline stand-ins for the bank and the budget.

``DemoBank`` approves every TAN immediately and serves the demo
transactions. ``DemoBudget`` keeps imported transactions in memory and
refuses those whose bank reference it already holds, the way the real
budget reports duplicates.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID, uuid4

from budgetbuddy.domain.banking.exceptions import BankAuthFailedError, TanTimeoutError
from budgetbuddy.domain.banking.ports import BankConnectionPort
from budgetbuddy.domain.banking.value_objects import BankTransaction
from budgetbuddy.domain.budget.exceptions import BudgetNotFoundError
from budgetbuddy.domain.budget.ports import (
    BudgetImportPort,
    BudgetPort,
    SettingsPort,
)
from budgetbuddy.domain.budget.value_objects import BudgetCategory
from budgetbuddy.domain.rules.ports import RulePort
from budgetbuddy.domain.rules.value_objects import Rule, RuleCreateRequest
from budgetbuddy.domain.sync.value_objects import ImportResult, SyncTransaction
from budgetbuddy_demo.data import (
    DEMO_BUDGET_ID,
    DEMO_CATEGORIES,
    DEMO_EXISTING_REFERENCES,
    build_demo_transactions,
)

logger = logging.getLogger(__name__)

IMPORT_ID_PREFIX = "BB:"


class DemoBank(BankConnectionPort):
    """Bank connection that never leaves the process."""

    def __init__(
        self,
        transactions: Optional[list[BankTransaction]] = None,
        fail_auth: bool = False,
        tan_timeout: bool = False,
    ):
        self._transactions = (
            transactions if transactions is not None else build_demo_transactions()
        )
        self._fail_auth = fail_auth
        self._tan_timeout = tan_timeout
        self.tan_confirmations = 0

    async def start_auth(self, session_id: UUID) -> str:
        if self._fail_auth:
            raise BankAuthFailedError("demo bank rejected the login")
        challenge = f"demo-challenge-{session_id.hex[:8]}"
        logger.debug("Demo bank issued push-TAN %s", challenge)
        return challenge

    async def confirm_tan(self, session_id: UUID) -> None:
        self.tan_confirmations += 1
        if self._tan_timeout:
            raise TanTimeoutError()

    async def fetch_transactions(self, session_id: UUID) -> list[BankTransaction]:
        return list(self._transactions)


class DemoBudget(BudgetImportPort, BudgetPort):
    """Budget that remembers what was imported into it."""

    def __init__(
        self,
        categories: Optional[list[BudgetCategory]] = None,
        existing_references: Optional[set[str]] = None,
        budget_id: str = DEMO_BUDGET_ID,
    ):
        self._categories = list(
            categories if categories is not None else DEMO_CATEGORIES
        )
        self._references = set(
            existing_references
            if existing_references is not None
            else DEMO_EXISTING_REFERENCES
        )
        self._budget_id = budget_id
        self.imported: dict[str, SyncTransaction] = {}

    async def list_categories(self, budget_id: str) -> list[BudgetCategory]:
        if budget_id != self._budget_id:
            raise BudgetNotFoundError(budget_id)
        return list(self._categories)

    async def import_transactions(
        self,
        session_id: UUID,
        transactions: list[SyncTransaction],
    ) -> ImportResult:
        created = 0
        duplicates: list[str] = []
        for transaction in transactions:
            if self._is_known(transaction):
                duplicates.append(transaction.id)
                continue
            self._create(transaction)
            created += 1

        logger.debug(
            "Demo budget created %d transactions, refused %d",
            created,
            len(duplicates),
        )
        return ImportResult(created_count=created, duplicate_transaction_ids=duplicates)

    async def force_import(
        self,
        session_id: UUID,
        transactions: list[SyncTransaction],
    ) -> int:
        for transaction in transactions:
            self._create(transaction)
        return len(transactions)

    def _is_known(self, transaction: SyncTransaction) -> bool:
        reference = transaction.transaction.reference
        return (
            f"{IMPORT_ID_PREFIX}{transaction.id}" in self.imported
            or (bool(reference) and reference in self._references)
        )

    def _create(self, transaction: SyncTransaction) -> None:
        self.imported[f"{IMPORT_ID_PREFIX}{transaction.id}"] = transaction
        if transaction.transaction.reference:
            self._references.add(transaction.transaction.reference)

    async def get_categories(self, budget_id: str) -> list[BudgetCategory]:
        return await self.list_categories(budget_id)


class DemoSettings(SettingsPort):
    def __init__(self, default_budget_id: Optional[str] = DEMO_BUDGET_ID):
        self._default_budget_id = default_budget_id

    async def get_default_budget_id(self) -> Optional[str]:
        return self._default_budget_id


class DemoRuleStore(RulePort):
    """Keeps created rules in memory."""

    def __init__(self, categories: Optional[list[BudgetCategory]] = None):
        self._category_names = {
            category.id: category.name
            for category in (categories if categories is not None else DEMO_CATEGORIES)
        }
        self.rules: list[Rule] = []

    async def create_rule(self, request: RuleCreateRequest) -> Rule:
        rule = Rule(
            id=uuid4(),
            name=request.name,
            pattern=request.pattern,
            pattern_type=request.pattern_type,
            target_field=request.target_field,
            category_id=request.category_id,
            category_name=self._category_names.get(request.category_id, ""),
            payee_override=request.payee_override,
            priority=request.priority,
        )
        self.rules.append(rule)
        return rule
