"""Create a categorization rule straight from a manually categorized row."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from budgetbuddy.application.sync_flow.notifications import Notifier
from budgetbuddy.application.sync_flow.reconciliation import (
    TransactionReconciliationStore,
)
from budgetbuddy.domain.rules.exceptions import RuleValidationError
from budgetbuddy.domain.rules.ports import RulePort
from budgetbuddy.domain.rules.services import rule_matches
from budgetbuddy.domain.rules.value_objects import (
    PatternType,
    Rule,
    RuleCreateRequest,
    TargetField,
)
from budgetbuddy.domain.sync.value_objects import SyncTransaction, TransactionStatus

logger = logging.getLogger(__name__)

RULE_NAME_MAX_PREVIEW = 30


def suggest_rule_name(payee: str) -> str:
    if len(payee) > RULE_NAME_MAX_PREVIEW:
        return payee[:RULE_NAME_MAX_PREVIEW] + "..."
    return payee


@dataclass(frozen=True)
class InlineRuleFormState:
    transaction_id: str
    pattern: str
    category_id: str
    rule_name: str
    pattern_type: PatternType = PatternType.CONTAINS
    target_field: TargetField = TargetField.COMBINED
    payee_override: Optional[str] = None
    is_saving: bool = False


class InlineRuleCreator:
    """Holds at most one open rule form.

    After a rule is created it is applied right away to every pending,
    uncategorized row it matches, through one bulk categorization.
    """

    def __init__(
        self,
        rule_port: RulePort,
        store: TransactionReconciliationStore,
        notifier: Notifier,
    ):
        self._rule_port = rule_port
        self._store = store
        self._notifier = notifier
        self._form: Optional[InlineRuleFormState] = None

    @property
    def form(self) -> Optional[InlineRuleFormState]:
        return self._form

    def open(self, transaction_id: str) -> Optional[InlineRuleFormState]:
        if transaction_id not in self._store.manually_categorized_ids:
            logger.debug(
                "Rule form needs a manually categorized row: %s", transaction_id
            )
            return None

        transaction = self._store.get_transaction(transaction_id)
        if transaction is None or transaction.category_id is None:
            return None

        payee = transaction.transaction.payee or ""
        self._form = InlineRuleFormState(
            transaction_id=transaction_id,
            pattern=payee,
            category_id=transaction.category_id,
            rule_name=suggest_rule_name(payee),
            payee_override=transaction.payee_override,
        )
        return self._form

    def close(self) -> None:
        self._form = None

    def update_pattern(self, pattern: str) -> None:
        self._update(pattern=pattern)

    def update_pattern_type(self, pattern_type: PatternType) -> None:
        self._update(pattern_type=pattern_type)

    def update_target_field(self, target_field: TargetField) -> None:
        self._update(target_field=target_field)

    def update_rule_name(self, rule_name: str) -> None:
        self._update(rule_name=rule_name)

    def update_category(self, category_id: str) -> None:
        self._update(category_id=category_id)

    def update_payee_override(self, payee_override: Optional[str]) -> None:
        self._update(payee_override=payee_override or None)

    async def save(self) -> Optional[Rule]:
        form = self._form
        if form is None or form.is_saving:
            return None

        try:
            request = self._build_request(form)
        except RuleValidationError as e:
            logger.debug("Rejected rule form: %s", e)
            self._notifier.warning(e.message)
            return None

        saving = replace(form, is_saving=True)
        self._form = saving
        try:
            rule = await self._rule_port.create_rule(request)
        except Exception as e:
            self._notifier.report("rule creation", e)
            if self._form is saving:
                self._form = replace(saving, is_saving=False)
            return None

        # A form reopened while saving belongs to another edit.
        if self._form is saving:
            self._form = None
        logger.info("Created rule %s (%s)", rule.id, rule.name)
        self._notifier.success(f"Rule '{rule.name}' created")

        await self._apply_to_pending(rule)
        return rule

    async def _apply_to_pending(self, rule: Rule) -> None:
        matching = [
            transaction.id
            for transaction in self._store.transactions.with_default([])
            if _is_uncategorized_pending(transaction)
            and rule_matches(rule, transaction.transaction)
        ]
        if not matching:
            logger.debug("Rule %s matches no pending transactions", rule.id)
            return

        updated = await self._store.bulk_categorize(matching, rule.category_id)
        if updated is not None:
            self._notifier.info(
                f"Applied rule to {len(updated)} other transaction(s)"
            )

    def _update(self, **changes) -> None:
        if self._form is None or self._form.is_saving:
            return
        self._form = replace(self._form, **changes)

    @staticmethod
    def _build_request(form: InlineRuleFormState) -> RuleCreateRequest:
        if not form.pattern.strip():
            raise RuleValidationError("Pattern is required")
        if not form.rule_name.strip():
            raise RuleValidationError("Rule name is required")

        try:
            return RuleCreateRequest(
                name=form.rule_name,
                pattern=form.pattern,
                pattern_type=form.pattern_type,
                target_field=form.target_field,
                category_id=form.category_id,
                payee_override=form.payee_override,
            )
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise RuleValidationError(f"Invalid {field}: {first['msg']}") from e


def _is_uncategorized_pending(transaction: SyncTransaction) -> bool:
    return (
        transaction.status == TransactionStatus.PENDING
        and not transaction.is_categorized
    )
