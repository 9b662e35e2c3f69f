"""Rule repository port interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from budgetbuddy.domain.rules.value_objects import Rule, RuleCreateRequest


class RulePort(ABC):
    """Interface for persisting categorization rules."""

    @abstractmethod
    async def create_rule(self, request: RuleCreateRequest) -> Rule:
        """
        Persist a new rule.

        Returns
        -------
        The stored rule, including its id and cached category name
        """
