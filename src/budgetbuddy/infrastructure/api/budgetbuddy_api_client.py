"""HTTP client for the BudgetBuddy backend API."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from budgetbuddy.domain.banking.exceptions import (
    BankAuthFailedError,
    TanTimeoutError,
    TransactionFetchFailedError,
)
from budgetbuddy.domain.budget.exceptions import (
    BudgetAccountNotFoundError,
    BudgetNetworkError,
    BudgetNotFoundError,
    BudgetUnauthorizedError,
    CategoryNotFoundError,
    InvalidResponseError,
    RateLimitedError,
)
from budgetbuddy.domain.budget.ports import BudgetPort, SettingsPort
from budgetbuddy.domain.budget.value_objects import BudgetCategory
from budgetbuddy.domain.rules.exceptions import RuleValidationError
from budgetbuddy.domain.rules.ports import RulePort
from budgetbuddy.domain.rules.value_objects import Rule, RuleCreateRequest
from budgetbuddy.domain.shared.exceptions import (
    BusinessRuleViolation,
    DomainException,
    EntityNotFoundError,
    ErrorCode,
    ValidationError,
)
from budgetbuddy.domain.sync.exceptions import (
    ImportFailedError,
    InvalidSessionStateError,
    SessionNotFoundError,
    SplitValidationError,
    StoreError,
    TransactionNotFoundError,
)
from budgetbuddy.domain.sync.ports import SyncSessionPort
from budgetbuddy.domain.sync.value_objects import (
    ImportResult,
    SyncSession,
    SyncTransaction,
    TransactionSplit,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_RETRY_AFTER_SECONDS = 60

ModelT = TypeVar("ModelT", bound=BaseModel)

_TRANSACTIONS = TypeAdapter(list[SyncTransaction])
_CATEGORIES = TypeAdapter(list[BudgetCategory])

ErrorBuilder = Callable[[str, dict[str, Any]], DomainException]


def _text(details: dict[str, Any], key: str, default: str = "") -> str:
    value = details.get(key)
    return default if value is None else str(value)


def _number(value: Any, default: int) -> int:
    text = "" if value is None else str(value)
    return int(text) if text.isdigit() else default


# One builder per backend error code, each returning the concrete exception
_ERROR_BUILDERS: dict[ErrorCode, ErrorBuilder] = {
    ErrorCode.VALIDATION_ERROR: lambda detail, d: ValidationError(detail, details=d),
    ErrorCode.INVALID_SPLIT: lambda detail, d: SplitValidationError(detail),
    ErrorCode.INVALID_RULE: lambda detail, d: RuleValidationError(detail),
    ErrorCode.INVALID_PATTERN: lambda detail, d: ValidationError(
        detail, ErrorCode.INVALID_PATTERN, d
    ),
    ErrorCode.ENTITY_NOT_FOUND: lambda detail, d: EntityNotFoundError(
        detail, details=d
    ),
    ErrorCode.SESSION_NOT_FOUND: lambda detail, d: SessionNotFoundError(
        _text(d, "session_id")
    ),
    ErrorCode.TRANSACTION_NOT_FOUND: lambda detail, d: TransactionNotFoundError(
        _text(d, "transaction_id")
    ),
    ErrorCode.BUDGET_NOT_FOUND: lambda detail, d: BudgetNotFoundError(
        _text(d, "budget_id")
    ),
    ErrorCode.ACCOUNT_NOT_FOUND: lambda detail, d: BudgetAccountNotFoundError(
        _text(d, "account_id")
    ),
    ErrorCode.CATEGORY_NOT_FOUND: lambda detail, d: CategoryNotFoundError(
        _text(d, "category_id")
    ),
    ErrorCode.BUSINESS_RULE_VIOLATION: lambda detail, d: BusinessRuleViolation(
        detail, details=d
    ),
    ErrorCode.INVALID_SESSION_STATE: lambda detail, d: InvalidSessionStateError(
        _text(d, "expected"), _text(d, "actual")
    ),
    ErrorCode.BANK_AUTHENTICATION_FAILED: lambda detail, d: BankAuthFailedError(
        _text(d, "reason", detail)
    ),
    ErrorCode.BANK_TRANSACTION_FETCH_FAILED: (
        lambda detail, d: TransactionFetchFailedError(_text(d, "reason", detail))
    ),
    ErrorCode.TAN_TIMEOUT: lambda detail, d: TanTimeoutError(detail),
    ErrorCode.IMPORT_FAILED: lambda detail, d: ImportFailedError(
        _number(d.get("failed_count"), 0), _text(d, "reason", detail)
    ),
    ErrorCode.STORE_ERROR: lambda detail, d: StoreError(
        _text(d, "operation", "request"), _text(d, "detail", detail)
    ),
    ErrorCode.BUDGET_UNAUTHORIZED: lambda detail, d: BudgetUnauthorizedError(detail),
    ErrorCode.RATE_LIMITED: lambda detail, d: RateLimitedError(
        _number(d.get("retry_after_seconds"), DEFAULT_RETRY_AFTER_SECONDS)
    ),
    ErrorCode.NETWORK_ERROR: lambda detail, d: BudgetNetworkError(detail),
    ErrorCode.INVALID_RESPONSE: lambda detail, d: InvalidResponseError(detail),
}

_STATUS_FALLBACK: dict[int, tuple[type[DomainException], ErrorCode]] = {
    400: (ValidationError, ErrorCode.VALIDATION_ERROR),
    404: (EntityNotFoundError, ErrorCode.ENTITY_NOT_FOUND),
    409: (BusinessRuleViolation, ErrorCode.BUSINESS_RULE_VIOLATION),
    422: (ValidationError, ErrorCode.VALIDATION_ERROR),
}


def _with_message(error: DomainException, message: str) -> DomainException:
    error.message = message
    error.args = (message,)
    return error


def error_from_response(response: httpx.Response) -> DomainException:
    """Rebuild the domain exception described by an error response.

    The backend answers errors with ``{"detail": str, "code": ErrorCode}``
    and an optional ``details`` object carrying the exception's fields.
    The rebuilt exception keeps the backend's ``detail`` as its message.
    """
    if response.status_code == 429:
        return RateLimitedError(
            _number(response.headers.get("Retry-After"), DEFAULT_RETRY_AFTER_SECONDS)
        )

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    detail = body.get("detail") or response.reason_phrase or "Unknown error"
    if not isinstance(detail, str):
        detail = str(detail)
    details = body.get("details")
    if not isinstance(details, dict):
        details = {}

    try:
        code: Optional[ErrorCode] = ErrorCode(body.get("code"))
    except ValueError:
        code = None

    if code is not None and code in _ERROR_BUILDERS:
        return _with_message(_ERROR_BUILDERS[code](detail, details), detail)

    if response.status_code in (401, 403):
        return BudgetUnauthorizedError(detail)
    family, fallback_code = _STATUS_FALLBACK.get(
        response.status_code,
        (DomainException, ErrorCode.INTERNAL_ERROR),
    )
    return family(detail, fallback_code)


class BudgetBuddyApiClient(SyncSessionPort, BudgetPort, RulePort, SettingsPort):
    """Talks to the BudgetBuddy backend, which owns sessions and rules."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 360.0,
        default_budget_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._default_budget_id = default_budget_id
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> BudgetBuddyApiClient:
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.api_timeout,
            default_budget_id=settings.default_budget_id,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Sync sessions
    # -------------------------------------------------------------------------

    async def get_current_session(self) -> Optional[SyncSession]:
        data = await self._request("GET", "/sync/session")
        if data is None:
            return None
        return self._parse(SyncSession, data)

    async def start_sync(self) -> SyncSession:
        data = await self._request("POST", "/sync/sessions")
        return self._parse(SyncSession, data)

    async def initiate_bank_auth(self, session_id: UUID) -> str:
        data = await self._request("POST", f"/sync/sessions/{session_id}/auth")
        if not isinstance(data, dict) or "challenge_id" not in data:
            raise InvalidResponseError("missing challenge_id")
        return str(data["challenge_id"])

    async def confirm_tan(self, session_id: UUID) -> None:
        await self._request("POST", f"/sync/sessions/{session_id}/tan")

    async def get_transactions(self, session_id: UUID) -> list[SyncTransaction]:
        data = await self._request("GET", f"/sync/sessions/{session_id}/transactions")
        return self._parse_list(_TRANSACTIONS, data)

    async def categorize_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
        category_id: Optional[str],
        payee_override: Optional[str] = None,
    ) -> SyncTransaction:
        path = self._transaction_path(session_id, transaction_id, "category")
        if category_id is None and payee_override is None:
            data = await self._request("DELETE", path)
        else:
            data = await self._request(
                "PUT",
                path,
                json={"category_id": category_id, "payee_override": payee_override},
            )
        return self._parse(SyncTransaction, data)

    async def skip_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        path = self._transaction_path(session_id, transaction_id, "skip")
        return self._parse(SyncTransaction, await self._request("POST", path))

    async def unskip_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        path = self._transaction_path(session_id, transaction_id, "unskip")
        return self._parse(SyncTransaction, await self._request("POST", path))

    async def split_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
        splits: list[TransactionSplit],
    ) -> SyncTransaction:
        path = self._transaction_path(session_id, transaction_id, "splits")
        data = await self._request(
            "PUT",
            path,
            json={"splits": [split.model_dump(mode="json") for split in splits]},
        )
        return self._parse(SyncTransaction, data)

    async def clear_split(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        path = self._transaction_path(session_id, transaction_id, "splits")
        return self._parse(SyncTransaction, await self._request("DELETE", path))

    async def bulk_categorize(
        self,
        session_id: UUID,
        transaction_ids: list[str],
        category_id: str,
    ) -> list[SyncTransaction]:
        data = await self._request(
            "POST",
            f"/sync/sessions/{session_id}/bulk-categorize",
            json={"transaction_ids": transaction_ids, "category_id": category_id},
        )
        return self._parse_list(_TRANSACTIONS, data)

    async def import_to_ynab(self, session_id: UUID) -> ImportResult:
        data = await self._request("POST", f"/sync/sessions/{session_id}/import")
        return self._parse(ImportResult, data)

    async def force_import_duplicates(
        self,
        session_id: UUID,
        transaction_ids: list[str],
    ) -> int:
        data = await self._request(
            "POST",
            f"/sync/sessions/{session_id}/force-import",
            json={"transaction_ids": transaction_ids},
        )
        if not isinstance(data, dict) or not isinstance(data.get("created_count"), int):
            raise InvalidResponseError("missing created_count")
        return data["created_count"]

    async def cancel_sync(self, session_id: UUID) -> None:
        await self._request("DELETE", f"/sync/sessions/{session_id}")

    # -------------------------------------------------------------------------
    # Budget, rules and settings
    # -------------------------------------------------------------------------

    async def get_categories(self, budget_id: str) -> list[BudgetCategory]:
        data = await self._request("GET", f"/budgets/{budget_id}/categories")
        return self._parse_list(_CATEGORIES, data)

    async def create_rule(self, request: RuleCreateRequest) -> Rule:
        data = await self._request(
            "POST",
            "/rules",
            json=request.model_dump(mode="json"),
        )
        return self._parse(Rule, data)

    async def get_default_budget_id(self) -> Optional[str]:
        if self._default_budget_id:
            return self._default_budget_id
        data = await self._request("GET", "/settings")
        if not isinstance(data, dict):
            return None
        budget_id = data.get("default_budget_id")
        return str(budget_id) if budget_id else None

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        client = await self._get_client()
        url = f"{API_PREFIX}{path}"
        try:
            response = await client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            logger.warning("BudgetBuddy API timeout on %s %s: %s", method, url, e)
            raise BudgetNetworkError(f"timeout on {method} {path}") from e
        except httpx.TransportError as e:
            logger.warning("BudgetBuddy API unreachable on %s %s: %s", method, url, e)
            raise BudgetNetworkError(str(e) or type(e).__name__) from e

        if response.is_error:
            error = error_from_response(response)
            logger.warning(
                "BudgetBuddy API returned %d on %s %s: %s",
                response.status_code,
                method,
                url,
                error.message,
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(f"{method} {path} returned invalid JSON") from e

    @staticmethod
    def _parse(model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise InvalidResponseError(
                f"unexpected {model.__name__} payload: {e.error_count()} error(s)"
            ) from e

    @staticmethod
    def _parse_list(adapter: TypeAdapter, data: Any) -> list:
        try:
            return adapter.validate_python(data)
        except PydanticValidationError as e:
            raise InvalidResponseError(
                f"unexpected list payload: {e.error_count()} error(s)"
            ) from e

    @staticmethod
    def _transaction_path(session_id: UUID, transaction_id: str, action: str) -> str:
        return f"/sync/sessions/{session_id}/transactions/{transaction_id}/{action}"
