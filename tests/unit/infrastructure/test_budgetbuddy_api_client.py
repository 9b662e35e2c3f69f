"""Tests for BudgetBuddyApiClient."""

import json
from typing import Optional

import httpx
import pytest

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
from budgetbuddy.domain.rules.exceptions import RuleValidationError
from budgetbuddy.domain.rules.value_objects import RuleCreateRequest
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
from budgetbuddy.domain.sync.value_objects import SyncSessionStatus
from budgetbuddy.infrastructure.api import BudgetBuddyApiClient
from tests.shared.fixtures import (
    TestCategoryFactory,
    TestSessionFactory,
    TestTransactionFactory,
)

SESSION_ID = TestSessionFactory.DEFAULT_ID
BASE_URL = "http://budgetbuddy.test"


class Backend:
    """Records requests and answers with a canned response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(204)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def backend() -> Backend:
    return Backend()


@pytest.fixture
def client(backend) -> BudgetBuddyApiClient:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(backend))
    return BudgetBuddyApiClient(BASE_URL, client=http)


def error(
    status: int,
    detail: str,
    code: Optional[str] = None,
    details: Optional[dict] = None,
    **kwargs,
) -> httpx.Response:
    body = {"detail": detail}
    if code is not None:
        body["code"] = code
    if details is not None:
        body["details"] = details
    return httpx.Response(status, json=body, **kwargs)


class TestSessions:
    @pytest.mark.asyncio
    async def test_no_current_session(self, client, backend):
        backend.response = httpx.Response(204)

        session = await client.get_current_session()

        assert session is None
        assert backend.last.method == "GET"
        assert backend.last.url.path == "/api/v1/sync/session"

    @pytest.mark.asyncio
    async def test_current_session_is_parsed(self, client, backend):
        payload = TestSessionFactory.awaiting_tan().model_dump(mode="json")
        backend.response = httpx.Response(200, json=payload)

        session = await client.get_current_session()

        assert session.id == SESSION_ID
        assert session.status == SyncSessionStatus.AWAITING_TAN

    @pytest.mark.asyncio
    async def test_bank_auth_returns_challenge(self, client, backend):
        backend.response = httpx.Response(200, json={"challenge_id": "ch-1"})

        challenge = await client.initiate_bank_auth(SESSION_ID)

        assert challenge == "ch-1"
        assert backend.last.url.path == f"/api/v1/sync/sessions/{SESSION_ID}/auth"

    @pytest.mark.asyncio
    async def test_bank_auth_without_challenge_is_invalid(self, client, backend):
        backend.response = httpx.Response(200, json={})

        with pytest.raises(InvalidResponseError):
            await client.initiate_bank_auth(SESSION_ID)

    @pytest.mark.asyncio
    async def test_cancel_deletes_session(self, client, backend):
        await client.cancel_sync(SESSION_ID)

        assert backend.last.method == "DELETE"
        assert backend.last.url.path == f"/api/v1/sync/sessions/{SESSION_ID}"


class TestTransactions:
    @pytest.mark.asyncio
    async def test_categorize_puts_category_and_override(self, client, backend):
        row = TestTransactionFactory.categorized("t1")
        backend.response = httpx.Response(200, json=row.model_dump(mode="json"))

        updated = await client.categorize_transaction(SESSION_ID, "t1", "c1", "REWE")

        assert updated == row
        assert backend.last.method == "PUT"
        assert backend.last.url.path == (
            f"/api/v1/sync/sessions/{SESSION_ID}/transactions/t1/category"
        )
        assert backend.last_json() == {"category_id": "c1", "payee_override": "REWE"}

    @pytest.mark.asyncio
    async def test_clearing_category_uses_delete(self, client, backend):
        row = TestTransactionFactory.pending("t1")
        backend.response = httpx.Response(200, json=row.model_dump(mode="json"))

        await client.categorize_transaction(SESSION_ID, "t1", None)

        assert backend.last.method == "DELETE"

    @pytest.mark.asyncio
    async def test_split_sends_allocations(self, client, backend):
        splits = [
            TestTransactionFactory.split("c1", "-4.00"),
            TestTransactionFactory.split("c2", "-6.00", memo="tip"),
        ]
        row = TestTransactionFactory.pending("t1").with_splits(splits)
        backend.response = httpx.Response(200, json=row.model_dump(mode="json"))

        updated = await client.split_transaction(SESSION_ID, "t1", splits)

        assert updated.is_split
        sent = backend.last_json()["splits"]
        assert [s["category_id"] for s in sent] == ["c1", "c2"]
        assert sent[1]["memo"] == "tip"

    @pytest.mark.asyncio
    async def test_transaction_list(self, client, backend):
        rows = [
            TestTransactionFactory.pending("t1"),
            TestTransactionFactory.skipped("t2"),
        ]
        backend.response = httpx.Response(
            200, json=[row.model_dump(mode="json") for row in rows]
        )

        assert await client.get_transactions(SESSION_ID) == rows

    @pytest.mark.asyncio
    async def test_malformed_row_is_invalid_response(self, client, backend):
        backend.response = httpx.Response(200, json=[{"id": "t1"}])

        with pytest.raises(InvalidResponseError):
            await client.get_transactions(SESSION_ID)

    @pytest.mark.asyncio
    async def test_force_import_returns_created_count(self, client, backend):
        backend.response = httpx.Response(200, json={"created_count": 2})

        count = await client.force_import_duplicates(SESSION_ID, ["t7", "t9"])

        assert count == 2
        assert backend.last_json() == {"transaction_ids": ["t7", "t9"]}

    @pytest.mark.asyncio
    async def test_force_import_without_count_is_invalid(self, client, backend):
        backend.response = httpx.Response(200, json={"imported": 2})

        with pytest.raises(InvalidResponseError):
            await client.force_import_duplicates(SESSION_ID, ["t7"])

    @pytest.mark.asyncio
    async def test_import_result(self, client, backend):
        backend.response = httpx.Response(
            200,
            json={"created_count": 5, "duplicate_transaction_ids": ["t7", "t9"]},
        )

        result = await client.import_to_ynab(SESSION_ID)

        assert result.created_count == 5
        assert result.duplicate_transaction_ids == ["t7", "t9"]


class TestBudgetRulesAndSettings:
    @pytest.mark.asyncio
    async def test_categories(self, client, backend):
        backend.response = httpx.Response(
            200,
            json=[c.model_dump(mode="json") for c in TestCategoryFactory.all()],
        )

        categories = await client.get_categories("b1")

        assert [c.name for c in categories] == ["Groceries", "Dining", "Rent"]
        assert backend.last.url.path == "/api/v1/budgets/b1/categories"

    @pytest.mark.asyncio
    async def test_create_rule_posts_request(self, client, backend):
        backend.response = httpx.Response(
            201,
            json={
                "id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa",
                "name": "REWE",
                "pattern": "rewe",
                "category_id": "c1",
            },
        )
        request = RuleCreateRequest(name="REWE", pattern="rewe", category_id="c1")

        rule = await client.create_rule(request)

        assert rule.name == "REWE"
        assert backend.last_json()["pattern_type"] == "contains"

    @pytest.mark.asyncio
    async def test_configured_default_budget_wins(self, backend):
        http = httpx.AsyncClient(
            base_url=BASE_URL, transport=httpx.MockTransport(backend)
        )
        client = BudgetBuddyApiClient(BASE_URL, default_budget_id="b9", client=http)

        assert await client.get_default_budget_id() == "b9"
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_default_budget_from_backend(self, client, backend):
        backend.response = httpx.Response(200, json={"default_budget_id": "b1"})

        assert await client.get_default_budget_id() == "b1"
        assert backend.last.url.path == "/api/v1/settings"

    @pytest.mark.asyncio
    async def test_no_default_budget(self, client, backend):
        backend.response = httpx.Response(200, json={"default_budget_id": None})

        assert await client.get_default_budget_id() is None


class TestErrorMapping:
    """Tests for turning error responses into domain exceptions."""

    @pytest.mark.asyncio
    async def test_invalid_session_state(self, client, backend):
        backend.response = error(
            409, "Invalid session state", ErrorCode.INVALID_SESSION_STATE.value
        )

        with pytest.raises(BusinessRuleViolation) as exc_info:
            await client.confirm_tan(SESSION_ID)

        assert exc_info.value.code == ErrorCode.INVALID_SESSION_STATE
        assert exc_info.value.message == "Invalid session state"

    @pytest.mark.asyncio
    async def test_tan_timeout(self, client, backend):
        backend.response = error(
            408, "TAN confirmation timed out", ErrorCode.TAN_TIMEOUT.value
        )

        with pytest.raises(TanTimeoutError):
            await client.confirm_tan(SESSION_ID)

    @pytest.mark.asyncio
    async def test_rate_limit_reads_retry_after(self, client, backend):
        backend.response = error(429, "slow down", headers={"Retry-After": "12"})

        with pytest.raises(RateLimitedError) as exc_info:
            await client.import_to_ynab(SESSION_ID)

        assert exc_info.value.retry_after_seconds == 12

    @pytest.mark.asyncio
    async def test_rate_limit_without_header_uses_default(self, client, backend):
        backend.response = error(429, "slow down")

        with pytest.raises(RateLimitedError) as exc_info:
            await client.import_to_ynab(SESSION_ID)

        assert exc_info.value.retry_after_seconds == 60

    @pytest.mark.asyncio
    async def test_unauthorized(self, client, backend):
        backend.response = error(401, "token expired")

        with pytest.raises(BudgetUnauthorizedError):
            await client.get_categories("b1")

    @pytest.mark.asyncio
    async def test_not_found_without_code(self, client, backend):
        backend.response = error(404, "no such transaction")

        with pytest.raises(EntityNotFoundError) as exc_info:
            await client.skip_transaction(SESSION_ID, "t404")

        assert exc_info.value.code == ErrorCode.ENTITY_NOT_FOUND

    @pytest.mark.asyncio
    async def test_server_error_is_internal(self, client, backend):
        backend.response = httpx.Response(500, text="boom")

        with pytest.raises(DomainException) as exc_info:
            await client.get_current_session()

        assert exc_info.value.code == ErrorCode.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, backend):
        backend.response = httpx.Response(200, text="<html>")

        with pytest.raises(InvalidResponseError):
            await client.start_sync()

    @pytest.mark.asyncio
    async def test_connection_error(self, client, backend):
        backend.response = httpx.ConnectError("connection refused")

        with pytest.raises(BudgetNetworkError) as exc_info:
            await client.get_current_session()

        assert exc_info.value.code == ErrorCode.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_timeout(self, client, backend):
        backend.response = httpx.ReadTimeout("read timed out")

        with pytest.raises(BudgetNetworkError):
            await client.get_current_session()


class TestErrorCodes:
    """Each backend error code comes back as its concrete exception."""

    @pytest.mark.parametrize(
        ("status", "code", "details", "expected"),
        [
            (400, ErrorCode.VALIDATION_ERROR, None, ValidationError),
            (400, ErrorCode.INVALID_SPLIT, None, SplitValidationError),
            (400, ErrorCode.INVALID_RULE, None, RuleValidationError),
            (400, ErrorCode.INVALID_PATTERN, None, ValidationError),
            (404, ErrorCode.ENTITY_NOT_FOUND, None, EntityNotFoundError),
            (
                404,
                ErrorCode.SESSION_NOT_FOUND,
                {"session_id": str(SESSION_ID)},
                SessionNotFoundError,
            ),
            (
                404,
                ErrorCode.TRANSACTION_NOT_FOUND,
                {"transaction_id": "t404"},
                TransactionNotFoundError,
            ),
            (404, ErrorCode.BUDGET_NOT_FOUND, {"budget_id": "b1"}, BudgetNotFoundError),
            (
                404,
                ErrorCode.ACCOUNT_NOT_FOUND,
                {"account_id": "a1"},
                BudgetAccountNotFoundError,
            ),
            (
                404,
                ErrorCode.CATEGORY_NOT_FOUND,
                {"category_id": "c404"},
                CategoryNotFoundError,
            ),
            (409, ErrorCode.BUSINESS_RULE_VIOLATION, None, BusinessRuleViolation),
            (
                409,
                ErrorCode.INVALID_SESSION_STATE,
                {"expected": "AWAITING_TAN", "actual": "COMPLETED"},
                InvalidSessionStateError,
            ),
            (
                502,
                ErrorCode.BANK_AUTHENTICATION_FAILED,
                {"reason": "login rejected"},
                BankAuthFailedError,
            ),
            (
                502,
                ErrorCode.BANK_TRANSACTION_FETCH_FAILED,
                {"reason": "bank offline"},
                TransactionFetchFailedError,
            ),
            (408, ErrorCode.TAN_TIMEOUT, None, TanTimeoutError),
            (
                502,
                ErrorCode.IMPORT_FAILED,
                {"failed_count": 3, "reason": "YNAB down"},
                ImportFailedError,
            ),
            (
                500,
                ErrorCode.STORE_ERROR,
                {"operation": "categorize", "detail": "db down"},
                StoreError,
            ),
            (502, ErrorCode.BUDGET_UNAUTHORIZED, None, BudgetUnauthorizedError),
            (502, ErrorCode.RATE_LIMITED, None, RateLimitedError),
            (502, ErrorCode.NETWORK_ERROR, None, BudgetNetworkError),
            (502, ErrorCode.INVALID_RESPONSE, None, InvalidResponseError),
        ],
    )
    @pytest.mark.asyncio
    async def test_code_maps_to_concrete_exception(
        self, client, backend, status, code, details, expected
    ):
        backend.response = error(status, "backend says no", code.value, details)

        with pytest.raises(expected) as exc_info:
            await client.get_current_session()

        assert type(exc_info.value) is expected
        assert exc_info.value.code == code
        assert exc_info.value.message == "backend says no"
        assert str(exc_info.value) == "backend says no"

    @pytest.mark.asyncio
    async def test_session_not_found_keeps_session_id(self, client, backend):
        backend.response = error(
            404,
            "Session not found",
            ErrorCode.SESSION_NOT_FOUND.value,
            {"session_id": str(SESSION_ID)},
        )

        with pytest.raises(SessionNotFoundError) as exc_info:
            await client.get_transactions(SESSION_ID)

        assert exc_info.value.details == {"session_id": str(SESSION_ID)}

    @pytest.mark.asyncio
    async def test_invalid_session_state_keeps_expected_and_actual(
        self, client, backend
    ):
        backend.response = error(
            409,
            "Invalid session state",
            ErrorCode.INVALID_SESSION_STATE.value,
            {"expected": "AWAITING_TAN", "actual": "COMPLETED"},
        )

        with pytest.raises(InvalidSessionStateError) as exc_info:
            await client.confirm_tan(SESSION_ID)

        assert exc_info.value.expected == "AWAITING_TAN"
        assert exc_info.value.actual == "COMPLETED"

    @pytest.mark.asyncio
    async def test_import_failed_keeps_count(self, client, backend):
        backend.response = error(
            502,
            "Failed to import 3 transactions: YNAB down",
            ErrorCode.IMPORT_FAILED.value,
            {"failed_count": 3, "reason": "YNAB down"},
        )

        with pytest.raises(ImportFailedError) as exc_info:
            await client.import_to_ynab(SESSION_ID)

        assert exc_info.value.failed_count == 3

    @pytest.mark.asyncio
    async def test_rate_limited_code_reads_retry_after_from_details(
        self, client, backend
    ):
        backend.response = error(
            503,
            "slow down",
            ErrorCode.RATE_LIMITED.value,
            {"retry_after_seconds": 30},
        )

        with pytest.raises(RateLimitedError) as exc_info:
            await client.get_categories("b1")

        assert exc_info.value.retry_after_seconds == 30
