"""Lifecycle of the active sync session.

The backend owns the session record. This state machine only issues the
start / auth / TAN / cancel commands in order and mirrors whatever status
the backend reports afterwards:

    (none) --start--> AWAITING_BANK_AUTH --auth--> AWAITING_TAN
    AWAITING_TAN --confirm--> FETCHING_TRANSACTIONS --> REVIEWING_TRANSACTIONS
    REVIEWING_TRANSACTIONS --import--> IMPORTING_TO_YNAB --> COMPLETED
    any non-terminal --error--> FAILED(reason)
    any non-terminal --cancel--> (none)
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID, uuid4

from budgetbuddy.application.sync_flow.notifications import Notifier
from budgetbuddy.application.sync_flow.remote_data import RemoteData
from budgetbuddy.domain.sync.exceptions import InvalidSessionStateError
from budgetbuddy.domain.sync.ports import SyncSessionPort
from budgetbuddy.domain.sync.value_objects import SyncSession, SyncSessionStatus

logger = logging.getLogger(__name__)

NO_ACTIVE_SESSION = "No active sync session"


class SessionStateMachine:
    """Owns the ``RemoteData`` slice holding the current session."""

    def __init__(self, port: SyncSessionPort, notifier: Notifier):
        self._port = port
        self._notifier = notifier
        self._session: RemoteData[Optional[SyncSession]] = RemoteData.not_asked()
        self._tan_confirmation: Optional[UUID] = None

    @property
    def session(self) -> RemoteData[Optional[SyncSession]]:
        return self._session

    @property
    def current_session(self) -> Optional[SyncSession]:
        return self._session.with_default(None)

    @property
    def session_id(self) -> Optional[UUID]:
        session = self.current_session
        return session.id if session is not None else None

    @property
    def is_confirming_tan(self) -> bool:
        return self._tan_confirmation is not None

    def is_stale(self, session_id: UUID) -> bool:
        """True if ``session_id`` is no longer the active session."""
        return self.session_id != session_id

    def ensure_status(
        self,
        operation: str,
        *allowed: SyncSessionStatus,
    ) -> Optional[SyncSession]:
        """Gate a session-scoped command on the current status.

        Returns the current session when the command may be issued. Otherwise
        a warning is shown and None is returned; no call must be made.
        """
        session = self.current_session
        if session is None:
            logger.debug("Rejected %s: no active session", operation)
            self._notifier.warning(NO_ACTIVE_SESSION)
            return None

        if allowed and session.status not in allowed:
            error = InvalidSessionStateError(
                expected=" or ".join(status.value for status in allowed),
                actual=session.status.value,
            )
            logger.debug("Rejected %s: %s", operation, error)
            self._notifier.warning(error.message)
            return None

        return session

    async def load_current_session(self) -> Optional[SyncSession]:
        self._session = RemoteData.loading()
        try:
            session = await self._port.get_current_session()
        except Exception as e:
            error = self._notifier.report("loading the current session", e)
            self._session = RemoteData.failure(error.message)
            return None

        self._session = RemoteData.success(session)
        if session is not None:
            logger.info("Current session %s is %s", session.id, session.status.value)
        return session

    async def reload_session(self, session_id: UUID) -> Optional[SyncSession]:
        """Replace the local copy of ``session_id`` with the backend's record."""
        try:
            session = await self._port.get_current_session()
        except Exception as e:
            if self.is_stale(session_id):
                return None
            error = self._notifier.report("reloading the session", e)
            self._session = RemoteData.failure(error.message)
            return None

        if self.is_stale(session_id):
            logger.debug("Ignoring session reload for discarded session %s", session_id)
            return None

        self._session = RemoteData.success(session)
        if session is not None:
            logger.info("Session %s is %s", session.id, session.status.value)
        return session

    async def start_sync(self) -> Optional[SyncSession]:
        """Create a new session and immediately start the bank login."""
        self._session = RemoteData.loading()
        self._tan_confirmation = None
        try:
            session = await self._port.start_sync()
        except Exception as e:
            error = self._notifier.report("starting the sync", e)
            self._session = RemoteData.failure(error.message)
            return None

        self._session = RemoteData.success(session)
        logger.info("Started sync session %s", session.id)

        await self.initiate_bank_auth()
        return self.current_session

    async def initiate_bank_auth(self) -> Optional[str]:
        session = self.ensure_status(
            "bank authentication",
            SyncSessionStatus.AWAITING_BANK_AUTH,
        )
        if session is None:
            return None

        try:
            challenge = await self._port.initiate_bank_auth(session.id)
        except Exception as e:
            if self.is_stale(session.id):
                return None
            await self._fail_session("bank authentication", e, session.id)
            return None

        if self.is_stale(session.id):
            logger.debug(
                "Ignoring bank auth result for discarded session %s", session.id
            )
            return None

        logger.info("Bank auth started for session %s", session.id)
        self._notifier.info("Please confirm the TAN on your phone")
        await self.reload_session(session.id)
        return challenge

    async def confirm_tan(self) -> bool:
        """Confirm the push-TAN once; repeated calls while in flight are no-ops.

        Returns
        -------
        True if the backend accepted the confirmation for the still-active
        session, so the caller should (re)load the transactions
        """
        if self._tan_confirmation is not None:
            logger.debug("TAN confirmation already in flight, ignoring")
            return False

        session = self.ensure_status("TAN confirmation", SyncSessionStatus.AWAITING_TAN)
        if session is None:
            return False

        token = uuid4()
        self._tan_confirmation = token
        try:
            await self._port.confirm_tan(session.id)
        except Exception as e:
            self._release_tan_confirmation(token)
            if self.is_stale(session.id):
                return False
            await self._fail_session("TAN confirmation", e, session.id)
            return False
        finally:
            self._release_tan_confirmation(token)

        if self.is_stale(session.id):
            logger.debug("Ignoring TAN result for discarded session %s", session.id)
            return False

        logger.info("TAN confirmed for session %s", session.id)
        self._notifier.success("TAN confirmed, fetching transactions...")
        await self.reload_session(session.id)
        return True

    async def cancel_sync(self) -> bool:
        """Discard the active session.

        Requests still in flight are not aborted; their responses are
        dropped because they no longer match the active session.
        """
        session = self.current_session
        if session is None:
            logger.debug("Rejected cancel: no active session")
            self._notifier.warning(NO_ACTIVE_SESSION)
            return False

        try:
            await self._port.cancel_sync(session.id)
        except Exception as e:
            if self.is_stale(session.id):
                return False
            error = self._notifier.report("cancelling the sync", e)
            self._session = RemoteData.failure(error.message)
            return False

        if self.is_stale(session.id):
            return False

        self._session = RemoteData.success(None)
        self._tan_confirmation = None
        logger.info("Cancelled sync session %s", session.id)
        self._notifier.info("Sync cancelled")
        return True

    async def _fail_session(
        self,
        operation: str,
        error: Exception,
        session_id: UUID,
    ) -> None:
        # The backend records the failure; reload instead of assuming it.
        domain_error = self._notifier.report(operation, error)
        self._session = RemoteData.failure(domain_error.message)
        try:
            session = await self._port.get_current_session()
        except Exception as e:
            logger.warning("Could not reload session %s: %s", session_id, e)
            return

        if session is not None and session.id == session_id:
            self._session = RemoteData.success(session)

    def _release_tan_confirmation(self, token: UUID) -> None:
        if self._tan_confirmation == token:
            self._tan_confirmation = None
