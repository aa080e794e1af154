"""Second factor challenge orchestration"""

import asyncio
import logging
from collections.abc import Callable

from ..auth.finalizer import SessionFinalizer
from ..ceremony.base import AbortSignal, Ceremony
from ..core.exceptions import (
    AuthError,
    CancelledByUser,
    ChallengeRejected,
    FactorCeremonyAborted,
    MalformedChallenge,
)
from ..core.types import (
    ChallengeOutcome,
    ChallengePayload,
    OrchestratorState,
    OutcomeStatus,
    SessionData,
    TfaMethod,
)
from ..storage.preferences import PreferenceStore
from .handlers import MethodHandler, RecoveryHandler, TotpHandler, WebAuthnHandler

logger = logging.getLogger(__name__)


class ChallengeOrchestrator:
    """
    State machine for one second factor challenge.

    SELECTING_METHOD -> AWAITING_FACTOR -> SUBMITTING -> RESOLVED, or
    CANCELLED from any state before a submission starts. All transitions run
    on the event loop thread. Exactly one of `on_success` / `on_failure` is
    called, exactly once.
    """

    def __init__(
        self,
        userid: str,
        ticket: str,
        challenge: ChallengePayload,
        finalizer: SessionFinalizer,
        on_success: Callable[[SessionData], None],
        on_failure: Callable[[AuthError], None],
        preferences: PreferenceStore | None = None,
        ceremony: Ceremony | None = None,
    ):
        if not userid:
            raise ValueError("no userid given")
        if not ticket:
            raise ValueError("no ticket given")
        if challenge is None:
            raise ValueError("no challenge given")

        self.userid = userid
        self.ticket = ticket
        self.challenge = challenge
        self._finalizer = finalizer
        self._on_success = on_success
        self._on_failure = on_failure
        self._preferences = preferences

        self.available_methods = challenge.available()
        if not self.available_methods:
            raise MalformedChallenge("no second factor method available")

        user_verification = preferences.get_user_verification() if preferences else None
        self._handlers: dict[TfaMethod, MethodHandler] = {
            TfaMethod.WEBAUTHN: WebAuthnHandler(challenge.webauthn, ceremony, user_verification),
            TfaMethod.TOTP: TotpHandler(),
            TfaMethod.RECOVERY: RecoveryHandler(),
        }

        last_method = preferences.get_last_method() if preferences else None
        if last_method in self.available_methods:
            self.initial_method = last_method
        else:
            self.initial_method = self.available_methods[0]

        self.recovery_low = challenge.recovery_low

        self._state = OrchestratorState.SELECTING_METHOD
        self._active: TfaMethod | None = None
        self._cancellable = True  # cleared the instant a submission begins
        self._settled = False
        self._ceremony_signal: AbortSignal | None = None
        self._ceremony_task: asyncio.Task | None = None

        self.outcome: ChallengeOutcome | None = None
        self.last_error: AuthError | None = None

    # ---- observable state ----

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def active_method(self) -> TfaMethod | None:
        return self._active

    def handler(self, method: TfaMethod) -> MethodHandler:
        return self._handlers[method]

    @property
    def ceremony_pending(self) -> bool:
        return self._ceremony_task is not None

    @property
    def can_confirm(self) -> bool:
        if self._state is not OrchestratorState.AWAITING_FACTOR or self._active is None:
            return False
        if self._active is TfaMethod.WEBAUTHN and self.ceremony_pending:
            return False
        return self._handlers[self._active].is_valid()

    @property
    def confirm_text(self) -> str:
        method = self._active or self.initial_method
        return self._handlers[method].confirm_text

    @property
    def recovery_hint(self) -> str | None:
        if not self.challenge.recovery:
            return None
        return "Available recovery keys: " + ", ".join(self.challenge.recovery)

    # ---- transitions ----

    def open(self) -> None:
        """Enter the initial method. Needs a running event loop."""
        if self._state is not OrchestratorState.SELECTING_METHOD or self._active is not None:
            raise RuntimeError("challenge already opened")
        logger.info(
            f"[TFA] Challenge for {self.userid}, methods: "
            f"{[m.tag for m in self.available_methods]}, starting with {self.initial_method.tag}"
        )
        self._enter(self.initial_method, remember=False)

    def select_method(self, method: TfaMethod) -> None:
        """Switch to another method, cancelling the current one first"""
        if self._state not in (
            OrchestratorState.SELECTING_METHOD,
            OrchestratorState.AWAITING_FACTOR,
        ):
            raise RuntimeError(f"cannot switch method in state {self._state.name}")
        if method not in self.available_methods:
            raise ValueError(f"method {method.tag} not offered by this challenge")
        if method is self._active:
            return
        self._enter(method, remember=True)

    def set_input(self, value: str) -> bool:
        """Feed the active method's input field, returns whether confirm is possible"""
        if self._state is OrchestratorState.AWAITING_FACTOR and self._active is not None:
            self._handlers[self._active].set_value(value)
        return self.can_confirm

    async def confirm(self) -> None:
        """Confirm the active method. No-op while confirm is disabled."""
        if not self.can_confirm:
            logger.debug("[TFA] Confirm ignored, not permitted in current state")
            return

        if self._active is TfaMethod.WEBAUTHN:
            task = self._start_ceremony()
            await asyncio.wait({task})
            return

        factor = self._handlers[self._active].attempt()
        await self._submit(factor)

    def start_ceremony(self) -> bool:
        """Restart the WebAuthn ceremony without waiting for it, see wait_ceremony()"""
        if self._active is not TfaMethod.WEBAUTHN or not self.can_confirm:
            return False
        self._start_ceremony()
        return True

    def cancel_ceremony(self) -> None:
        """Abort the pending ceremony as if it was dismissed on the device"""
        if not self.ceremony_pending:
            return
        self._abort_ceremony()
        self.last_error = FactorCeremonyAborted()

    async def wait_ceremony(self) -> None:
        """Wait for the pending ceremony, including a submission it starts"""
        task = self._ceremony_task
        if task is not None:
            await asyncio.wait({task})

    def close(self) -> None:
        """Dismiss the flow. Only effective before a submission has begun."""
        if not self._cancellable or self._settled:
            logger.debug("[TFA] Close after submission started, nothing to do")
            return
        logger.info(f"[TFA] Challenge for {self.userid} dismissed")
        self._cancellable = False
        self._settle(ChallengeOutcome(OutcomeStatus.CANCELLED, error=CancelledByUser()))

    # ---- internals ----

    def _enter(self, method: TfaMethod, remember: bool) -> None:
        previous = self._active
        if previous is not None:
            self._handlers[previous].disable()
            if previous is TfaMethod.WEBAUTHN:
                self._abort_ceremony()

        self._active = method
        self._handlers[method].enable()
        self._state = OrchestratorState.AWAITING_FACTOR
        self.last_error = None

        if remember and self._preferences is not None:
            self._preferences.set_last_method(method)

        if method is TfaMethod.WEBAUTHN:
            self._start_ceremony()

    def _start_ceremony(self) -> asyncio.Task:
        self._abort_ceremony()
        signal = AbortSignal()
        task = asyncio.get_running_loop().create_task(self._run_ceremony(signal))
        self._ceremony_signal = signal
        self._ceremony_task = task
        return task

    def _abort_ceremony(self) -> None:
        signal, task = self._ceremony_signal, self._ceremony_task
        self._ceremony_signal = None
        self._ceremony_task = None
        if signal is not None:
            logger.info("[WebAuthn] Aborting pending ceremony")
            signal.abort()
        if task is not None and not task.done():
            task.cancel()

    async def _run_ceremony(self, signal: AbortSignal) -> None:
        handler = self._handlers[TfaMethod.WEBAUTHN]
        try:
            factor = await handler.attempt(signal)
        except Exception as e:
            error = e
            if not isinstance(error, FactorCeremonyAborted):
                logger.error(f"[WebAuthn] Ceremony attempt failed: {e!r}")
                error = FactorCeremonyAborted(e)
            if self._ceremony_signal is signal:
                # back to AWAITING_FACTOR with confirm enabled, no error surfaced
                self._ceremony_signal = None
                self._ceremony_task = None
                self.last_error = error
            return

        if self._ceremony_signal is not signal:
            return
        self._ceremony_signal = None
        self._ceremony_task = None
        await self._submit(factor)

    async def _submit(self, factor: str) -> None:
        self._cancellable = False
        self._state = OrchestratorState.SUBMITTING
        method = self._active

        try:
            session = await self._finalizer.exchange(self.userid, self.ticket, factor)
        except ChallengeRejected as e:
            logger.warning(f"[TFA] {method.tag} factor rejected for {self.userid}")
            self._fail_submission(e)
        except Exception as e:
            logger.error(f"[TFA] {method.tag} exchange for {self.userid} failed: {e!r}")
            self._fail_submission(ChallengeRejected(str(e) or type(e).__name__))
        else:
            self._settle(ChallengeOutcome(OutcomeStatus.SUCCESS, session=session))
        finally:
            if not self._settled and self._state is OrchestratorState.SUBMITTING:
                # cancelled while awaiting the exchange, dismissable again
                logger.info(f"[TFA] {method.tag} exchange for {self.userid} interrupted")
                self._state = OrchestratorState.AWAITING_FACTOR
                self._cancellable = True

    def _fail_submission(self, error: ChallengeRejected) -> None:
        self.last_error = error
        self._settle(ChallengeOutcome(OutcomeStatus.FAILURE, error=error))

    def _settle(self, outcome: ChallengeOutcome) -> None:
        if self._settled:
            logger.debug(f"[TFA] Ignoring second outcome {outcome.status.value}")
            return
        self._settled = True
        self.outcome = outcome

        self._abort_ceremony()
        for handler in self._handlers.values():
            handler.disable()

        if outcome.status is OutcomeStatus.CANCELLED:
            self._state = OrchestratorState.CANCELLED
        else:
            self._state = OrchestratorState.RESOLVED

        if outcome.status is OutcomeStatus.SUCCESS:
            self._on_success(outcome.session)
        else:
            self._on_failure(outcome.error)
