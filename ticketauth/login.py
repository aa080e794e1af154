"""Login flow that composes all layers"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from .auth.finalizer import SessionFinalizer
from .auth.submitter import CredentialSubmitter
from .ceremony.base import Ceremony
from .challenge.decoder import decode
from .challenge.orchestrator import ChallengeOrchestrator
from .client.base import TicketEndpoint
from .client.ticket_client import TicketClient
from .config import ClientConfig
from .core.exceptions import AuthError, CancelledByUser
from .core.types import (
    ChallengeOutcome,
    Credentials,
    LoginResult,
    OutcomeStatus,
    SessionData,
)
from .storage.json_file import JsonFileStateStorage
from .storage.preferences import PreferenceStore

logger = logging.getLogger(__name__)

ChallengeDriver = Callable[[ChallengeOrchestrator], Awaitable[None]]


@dataclass
class LoginFlow:
    """Primary login plus optional second factor challenge"""

    endpoint: TicketEndpoint
    preferences: PreferenceStore | None = None
    ceremony: Ceremony | None = None
    product: str = "PBS"
    submitter: CredentialSubmitter = field(init=False)
    finalizer: SessionFinalizer = field(init=False)

    def __post_init__(self):
        self.submitter = CredentialSubmitter(self.endpoint, product=self.product)
        self.finalizer = SessionFinalizer(self.endpoint)

    @classmethod
    def from_config(cls, config: ClientConfig, ceremony: Ceremony | None = None) -> "LoginFlow":
        storage = JsonFileStateStorage(config.state_path)
        return cls(
            endpoint=TicketClient(config.server),
            preferences=PreferenceStore(storage),
            ceremony=ceremony,
            product=config.server.product,
        )

    async def login(self, credentials: Credentials) -> LoginResult:
        """Submit primary credentials, raises LoginFailed"""
        return await self.submitter.submit(credentials)

    def create_challenge(
        self,
        result: LoginResult,
        on_success: Callable[[SessionData], None],
        on_failure: Callable[[AuthError], None],
    ) -> ChallengeOrchestrator:
        """Decode the pending ticket and build its orchestrator, raises MalformedChallenge"""
        if result.pending_ticket is None:
            raise ValueError("login result has no pending challenge")

        challenge = decode(result.pending_ticket)
        return ChallengeOrchestrator(
            userid=result.username,
            ticket=result.pending_ticket,
            challenge=challenge,
            finalizer=self.finalizer,
            on_success=on_success,
            on_failure=on_failure,
            preferences=self.preferences,
            ceremony=self.ceremony,
        )

    async def complete_challenge(
        self, result: LoginResult, driver: ChallengeDriver
    ) -> ChallengeOutcome:
        """
        Run the challenge with `driver` feeding user actions into the
        orchestrator, and wait for its single outcome. If the driver returns
        or fails before a submission started, the challenge is dismissed.
        """
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[ChallengeOutcome] = loop.create_future()

        def resolve(value: ChallengeOutcome) -> None:
            if not outcome.done():
                outcome.set_result(value)

        def on_failure(error: AuthError) -> None:
            if isinstance(error, CancelledByUser):
                resolve(ChallengeOutcome(OutcomeStatus.CANCELLED, error=error))
            else:
                resolve(ChallengeOutcome(OutcomeStatus.FAILURE, error=error))

        orchestrator = self.create_challenge(
            result,
            on_success=lambda session: resolve(
                ChallengeOutcome(OutcomeStatus.SUCCESS, session=session)
            ),
            on_failure=on_failure,
        )
        orchestrator.open()
        try:
            await driver(orchestrator)
        finally:
            orchestrator.close()

        return await outcome

    async def run(
        self, credentials: Credentials, driver: ChallengeDriver
    ) -> ChallengeOutcome:
        """Full login, LoginFailed and MalformedChallenge come back as failures"""
        try:
            result = await self.login(credentials)
        except AuthError as e:
            return ChallengeOutcome(OutcomeStatus.FAILURE, error=e)

        if not result.needs_second_factor:
            return ChallengeOutcome(OutcomeStatus.SUCCESS, session=result.session)

        try:
            return await self.complete_challenge(result, driver)
        except AuthError as e:
            return ChallengeOutcome(OutcomeStatus.FAILURE, error=e)
