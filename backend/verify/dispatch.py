"""
Verification Engine - Dispatcher

Decodes the custom_id of a button press or modal submission and routes it
to the step handler. This is the error boundary for the engine: every
interaction gets a reply, whatever went wrong underneath.
"""

import logging
from typing import Callable, Dict, Optional, Union

from roster import RosterStore, RosterStoreError
from sentry_integration import capture_exception
from services.membership_roster import MembershipRosterClient, RosterFetchError

from .gateway import MemberHandle, Notifier, RoleGatewayError, RoleIds
from .login import LoginFlow
from .manual import ManualFlow
from .membership import MembershipFlow
from .session import VerifySession
from .tokens import Step, Token, TokenError
from .ui import Modal, Reply

logger = logging.getLogger(__name__)


class VerifyDispatcher:
    def __init__(self, session: VerifySession, roster_client: MembershipRosterClient):
        self.session = session
        self.login = LoginFlow(session)
        self.membership = MembershipFlow(session, roster_client)
        self.manual = ManualFlow(session)

    @classmethod
    def build(
        cls,
        store: RosterStore,
        notifier: Notifier,
        roles: RoleIds,
        roster_client: MembershipRosterClient,
        login_url: Callable[[int], str],
        contact: str = "a committee member"
    ) -> "VerifyDispatcher":
        session = VerifySession(store, notifier, roles, login_url, contact)
        return cls(session, roster_client)

    async def handle_component(self, member: MemberHandle, custom_id: str) -> Union[Reply, Modal]:
        """Button press. May answer with a modal."""
        return await self._dispatch(member, custom_id, None)

    async def handle_modal(self, member: MemberHandle, custom_id: str, values: Dict[str, str]) -> Reply:
        """Modal submission with its field values keyed by field key."""
        return await self._dispatch(member, custom_id, values)

    async def _dispatch(
        self,
        member: MemberHandle,
        custom_id: str,
        values: Optional[Dict[str, str]]
    ) -> Union[Reply, Modal]:
        try:
            step_token = Token.decode(custom_id)
            if step_token.is_modal != (values is not None):
                raise TokenError(f"Token {custom_id!r} arrived through the wrong interaction kind")
            return await self._route(member, step_token, values)
        except TokenError as e:
            logger.error(f"Rejected interaction from {member.id}: {e}")
            capture_exception(e, custom_id=custom_id)
            return self.session.unknown()
        except (RosterStoreError, RosterFetchError, RoleGatewayError) as e:
            logger.warning(f"Transient failure handling {custom_id!r} for {member.id}: {e}")
            return self.session.try_again()
        except Exception as e:
            logger.exception(f"Unhandled error handling {custom_id!r} for {member.id}")
            capture_exception(e, custom_id=custom_id)
            return self.session.unknown()

    async def _route(
        self,
        member: MemberHandle,
        step_token: Token,
        values: Optional[Dict[str, str]]
    ) -> Union[Reply, Modal]:
        step = step_token.step
        fresher = step_token.fresher

        if step is Step.INFO:
            return self.session.info()
        if step is Step.START:
            return await self.session.start(member, fresh=True)
        if step is Step.RESTART:
            return await self.session.start(member, fresh=False)

        if step is Step.LOGIN_INTRO:
            return self.login.intro(member)
        if step is Step.LOGIN_CHECK:
            return await self.login.check(member)
        if step is Step.LOGIN_FRESHER:
            return self.login.fresher()
        if step is Step.LOGIN_NAME:
            return self.login.name(fresher)
        if step is Step.LOGIN_FORM:
            return self.login.form(fresher)
        if step is Step.LOGIN_SUBMIT:
            return await self.login.submit(member, fresher, values)

        if step is Step.MEMBERSHIP_INTRO:
            return self.membership.intro()
        if step is Step.MEMBERSHIP_FORM:
            return await self.membership.form(member, fresher)
        if step is Step.MEMBERSHIP_SUBMIT:
            return await self.membership.submit(member, fresher, values)

        if step is Step.MANUAL_INTRO:
            return self.manual.intro()
        if step is Step.MANUAL_FORM:
            return await self.manual.form(member, fresher)
        if step is Step.MANUAL_SUBMIT:
            return await self.manual.submit(member, fresher, values)

        if step is Step.REVIEW:
            return await self.manual.decide(step_token.decision, step_token.identity)

        raise TokenError(f"No handler for step {step.value}")
