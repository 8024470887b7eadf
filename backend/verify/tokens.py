"""
Verification Engine - Step Tokens

Every button and modal carries a token in its custom_id naming the step it
leads to. The step is the only state the engine keeps between interactions;
everything else is read back from the roster store.

Formats:
    "<step>"                          e.g. "login.check"
    "<step>:<fresher>"                e.g. "login.form:undergraduate"
    "review:<accept|deny>:<identity>" e.g. "review:accept:80351110224678912"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from roster.records import FresherStatus, parse_identity

SEPARATOR = ":"


class TokenError(ValueError):
    """Token could not be decoded"""
    pass


class Step(str, Enum):
    INFO = "info"
    START = "start"
    RESTART = "restart"

    LOGIN_INTRO = "login.intro"
    LOGIN_CHECK = "login.check"
    LOGIN_FRESHER = "login.fresher"
    LOGIN_NAME = "login.name"
    LOGIN_FORM = "login.form"
    LOGIN_SUBMIT = "login.submit"

    MEMBERSHIP_INTRO = "membership.intro"
    MEMBERSHIP_FORM = "membership.form"
    MEMBERSHIP_SUBMIT = "membership.submit"

    MANUAL_INTRO = "manual.intro"
    MANUAL_FORM = "manual.form"
    MANUAL_SUBMIT = "manual.submit"

    REVIEW = "review"


class Decision(str, Enum):
    ACCEPT = "accept"
    DENY = "deny"


# Steps whose token carries the fresher category chosen earlier
FRESHER_STEPS = frozenset({
    Step.LOGIN_NAME,
    Step.LOGIN_FORM,
    Step.LOGIN_SUBMIT,
    Step.MEMBERSHIP_FORM,
    Step.MEMBERSHIP_SUBMIT,
    Step.MANUAL_FORM,
    Step.MANUAL_SUBMIT,
})

# Steps reached by submitting a modal rather than pressing a button
MODAL_STEPS = frozenset({
    Step.LOGIN_SUBMIT,
    Step.MEMBERSHIP_SUBMIT,
    Step.MANUAL_SUBMIT,
})


@dataclass(frozen=True)
class Token:
    step: Step
    fresher: Optional[FresherStatus] = None
    decision: Optional[Decision] = None
    identity: Optional[int] = None

    def __post_init__(self):
        if (self.step in FRESHER_STEPS) != (self.fresher is not None):
            raise TokenError(f"Step {self.step.value} fresher mismatch")
        is_review = self.step is Step.REVIEW
        if is_review != (self.decision is not None and self.identity is not None):
            raise TokenError(f"Step {self.step.value} decision mismatch")

    @classmethod
    def review(cls, decision: Decision, identity: int) -> "Token":
        return cls(Step.REVIEW, decision=decision, identity=identity)

    @property
    def is_modal(self) -> bool:
        return self.step in MODAL_STEPS

    def encode(self) -> str:
        if self.step is Step.REVIEW:
            return SEPARATOR.join((self.step.value, self.decision.value, str(self.identity)))
        if self.fresher is not None:
            return SEPARATOR.join((self.step.value, self.fresher.value))
        return self.step.value

    @classmethod
    def decode(cls, raw: str) -> "Token":
        """
        Parse a custom_id.

        Raises:
            TokenError: unknown step, unknown fresher or decision value,
                non-numeric identity, or the wrong number of parts
        """
        if not raw:
            raise TokenError("Empty token")

        head, *rest = raw.split(SEPARATOR)
        try:
            step = Step(head)
        except ValueError:
            raise TokenError(f"Unknown step in token {raw!r}")

        if step is Step.REVIEW:
            if len(rest) != 2:
                raise TokenError(f"Malformed review token {raw!r}")
            decision_raw, identity_raw = rest
            try:
                decision = Decision(decision_raw)
            except ValueError:
                raise TokenError(f"Unknown decision in token {raw!r}")
            identity = parse_identity(identity_raw)
            if identity is None:
                raise TokenError(f"Invalid identity in token {raw!r}")
            return cls.review(decision, identity)

        if step in FRESHER_STEPS:
            if len(rest) != 1:
                raise TokenError(f"Malformed token {raw!r}")
            try:
                fresher = FresherStatus(rest[0])
            except ValueError:
                raise TokenError(f"Unknown fresher category in token {raw!r}")
            return cls(step, fresher=fresher)

        if rest:
            raise TokenError(f"Unexpected arguments in token {raw!r}")
        return cls(step)


def token(step: Step, fresher: Optional[FresherStatus] = None) -> str:
    """Shorthand for an encoded step token."""
    return Token(step, fresher=fresher).encode()
