"""Role-gated routing decisions shared by every protected endpoint."""

from dataclasses import dataclass
from typing import Iterable

from schoolportal.auth.context import AuthSnapshot
from schoolportal.core.choices import AppRole

SIGN_IN_PATH = '/auth'
STATUS_PATH = '/pending'

ROLE_HOME_PATHS = {
    AppRole.LEARNER.value: '/student',
    AppRole.TEACHER.value: '/teacher',
    AppRole.GRADE_HEAD.value: '/grade-head',
    AppRole.PRINCIPAL.value: '/principal',
    AppRole.ADMIN.value: '/admin',
    AppRole.SGB.value: '/sgb',
    AppRole.FINANCE.value: '/finance',
}

NOT_AUTHENTICATED = 'not_authenticated'
NOT_ACCEPTED = 'not_accepted'
WRONG_ROLE = 'wrong_role'

DECISION_MESSAGES = {
    NOT_AUTHENTICATED: 'Please sign in to continue.',
    NOT_ACCEPTED: 'Your application has not been accepted yet.',
    WRONG_ROLE: 'This page is not available for your role.',
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_to: str | None = None
    reason: str | None = None

    @property
    def message(self) -> str | None:
        return DECISION_MESSAGES.get(self.reason)


def home_path_for(role: str | None) -> str:
    return ROLE_HOME_PATHS.get(role, STATUS_PATH)


def landing_path(snapshot: AuthSnapshot) -> str:
    if not snapshot.is_authenticated:
        return SIGN_IN_PATH
    if not snapshot.is_accepted:
        return STATUS_PATH
    return home_path_for(snapshot.primary_role)


def evaluate_access(snapshot: AuthSnapshot, required_roles: Iterable[str] = ()) -> AccessDecision:
    """Check, in order: signed in, accepted, holding one of the required roles.

    An empty ``required_roles`` admits any accepted user.
    """
    if not snapshot.is_authenticated:
        return AccessDecision(allowed=False, redirect_to=SIGN_IN_PATH, reason=NOT_AUTHENTICATED)

    if not snapshot.is_accepted:
        return AccessDecision(allowed=False, redirect_to=STATUS_PATH, reason=NOT_ACCEPTED)

    required = {getattr(role, 'value', role) for role in required_roles}
    if required and snapshot.primary_role not in required:
        return AccessDecision(allowed=False, redirect_to=home_path_for(snapshot.primary_role), reason=WRONG_ROLE)

    return AccessDecision(allowed=True)
