"""Maps confirmed compromises to verdicts and notifications."""

import logging
from typing import Optional

from src.models.policy_session import PolicyRequest
from src.models.verdict import Verdict
from src.services.notifier import Notifier


logger = logging.getLogger(__name__)

POLICY_VERDICTS = {
    "reject": Verdict.REJECT,
    "hold": Verdict.HOLD,
    "log": Verdict.DUNNO,  # Always logged anyway
}


class ActionDispatcher:
    """Chooses the verdict for a compromised account.

    Attributes:
        mode: Configured policy mode (reject, hold or log).
        notifier: Notification sink for newly confirmed accounts.
    """

    def __init__(self, mode: str, notifier: Optional[Notifier] = None):
        self.mode = mode
        self.notifier = notifier

    def decide(self, request: Optional[PolicyRequest] = None) -> Verdict:
        """Return the verdict for the configured policy mode.

        An unrecognized mode logs a warning on every call and falls back to
        DUNNO rather than failing the request.

        Args:
            request: Request being answered, used for log context.

        Returns:
            Verdict: REJECT, HOLD or DUNNO.
        """
        verdict = POLICY_VERDICTS.get((self.mode or "").lower())
        if verdict is not None:
            return verdict

        instance = request.instance if request else None
        client_address = request.client_address if request else None
        username = request.username if request else None
        logger.warning(
            f"[{instance}] ip={client_address} username={username} "
            f"Error: unknown action {self.mode}; logging only!"
        )
        return Verdict.DUNNO

    def notify(self, request: PolicyRequest) -> None:
        """Fire the notification command for a newly compromised account."""
        if self.notifier is None:
            return
        self.notifier.submit(request.attrs)
