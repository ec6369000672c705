"""Decision pipeline for completed policy requests."""

import logging
import time

from src.exceptions import CacheUnavailableError
from src.models.lookup_result import LookupResult
from src.models.policy_session import PolicyRequest
from src.models.verdict import Verdict
from src.services.action_dispatcher import ActionDispatcher
from src.services.cache import DecisionCache
from src.services.dns_checker import AUTHBL_RCPT_ZONE, AUTHBL_ZONE, ReputationResolver
from src.services.logger import log_lookup_error, log_policy_decision


logger = logging.getLogger(__name__)


class PolicyHandler:
    """Decides whether the authenticated account of a request is compromised.

    One instance is shared by all connections of a worker process. It holds
    no per-request state.

    Attributes:
        cache: Shared decision cache.
        resolver: Reputation resolver.
        dispatcher: Verdict and notification dispatcher.
        ip_zone: Zone for client address lookups.
        rcpt_zone: Zone for recipient lookups.
    """

    def __init__(
        self,
        cache: DecisionCache,
        resolver: ReputationResolver,
        dispatcher: ActionDispatcher,
        ip_zone: str = AUTHBL_ZONE,
        rcpt_zone: str = AUTHBL_RCPT_ZONE,
    ):
        self.cache = cache
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.ip_zone = ip_zone
        self.rcpt_zone = rcpt_zone

    def evaluate(self, request: PolicyRequest) -> Verdict:
        """Run the decision pipeline for one completed request.

        Never raises: unexpected failures are logged and answered with DUNNO
        so the connection stays usable.

        Args:
            request: Completed policy request.

        Returns:
            Verdict: Verdict to write back to the mail server.
        """
        start = time.time()
        source = "error"
        verdict = Verdict.DUNNO
        try:
            source, verdict = self._evaluate(request)
        except Exception as e:
            logger.error(
                f"[{request.instance}] ip={request.client_address} "
                f"Unexpected error processing request: {e}",
                exc_info=True,
            )

        log_policy_decision(
            instance=request.instance,
            client_address=request.client_address,
            username=request.username,
            source=source,
            verdict=verdict.value,
            duration_ms=int((time.time() - start) * 1000),
        )
        return verdict

    def _evaluate(self, request: PolicyRequest) -> tuple[str, Verdict]:
        logger.debug(f"received attributes: {request.attrs}")

        # Only AUTHenticated sessions are of interest
        if not request.is_authenticated():
            logger.debug(
                f"[{request.instance}] ip={request.client_address} "
                "skipping as non-authenticated connection"
            )
            return "unauthenticated", Verdict.DUNNO

        username = request.normalize_username()

        if self._is_cached(request, username):
            logger.info(
                f"[{request.instance}] ip={request.client_address} "
                f"username={username} found in cache database"
            )
            return "cache", self.confirm(request, already_known=True)

        # Short-circuit on the first positive lookup
        checks = (
            ("authbl", request.client_address, self.ip_zone),
            ("authbl_rcpt", (request.recipient or "").lower(), self.rcpt_zone),
        )
        for source, identifier, zone in checks:
            if not identifier:
                continue
            result = self._lookup(identifier, zone)
            if result is not None and result.is_listed():
                return source, self.confirm(request, already_known=False)

        # Nothing found, let Postfix continue
        return "clean", Verdict.DUNNO

    def _is_cached(self, request: PolicyRequest, username: str) -> bool:
        try:
            return self.cache.is_member(username)
        except CacheUnavailableError as e:
            # Unknown cache state: fall through to the DNS checks
            logger.error(
                f"[{request.instance}] ip={request.client_address} "
                f"username={username} cache lookup failed: {e}"
            )
            return False

    def _lookup(self, identifier: str, zone: str) -> LookupResult | None:
        try:
            result = self.resolver.lookup(identifier, zone)
        except ValueError as e:
            logger.error(f"DNS lookup error: {e}")
            return None

        if result.is_error():
            log_lookup_error(result)
        return result

    def confirm(self, request: PolicyRequest, already_known: bool) -> Verdict:
        """Apply the side effects of a confirmed compromise and pick a verdict.

        The cache insert and notification happen only on first confirmation.
        The notification fires only when this process inserted the username.
        A failed insert skips it, so an outage cannot repeat the command for
        every message of the same account.

        Args:
            request: Request with a normalized username.
            already_known: True when confirmed from the cache.

        Returns:
            Verdict: Verdict chosen by the dispatcher.
        """
        if not already_known:
            username = request.username
            try:
                newly_added = self.cache.add(username)
            except CacheUnavailableError as e:
                logger.error(
                    f"[{request.instance}] ip={request.client_address} "
                    f"username={username} cache insert failed, skipping notification: {e}"
                )
                newly_added = False

            if newly_added:
                logger.info(
                    f"[{request.instance}] ip={request.client_address} "
                    f"username={username} found new compromised account!"
                )
                self.dispatcher.notify(request)

        return self.dispatcher.decide(request)
