"""Contract tests for idempotent confirmation side effects.

Several connections confirming the same account at once must leave exactly
one set member and, within one process, fire exactly one notification.
"""

from concurrent.futures import ThreadPoolExecutor

from src.models.lookup_result import LookupStatus
from src.models.policy_session import PolicyRequest
from src.models.verdict import Verdict
from src.services.action_dispatcher import ActionDispatcher
from src.services.cache import DEFAULT_SET_NAME, DecisionCache
from src.services.policy_handler import PolicyHandler


def test_double_add_produces_single_notification(
    fake_redis, mock_resolver, mock_notifier, lookup_result
):
    """Verify add("bob") twice yields one notification."""
    handler = PolicyHandler(
        cache=DecisionCache(fake_redis),
        resolver=mock_resolver,
        dispatcher=ActionDispatcher("hold", mock_notifier),
    )
    request = PolicyRequest({"sasl_username": "bob", "client_address": "192.0.2.1"})

    handler.confirm(request, already_known=False)
    handler.confirm(request, already_known=False)

    assert fake_redis.sets[DEFAULT_SET_NAME] == {"bob"}
    assert mock_notifier.submit.call_count == 1


def test_concurrent_first_sightings(fake_redis, mock_resolver, mock_notifier, lookup_result):
    """Verify concurrent requests for one account insert once and notify once."""
    mock_resolver.lookup.side_effect = lambda identifier, zone: lookup_result(
        LookupStatus.LISTED, identifier, zone
    )
    handler = PolicyHandler(
        cache=DecisionCache(fake_redis),
        resolver=mock_resolver,
        dispatcher=ActionDispatcher("reject", mock_notifier),
    )

    def submit(_):
        return handler.evaluate(
            PolicyRequest(
                {
                    "sasl_method": "LOGIN",
                    "sasl_username": "BOB",
                    "client_address": "192.0.2.1",
                }
            )
        )

    with ThreadPoolExecutor(max_workers=8) as executor:
        verdicts = list(executor.map(submit, range(16)))

    assert verdicts == [Verdict.REJECT] * 16
    assert fake_redis.sets[DEFAULT_SET_NAME] == {"bob"}
    assert mock_notifier.submit.call_count == 1
