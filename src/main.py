"""Main entry point for the compromised account policy daemon."""

import logging
import signal
import sys

from src.config import Config
from src.exceptions import ApiKeyError, CacheUnavailableError, StartupError
from src.services.action_dispatcher import ActionDispatcher
from src.services.cache import DecisionCache
from src.services.dns_checker import ReputationResolver
from src.services.logger import setup_logging
from src.services.notifier import Notifier
from src.services.policy_handler import PolicyHandler
from src.services.server import PolicyServer
from src.services.supervisor import (
    EXIT_FATAL,
    EXIT_OK,
    EXIT_STARTUP_FAILURE,
    Supervisor,
)


logger = logging.getLogger(__name__)


def build_resolver(config: Config) -> ReputationResolver:
    return ReputationResolver(
        api_key=config.api_key,
        timeout=config.dns_timeout,
        nameservers=config.dns_nameservers or None,
        zone=config.authbl_zone,
    )


def build_policy_handler(
    config: Config, cache: DecisionCache, notifier: Notifier
) -> PolicyHandler:
    """Wire the decision pipeline for one worker process.

    Args:
        config: Application configuration.
        cache: Connected decision cache.
        notifier: Notification command runner.

    Returns:
        PolicyHandler: Handler shared by all connections of the worker.
    """
    return PolicyHandler(
        cache=cache,
        resolver=build_resolver(config),
        dispatcher=ActionDispatcher(config.action, notifier),
        ip_zone=config.authbl_zone,
        rcpt_zone=config.authbl_rcpt_zone,
    )


def start_worker(config: Config) -> tuple[PolicyServer, Notifier]:
    """Connect the cache and bind the listening socket.

    Raises:
        StartupError: If Redis does not answer or the address cannot be bound.
    """
    cache = DecisionCache.from_config(config)
    try:
        cache.ping()
    except CacheUnavailableError as e:
        raise StartupError(str(e)) from e
    logger.debug("redis client connected")

    notifier = Notifier(config.notify_command, timeout=config.notify_timeout)
    handler = build_policy_handler(config, cache, notifier)

    try:
        server = PolicyServer((config.listen_host, config.listen_port), handler)
    except OSError as e:
        notifier.shutdown()
        raise StartupError(f"server error: {e}") from e

    logger.debug(f"opened server: {server.server_address}")
    return server, notifier


def run_worker(config: Config, worker_id: str) -> int:
    """Serve policy requests until terminated.

    Returns:
        int: EXIT_STARTUP_FAILURE if the worker never started listening,
        EXIT_FATAL on a crash after startup.
    """
    setup_logging(config.verbose, worker_id=worker_id)
    # The supervisor owns shutdown; SIGTERM ends the worker immediately
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, signal.SIG_DFL)

    try:
        server, notifier = start_worker(config)
    except StartupError as e:
        logger.error(f"Startup failed: {e}")
        return EXIT_STARTUP_FAILURE

    try:
        server.serve_forever()
    except Exception as e:
        logger.error(f"worker caught error: {e}", exc_info=True)
        return EXIT_FATAL
    finally:
        server.server_close()
        notifier.shutdown()
    return EXIT_OK


def worker_main(config: Config, worker_id: str) -> None:
    """Process target wrapping run_worker with its exit code."""
    sys.exit(run_worker(config, worker_id))


def main() -> int:
    """Main execution function.

    Returns:
        int: Exit code (0 after shutdown, 1 for configuration or API key
        errors, 2 if no worker could start).
    """
    setup_logging()

    try:
        config = Config.from_env()
    except ValueError as e:
        logger.error(f"Unable to load configuration: {e}")
        return EXIT_FATAL

    setup_logging(config.verbose)
    logger.info(
        f"started (Python {sys.version.split()[0]} on {sys.platform}), "
        f"{config.workers} workers, action={config.action}"
    )
    if not config.is_known_action():
        logger.warning(f"unknown action {config.action}; requests will only be logged")

    if config.verify_api_key:
        try:
            build_resolver(config).verify_api_key()
        except ApiKeyError as e:
            logger.error(f"Error: {e}")
            return EXIT_FATAL

    supervisor = Supervisor(config, worker_main)

    def shutdown(signum, frame):
        logger.info(f"received signal {signum}, stopping workers")
        supervisor.stop()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    exit_code = supervisor.run()
    if exit_code == EXIT_STARTUP_FAILURE:
        logger.error("no worker was able to start, exiting")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
