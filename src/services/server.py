"""Threaded TCP server speaking the Postfix policy protocol."""

import logging
import socketserver

from src.models.policy_session import PolicySession
from src.services.policy_handler import PolicyHandler


logger = logging.getLogger(__name__)


class PolicyRequestHandler(socketserver.StreamRequestHandler):
    """Serves one connection: many sequential requests, one at a time."""

    def handle(self) -> None:
        peer = "%s:%s" % self.client_address[:2]
        logger.debug(f"client connected: {peer}")

        session = PolicySession()
        policy: PolicyHandler = self.server.policy_handler

        try:
            for raw in self.rfile:
                line = raw.decode("ascii", errors="replace").rstrip("\r\n")
                request = session.feed_line(line)
                if request is None:
                    continue

                verdict = policy.evaluate(request)
                self.wfile.write(verdict.to_response())
                self.wfile.flush()
                session.reset()
        except OSError as e:
            logger.debug(f"client {peer} error {e}")
        finally:
            if session.pending_attributes:
                logger.debug(
                    f"client {peer} dropped incomplete request "
                    f"({session.pending_attributes} attributes)"
                )
            logger.debug(f"client {peer} disconnected")


class PolicyServer(socketserver.ThreadingTCPServer):
    """One thread per connection, sharing a single PolicyHandler."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, server_address, policy_handler: PolicyHandler):
        """Bind and listen.

        Raises:
            OSError: If the address cannot be bound.
        """
        self.policy_handler = policy_handler
        super().__init__(server_address, PolicyRequestHandler)
