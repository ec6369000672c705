"""Policy verdict returned to the mail server."""

from enum import Enum


class Verdict(Enum):
    """Action tokens understood by the Postfix policy protocol."""

    REJECT = "REJECT"
    HOLD = "HOLD"
    DUNNO = "DUNNO"  # Neutral: let the next restriction decide

    def to_response(self) -> bytes:
        """Render the verdict as a complete protocol response.

        Examples:
            >>> Verdict.DUNNO.to_response()
            b'action=DUNNO\\n\\n'
        """
        return f"action={self.value}\n\n".encode("ascii")
