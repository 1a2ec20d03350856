"""
Error taxonomy for the SolisCloud bridge.

Every failure raised by the signed request client derives from
:class:`SolisCloudError`, so a poll cycle can catch one base class at its top
level while tests and callers can still tell the failure classes apart:

- TransportError: network faults and timeouts (never retried).
- HttpStatusError: 4xx/5xx responses (never retried).
- SignatureMismatchError: the server rejected the request signature; the
  only failure class that triggers the single content-type fallback.
- RemoteApiError: a transport-level success whose envelope carries
  ``success: false``.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-102)

TODO:
- None
"""

from __future__ import annotations


class SolisCloudError(Exception):
    """Base class for all SolisCloud client failures."""


class TransportError(SolisCloudError):
    """Network-level failure (connect error, timeout, protocol error)."""


class HttpStatusError(SolisCloudError):
    """The API answered with a 4xx or 5xx status code.

    Attributes:
        status_code: HTTP status returned by the server.
        body: Response body text (truncated for readability).
    """

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body[:500]
        super().__init__(f"SolisCloud HTTP {status_code}: {self.body}")


class SignatureMismatchError(HttpStatusError):
    """The API rejected the request signature.

    Attributes:
        content_type: The Content-Type that was signed and sent.
    """

    def __init__(self, status_code: int, body: str = "", content_type: str = "") -> None:
        super().__init__(status_code, body)
        self.content_type = content_type


class RemoteApiError(SolisCloudError):
    """The response envelope carried an explicit failure flag.

    Attributes:
        code: Remote error code (string as reported by the API).
        msg: Remote error message.
    """

    def __init__(self, code: object, msg: object) -> None:
        self.code = "" if code is None else str(code)
        self.msg = "" if msg is None else str(msg)
        super().__init__(f"SolisCloud API error code={self.code} msg={self.msg}")
