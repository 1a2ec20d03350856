"""
Signed HTTPS client for the SolisCloud API.

Every call is a POST whose headers carry an HMAC-SHA1 signature over the body
digest, content type, date and path (see :mod:`soliscloud.src.signing`).
SolisCloud gateways differ in whether they expect the content type with or
without a ``charset`` suffix, and a mismatch shows up only as a signature
rejection.  In ``auto`` content-type mode the client therefore retries a
signature-rejected call exactly once with the alternate content type, using a
freshly computed digest, date and signature.

Operations:
- send(path, body): POST a signed request and return the decoded envelope.
- close(): Close the owned httpx client.

CHANGELOG:
- 2026-10-19: Match signature rejections as whole words, also on the envelope code (STORY-118)
- 2026-10-05: Add content-type fallback on signature rejection (STORY-107)
- 2026-10-02: Initial creation, adapted from the batch uploader (STORY-106)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import re
from enum import StrEnum
from typing import Any

import httpx

from soliscloud.src.errors import (
    HttpStatusError,
    RemoteApiError,
    SignatureMismatchError,
    TransportError,
)
from soliscloud.src.signing import (
    CONTENT_TYPE_CHARSET,
    CONTENT_TYPE_PLAIN,
    BodySerialization,
    SignatureContext,
    sign_request,
)

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 20.0


class ContentTypeMode(StrEnum):
    """Content-type negotiation strategy.

    ``AUTO`` sends ``application/json;charset=UTF-8`` and falls back to
    ``application/json`` once on a signature rejection.  ``CHARSET`` and
    ``PLAIN`` pin one content type and never fall back.
    """

    AUTO = "auto"
    CHARSET = "charset"
    PLAIN = "plain"


def _content_types(mode: ContentTypeMode) -> tuple[str, ...]:
    if mode == ContentTypeMode.PLAIN:
        return (CONTENT_TYPE_PLAIN,)
    if mode == ContentTypeMode.CHARSET:
        return (CONTENT_TYPE_CHARSET,)
    return (CONTENT_TYPE_CHARSET, CONTENT_TYPE_PLAIN)


# "sign" or "signature" as a word of its own, optionally joined to a failure
# word ("signError", "sign_invalid"); never inside words like "assigned".
_SIGNATURE_FAILURE = re.compile(
    r"(?<![a-z])sign(?:ature)?(?:[ _-]?(?:error|invalid|mismatch|fail(?:ed|ure)?|does[ _-]?not[ _-]?match))?(?![a-z])",
    re.IGNORECASE,
)


def _is_signature_failure(*parts: object) -> bool:
    return any(_SIGNATURE_FAILURE.search(str(part)) for part in parts if part is not None)


class SolisCloudClient:
    """Signed request client for the SolisCloud platform API.

    Args:
        base_url: API base URL, e.g. ``https://www.soliscloud.com:13333``.
        api_id: API key id.
        api_secret: API key secret (HMAC key).  Never logged.
        timeout_s: Per-request timeout in seconds.
        content_type_mode: Content-type negotiation strategy.
        serialization: Body serialization strategy used for signing.
        debug_signing: Log signing inputs (never the secret) at DEBUG level.
        http_client: Optional preconfigured ``httpx.AsyncClient``.  When
            given, the caller owns it and :meth:`close` leaves it open.

    Usage::

        async with SolisCloudClient(
            base_url="https://www.soliscloud.com:13333",
            api_id="1300386381676",
            api_secret="secret",
        ) as client:
            stations = await client.send("/v1/api/userStationList", {"pageNo": 1})
    """

    def __init__(
        self,
        base_url: str,
        api_id: str,
        api_secret: str,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        content_type_mode: ContentTypeMode | str = ContentTypeMode.AUTO,
        serialization: BodySerialization | str = BodySerialization.SORTED,
        debug_signing: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_id = api_id
        self._api_secret = api_secret
        self._timeout_s = timeout_s
        self._content_type_mode = ContentTypeMode(content_type_mode)
        self._serialization = BodySerialization(serialization)
        self._debug_signing = debug_signing
        self._http = http_client
        self._own_http = http_client is None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _ensure_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout_s, verify=True)
            self._own_http = True
        return self._http

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._own_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> SolisCloudClient:
        self._ensure_http()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a signed request and return the decoded response envelope.

        Args:
            path: Endpoint path (see :data:`~soliscloud.src.endpoints.ENDPOINTS`).
            body: Request fields; ``None`` values are omitted.

        Returns:
            The decoded ``{"success", "code", "msg", "data"}`` envelope.

        Raises:
            TransportError: Network failure or timeout.
            SignatureMismatchError: Signature rejected and no fallback left.
            HttpStatusError: Any other 4xx/5xx response.
            RemoteApiError: The envelope reports ``success: false``.
        """
        content_types = _content_types(self._content_type_mode)
        for attempt, content_type in enumerate(content_types):
            try:
                return await self._send_once(path, body, content_type)
            except SignatureMismatchError as exc:
                if attempt + 1 >= len(content_types):
                    raise
                logger.warning(
                    "Signature rejected for %s with Content-Type %r, "
                    "retrying with %r",
                    path,
                    exc.content_type,
                    content_types[attempt + 1],
                )
        raise AssertionError("unreachable")  # pragma: no cover

    post = send

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _send_once(
        self,
        path: str,
        body: dict[str, Any] | None,
        content_type: str,
    ) -> dict[str, Any]:
        ctx = sign_request(
            key_id=self._api_id,
            secret=self._api_secret,
            path=path,
            body=body,
            content_type=content_type,
            serialization=self._serialization,
        )
        if self._debug_signing:
            self._log_signing(ctx)

        http = self._ensure_http()
        url = f"{self._base_url}{ctx.canonical_resource}"
        try:
            response = await http.post(
                url,
                content=ctx.body.encode("utf-8"),
                headers=ctx.headers(),
                timeout=self._timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timeout calling {ctx.canonical_resource}: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Network error calling {ctx.canonical_resource}: {exc}") from exc

        payload = self._decode(response)

        if response.status_code >= 400:
            code, msg = _envelope_code_msg(payload)
            if _is_signature_failure(code, msg, response.text if payload is None else None):
                raise SignatureMismatchError(response.status_code, response.text, content_type)
            raise HttpStatusError(response.status_code, response.text)

        if payload is None:
            raise RemoteApiError("invalid_json", f"Non-JSON response from {ctx.canonical_resource}")

        if payload.get("success") is False:
            code, msg = _envelope_code_msg(payload)
            if _is_signature_failure(code, msg):
                raise SignatureMismatchError(response.status_code, response.text, content_type)
            raise RemoteApiError(code, msg)

        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any] | None:
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        return payload if isinstance(payload, dict) else None

    def _log_signing(self, ctx: SignatureContext) -> None:
        logger.debug(
            "Signing %s: content_md5=%s content_type=%r date=%r string_to_sign=%r",
            ctx.canonical_resource,
            ctx.content_md5,
            ctx.content_type,
            ctx.date,
            ctx.string_to_sign,
        )


def _envelope_code_msg(payload: dict[str, Any] | None) -> tuple[object, object]:
    if not payload:
        return None, None
    return payload.get("code"), payload.get("msg", payload.get("message"))
