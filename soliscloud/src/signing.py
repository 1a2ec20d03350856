"""
Request signing primitives for the SolisCloud API.

SolisCloud authenticates every POST with an HMAC-SHA1 signature over five
newline-joined fields::

    POST
    <Content-MD5>
    <Content-Type>
    <Date>
    <canonical resource>

The Content-MD5 and Content-Type headers must be byte-identical to the values
that were signed, and the Date header must be fresh.  A
:class:`SignatureContext` is therefore built for exactly one HTTP attempt and
never reused.

All functions here are pure apart from :func:`gmt_date`, which reads the
clock only when no ``now`` is passed in.

CHANGELOG:
- 2026-10-05: Make body serialization a selectable strategy (STORY-107)
- 2026-10-02: Initial creation (STORY-106)

TODO:
- None
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

CONTENT_TYPE_CHARSET = "application/json;charset=UTF-8"
"""Content type with an explicit charset (what the SolisCloud docs show)."""

CONTENT_TYPE_PLAIN = "application/json"
"""Content type without charset (accepted by some gateway deployments)."""

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


class BodySerialization(StrEnum):
    """How the request body is turned into the exact bytes that are signed."""

    SORTED = "sorted"
    PLAIN = "plain"


@dataclass(frozen=True, slots=True)
class SignatureContext:
    """Every derived value needed to send one signed request.

    Attributes:
        body: Serialized request body (the exact text that is hashed and sent).
        content_md5: Base64 MD5 digest of *body*.
        content_type: Content-Type header value, identical to the signed one.
        date: GMT date header value.
        canonical_resource: Request path with leading slash.
        string_to_sign: Newline-joined signature input.
        authorization: ``API <key_id>:<signature>`` header value.
    """

    body: str
    content_md5: str
    content_type: str
    date: str
    canonical_resource: str
    string_to_sign: str
    authorization: str

    def headers(self) -> dict[str, str]:
        """Return the four signing headers for the HTTP request."""
        return {
            "Content-MD5": self.content_md5,
            "Content-Type": self.content_type,
            "Date": self.date,
            "Authorization": self.authorization,
        }


def serialize_body(
    body: dict[str, Any] | None,
    strategy: BodySerialization = BodySerialization.SORTED,
) -> str:
    """Serialize a request body to compact JSON.

    ``None`` values are dropped so optional fields (e.g. an unset
    ``timeZone``) are omitted rather than sent as ``null``.

    Args:
        body: Request fields.  ``None`` is treated as an empty body.
        strategy: ``SORTED`` orders keys alphabetically, ``PLAIN`` keeps
            insertion order.
    """
    fields = {k: v for k, v in (body or {}).items() if v is not None}
    return json.dumps(
        fields,
        sort_keys=strategy == BodySerialization.SORTED,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def content_md5(body: str) -> str:
    """Return the base64-encoded MD5 digest of *body* (UTF-8)."""
    digest = hashlib.md5(body.encode("utf-8")).digest()  # noqa: S324
    return base64.b64encode(digest).decode("ascii")


def gmt_date(now: datetime | None = None) -> str:
    """Format a timestamp as ``"Mon, 1 Jan 2024 00:00:00 GMT"``.

    The day of month has no leading zero and the names are English
    regardless of the process locale.

    Args:
        now: Timestamp to format; defaults to the current time.  Naive
            datetimes are taken to be UTC.
    """
    if now is None:
        now = datetime.now(tz=UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    now = now.astimezone(UTC)
    return (
        f"{_WEEKDAYS[now.weekday()]}, {now.day} {_MONTHS[now.month - 1]} "
        f"{now.year} {now:%H:%M:%S} GMT"
    )


def canonical_resource(path: str) -> str:
    """Return *path* with exactly one leading slash."""
    return "/" + path.lstrip("/")


def string_to_sign(md5: str, content_type: str, date: str, resource: str) -> str:
    """Build the newline-joined signature input for a POST request."""
    return "\n".join(["POST", md5, content_type, date, resource])


def hmac_sha1_base64(secret: str, payload: str) -> str:
    """Return base64(HMAC-SHA1(secret, payload))."""
    mac = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha1)
    return base64.b64encode(mac.digest()).decode("ascii")


def sign_request(
    *,
    key_id: str,
    secret: str,
    path: str,
    body: dict[str, Any] | None,
    content_type: str,
    serialization: BodySerialization = BodySerialization.SORTED,
    now: datetime | None = None,
) -> SignatureContext:
    """Build a fresh :class:`SignatureContext` for one request attempt.

    Args:
        key_id: API key id (appears in the Authorization header).
        secret: API secret used as HMAC key.  Never logged.
        path: Endpoint path; a leading slash is enforced.
        body: Request fields.
        content_type: Content-Type to sign and send.
        serialization: Body serialization strategy.
        now: Timestamp override for deterministic tests.
    """
    text = serialize_body(body, serialization)
    md5 = content_md5(text)
    date = gmt_date(now)
    resource = canonical_resource(path)
    to_sign = string_to_sign(md5, content_type, date, resource)
    signature = hmac_sha1_base64(secret, to_sign)
    return SignatureContext(
        body=text,
        content_md5=md5,
        content_type=content_type,
        date=date,
        canonical_resource=resource,
        string_to_sign=to_sign,
        authorization=f"API {key_id}:{signature}",
    )
