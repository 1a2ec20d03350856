"""
Tests for SolisCloud request signing primitives.

Tests verify:
- Content-MD5 is base64(md5(body)).
- GMT date format with unpadded day and English names.
- String to sign is the five fields newline-joined in order.
- Authorization header is ``API <id>:<base64 hmac-sha1>``.
- Body serialization strategies and dropping of None fields.
- A fresh context is produced per call.

CHANGELOG:
- 2026-10-05: Cover body serialization strategies (STORY-107)
- 2026-10-02: Initial creation (STORY-106)

TODO:
- None
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import UTC, datetime, timedelta, timezone

from soliscloud.src.signing import (
    CONTENT_TYPE_CHARSET,
    BodySerialization,
    canonical_resource,
    content_md5,
    gmt_date,
    serialize_body,
    sign_request,
    string_to_sign,
)

_FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)


class TestContentMd5:
    def test_empty_body_digest(self) -> None:
        """The MD5 of an empty body is the well-known base64 value."""
        assert content_md5("") == "1B2M2Y8AsgTpgAmY7PhCfg=="

    def test_digest_matches_hashlib(self) -> None:
        body = '{"pageNo":1,"pageSize":100}'
        expected = base64.b64encode(hashlib.md5(body.encode()).digest()).decode()
        assert content_md5(body) == expected


class TestGmtDate:
    def test_format_day_not_padded(self) -> None:
        assert gmt_date(_FIXED_NOW) == "Mon, 1 Jan 2024 00:00:00 GMT"

    def test_two_digit_day_and_time(self) -> None:
        now = datetime(2026, 10, 18, 9, 5, 7, tzinfo=UTC)
        assert gmt_date(now) == "Sun, 18 Oct 2026 09:05:07 GMT"

    def test_converts_to_utc(self) -> None:
        """Aware timestamps in other zones are converted to GMT."""
        cest = timezone(timedelta(hours=2))
        now = datetime(2024, 1, 1, 1, 30, 0, tzinfo=cest)
        assert gmt_date(now) == "Sun, 31 Dec 2023 23:30:00 GMT"

    def test_defaults_to_current_time(self) -> None:
        assert gmt_date().endswith(" GMT")


class TestStringToSign:
    def test_five_fields_newline_joined(self) -> None:
        """The canonical string is POST, digest, type, date, resource."""
        result = string_to_sign(
            "1B2M2Y8AsgTpgAmY7PhCfg==",
            "application/json;charset=UTF-8",
            "Mon, 1 Jan 2024 00:00:00 GMT",
            "/v1/api/userStationList",
        )
        assert result == (
            "POST\n"
            "1B2M2Y8AsgTpgAmY7PhCfg==\n"
            "application/json;charset=UTF-8\n"
            "Mon, 1 Jan 2024 00:00:00 GMT\n"
            "/v1/api/userStationList"
        )

    def test_canonical_resource_enforces_leading_slash(self) -> None:
        assert canonical_resource("v1/api/inverterList") == "/v1/api/inverterList"
        assert canonical_resource("/v1/api/inverterList") == "/v1/api/inverterList"
        assert canonical_resource("//v1/api/x") == "/v1/api/x"


class TestSerializeBody:
    def test_sorted_strategy_orders_keys(self) -> None:
        body = {"pageSize": 100, "pageNo": 1}
        assert serialize_body(body) == '{"pageNo":1,"pageSize":100}'

    def test_plain_strategy_keeps_insertion_order(self) -> None:
        body = {"pageSize": 100, "pageNo": 1}
        assert serialize_body(body, BodySerialization.PLAIN) == '{"pageSize":100,"pageNo":1}'

    def test_none_values_dropped(self) -> None:
        body = {"sn": "ABC", "timeZone": None}
        assert serialize_body(body) == '{"sn":"ABC"}'

    def test_none_body_is_empty_object(self) -> None:
        assert serialize_body(None) == "{}"


class TestSignRequest:
    def test_authorization_header(self) -> None:
        """Authorization carries the key id and base64 HMAC-SHA1 signature."""
        ctx = sign_request(
            key_id="1300386381676",
            secret="s3cret",
            path="v1/api/userStationList",
            body={"pageNo": 1, "pageSize": 100},
            content_type=CONTENT_TYPE_CHARSET,
            now=_FIXED_NOW,
        )

        expected_sig = base64.b64encode(
            hmac.new(b"s3cret", ctx.string_to_sign.encode(), hashlib.sha1).digest()
        ).decode()
        assert ctx.authorization == f"API 1300386381676:{expected_sig}"
        assert ctx.canonical_resource == "/v1/api/userStationList"
        assert ctx.body == '{"pageNo":1,"pageSize":100}'
        assert ctx.content_md5 == content_md5(ctx.body)
        assert ctx.string_to_sign.split("\n") == [
            "POST",
            ctx.content_md5,
            CONTENT_TYPE_CHARSET,
            "Mon, 1 Jan 2024 00:00:00 GMT",
            "/v1/api/userStationList",
        ]

    def test_headers_match_signed_values(self) -> None:
        ctx = sign_request(
            key_id="id",
            secret="secret",
            path="/v1/api/inverterList",
            body={},
            content_type="application/json",
            now=_FIXED_NOW,
        )
        assert ctx.headers() == {
            "Content-MD5": ctx.content_md5,
            "Content-Type": "application/json",
            "Date": "Mon, 1 Jan 2024 00:00:00 GMT",
            "Authorization": ctx.authorization,
        }

    def test_secret_not_in_context(self) -> None:
        """The secret never appears in any derived value."""
        ctx = sign_request(
            key_id="id",
            secret="very-secret-value",
            path="/v1/api/inverterList",
            body={"sn": "X"},
            content_type=CONTENT_TYPE_CHARSET,
            now=_FIXED_NOW,
        )
        for value in ctx.headers().values():
            assert "very-secret-value" not in value
        assert "very-secret-value" not in ctx.string_to_sign

    def test_different_dates_give_different_signatures(self) -> None:
        """A new timestamp invalidates the previous signature."""
        kwargs = {
            "key_id": "id",
            "secret": "secret",
            "path": "/v1/api/inverterList",
            "body": {},
            "content_type": CONTENT_TYPE_CHARSET,
        }
        first = sign_request(**kwargs, now=_FIXED_NOW)
        second = sign_request(**kwargs, now=_FIXED_NOW + timedelta(seconds=1))
        assert first.authorization != second.authorization
