"""Tests for URL building, header parsing and log redaction helpers."""

from __future__ import annotations

import pytest

from popuparchive.core.api.http.logging_utils import (
    REDACTED,
    redact_fields,
    redact_header_lines,
    redact_url,
)
from popuparchive.core.api.http.utils import (
    build_query,
    build_url,
    is_absolute_url,
    is_valid_status,
    merge_header_lines,
    normalize_header_name,
    parse_http_headers,
    render_header_block,
    safe_snippet,
    split_header_line,
)

DOMAIN = "www.popuparchive.com"


class TestBuildUrl:
    def test_relative_path_gets_api_prefix(self) -> None:
        url = build_url(DOMAIN, "collections/public")
        assert url == "https://www.popuparchive.com/api/collections/public"

    def test_consumer_key_appended(self) -> None:
        url = build_url(DOMAIN, "collections/public", {}, consumer_key="cid")
        assert url == "https://www.popuparchive.com/api/collections/public?consumer_key=cid"

    def test_caller_consumer_key_is_stripped(self) -> None:
        url = build_url(DOMAIN, "collections", {"consumer_key": "spoofed"})
        assert url == "https://www.popuparchive.com/api/collections"

    def test_caller_consumer_key_replaced_by_client_id(self) -> None:
        url = build_url(
            DOMAIN, "collections", {"consumer_key": "spoofed", "page": 2}, consumer_key="cid"
        )
        assert url == "https://www.popuparchive.com/api/collections?page=2&consumer_key=cid"

    def test_authorize_path_skips_api_prefix(self) -> None:
        url = build_url(DOMAIN, "oauth/authorize", {"client_id": "abc"})
        assert url == "https://www.popuparchive.com/oauth/authorize?client_id=abc"

    def test_explicit_prefix_flag_wins(self) -> None:
        assert build_url(DOMAIN, "oauth/token", use_api_prefix=False) == (
            "https://www.popuparchive.com/oauth/token"
        )
        assert build_url(DOMAIN, "oauth/authorize", use_api_prefix=True) == (
            "https://www.popuparchive.com/api/oauth/authorize"
        )

    def test_absolute_url_used_verbatim(self) -> None:
        url = build_url(DOMAIN, "http://other.test/path", {"a": "1"})
        assert url == "http://other.test/path?a=1"

    def test_leading_slash_is_not_doubled(self) -> None:
        assert build_url(DOMAIN, "/collections") == "https://www.popuparchive.com/api/collections"

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("https://x.test", True),
            ("http://x.test/a", True),
            ("ftp://x.test", False),
            ("collections", False),
        ],
    )
    def test_is_absolute_url(self, path: str, expected: bool) -> None:
        assert is_absolute_url(path) is expected


class TestBuildQuery:
    def test_form_encoding(self) -> None:
        query = build_query({"query": "chicago OR american", "redirect_uri": "https://cb/x?y=1"})
        assert query == "query=chicago+OR+american&redirect_uri=https%3A%2F%2Fcb%2Fx%3Fy%3D1"

    def test_order_is_preserved(self) -> None:
        assert build_query({"b": 1, "a": 2, "c": 3}) == "b=1&a=2&c=3"

    def test_none_values_dropped_and_bools_numeric(self) -> None:
        assert build_query({"a": None, "b": True, "c": False}) == "b=1&c=0"

    def test_brackets_are_encoded(self) -> None:
        assert build_query({"filters[collection_id]": 5}) == "filters%5Bcollection_id%5D=5"


class TestStatusValidation:
    @pytest.mark.parametrize("code", list(range(200, 210)))
    def test_20x_is_valid(self, code: int) -> None:
        assert is_valid_status(code)

    @pytest.mark.parametrize("code", [100, 199, 210, 226, 301, 302, 404, 500])
    def test_everything_else_is_invalid(self, code: int) -> None:
        assert not is_valid_status(code)

    def test_string_codes_accepted(self) -> None:
        assert is_valid_status("204")


class TestHeaderParsing:
    def test_parse_header_block(self) -> None:
        raw = "HTTP/1.1 200 OK\r\nContent-Type: application/json\r\nX-Rate-Limit:  10 \r\n\r\n"
        assert parse_http_headers(raw) == {
            "content_type": "application/json",
            "x_rate_limit": "10",
        }

    def test_lines_without_separator_ignored(self) -> None:
        assert parse_http_headers("garbage\nNoSpace:value\nOk: yes") == {"ok": "yes"}

    def test_value_may_contain_separator(self) -> None:
        assert parse_http_headers("Link: <a>; rel=\"next\": x") == {"link": '<a>; rel="next": x'}

    def test_later_duplicate_wins(self) -> None:
        assert parse_http_headers("Set-Cookie: a=1\nSet-Cookie: b=2") == {"set_cookie": "b=2"}

    def test_render_then_parse(self) -> None:
        block = render_header_block([("X-Total-Count", "5"), ("ETag", "abc")])
        assert block == "X-Total-Count: 5\r\nETag: abc\r\n"
        assert parse_http_headers(block) == {"x_total_count": "5", "etag": "abc"}

    def test_normalize_header_name(self) -> None:
        assert normalize_header_name("Content-Type") == "content_type"


class TestHeaderMerging:
    def test_caller_header_overrides_default(self) -> None:
        merged = merge_header_lines(
            ["Accept: application/json", "Authorization: Bearer t"],
            ["accept: text/plain", "X-Trace: 1"],
        )
        assert merged == ["accept: text/plain", "Authorization: Bearer t", "X-Trace: 1"]

    def test_no_extra_headers_keeps_defaults(self) -> None:
        assert merge_header_lines(["Accept: */*"], None) == ["Accept: */*"]

    def test_split_header_line(self) -> None:
        assert split_header_line("Authorization: Bearer a:b") == ("Authorization", "Bearer a:b")

    def test_malformed_header_line_rejected(self) -> None:
        with pytest.raises(ValueError, match="Malformed header line"):
            split_header_line("no separator")


class TestRedaction:
    def test_sensitive_headers_redacted(self) -> None:
        out = redact_header_lines(
            ["Authorization: Bearer secret", "Accept: application/json"], ("authorization",)
        )
        assert out == {"Authorization": REDACTED, "Accept": "application/json"}

    def test_sensitive_fields_redacted(self) -> None:
        out = redact_fields({"password": "p", "username": "u"}, ("password",))
        assert out == {"password": REDACTED, "username": "u"}

    def test_sensitive_query_params_redacted(self) -> None:
        url = redact_url("https://h.test/oauth/token?client_secret=s3cr3t&a=1", ("client_secret",))
        assert "s3cr3t" not in url
        assert url.endswith("&a=1")

    def test_url_without_query_untouched(self) -> None:
        assert redact_url("https://h.test/a", ("code",)) == "https://h.test/a"


def test_safe_snippet_truncates() -> None:
    assert safe_snippet("abcdef", 3) == "abc"
    assert safe_snippet("", 3) == ""
