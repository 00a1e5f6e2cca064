"""
Unit tests for free-text form shaping in oauth2_admin.service.forms
"""

import pytest

from oauth2_admin.service.forms import (
    dedupe,
    invalid_uris,
    is_absolute_uri,
    optional_url,
    parse_redirect_uris,
    parse_scopes,
    parse_tokens,
    unknown_tokens,
)


class TestRedirectUris:
    def test_textarea_lines(self):
        value = "https://a.example/cb\n  \nhttps://b.example/cb\r\n"
        assert parse_redirect_uris(value) == ["https://a.example/cb", "https://b.example/cb"]

    def test_list_with_blank_entries(self):
        value = ["https://a.example/cb", "  ", "https://b.example/cb"]
        assert parse_redirect_uris(value) == ["https://a.example/cb", "https://b.example/cb"]

    def test_entries_are_trimmed(self):
        assert parse_redirect_uris(["  https://a.example/cb  "]) == ["https://a.example/cb"]

    def test_order_is_kept(self):
        value = "https://z.example/cb\nhttps://a.example/cb"
        assert parse_redirect_uris(value) == ["https://z.example/cb", "https://a.example/cb"]

    def test_empty(self):
        assert parse_redirect_uris("") == []
        assert parse_redirect_uris(None) == []
        assert parse_redirect_uris([]) == []


class TestScopes:
    def test_space_delimited(self):
        assert parse_scopes("openid  profile\temail") == ["openid", "profile", "email"]

    def test_duplicates_collapse_keeping_first(self):
        assert parse_scopes("profile openid profile") == ["profile", "openid"]

    def test_list_items_are_split(self):
        assert parse_scopes(["openid profile", "email"]) == ["openid", "profile", "email"]

    def test_blank(self):
        assert parse_scopes("   ") == []

    def test_tokens(self):
        assert parse_tokens("code code token") == ["code", "token"]


class TestAbsoluteUri:
    @pytest.mark.parametrize(
        "value",
        [
            "https://client.example.com/callback",
            "http://localhost:8080/cb",
            "com.example.app:/oauth2redirect",
            "https://client.example.com/cb?x=1",
        ],
    )
    def test_valid(self, value):
        assert is_absolute_uri(value)

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "/relative/path",
            "client.example.com/cb",
            "https://client.example.com/cb#frag",
            "https://exa mple.com/cb",
            "https://host:notaport/cb",
            "1https://client.example.com",
        ],
    )
    def test_invalid(self, value):
        assert not is_absolute_uri(value)

    def test_invalid_uris_reports_offenders(self):
        assert invalid_uris(["https://ok.example/cb", "nope"]) == ["nope"]


def test_dedupe_keeps_order():
    assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_unknown_tokens():
    assert unknown_tokens(["code", "magic"], ("code", "token")) == ["magic"]


def test_optional_url():
    assert optional_url(None) is None
    assert optional_url("   ") is None
    assert optional_url(" https://a.example/jwks ") == "https://a.example/jwks"
