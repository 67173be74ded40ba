"""Unit tests for placeholder substitution."""

from __future__ import annotations

from loadfeed.models import Record
from loadfeed.templating import substitute, substitute_headers


def test_substitute_single_placeholder() -> None:
    r = Record({"PostId": "42"})
    assert substitute("https://api.example.com/posts/{PostId}", r) == "https://api.example.com/posts/42"


def test_substitute_multiple_placeholders() -> None:
    r = Record({"UserId": "5", "TenantId": "acme"})
    assert (
        substitute("https://api.example.com/{TenantId}/users/{UserId}", r)
        == "https://api.example.com/acme/users/5"
    )


def test_substitute_case_insensitive() -> None:
    r = Record({"postid": "99"})
    assert substitute("/posts/{PostId}/{POSTID}", r) == "/posts/99/99"


def test_substitute_repeated_token_all_replaced() -> None:
    r = Record({"Id": "3"})
    assert substitute("{Id}-{Id}-{id}", r) == "3-3-3"


def test_substitute_unknown_token_left_verbatim() -> None:
    r = Record({"Title": "Hello"})
    assert substitute("/posts/{PostId}?t={Title}", r) == "/posts/{PostId}?t=Hello"


def test_substitute_no_tokens_returns_input() -> None:
    r = Record({"PostId": "42"})
    text = "https://api.example.com/posts/1"
    assert substitute(text, r) is text
    assert substitute("", r) == ""


def test_substitute_empty_record_returns_original() -> None:
    assert substitute("/posts/{PostId}", Record()) == "/posts/{PostId}"


def test_substitute_json_body() -> None:
    r = Record({"UserId": "7", "Title": "Test Post"})
    body = '{"userId": "{UserId}", "title": "{Title}"}'
    assert substitute(body, r) == '{"userId": "7", "title": "Test Post"}'


def test_substitute_is_single_pass() -> None:
    """A value containing another token is inserted literally, never re-scanned."""
    r = Record({"A": "{B}", "B": "b"})
    assert substitute("{A}/{B}", r) == "{B}/b"


def test_substitute_empty_braces_and_json_object_untouched() -> None:
    r = Record({"x": "1"})
    assert substitute("{} {{x}}", r) == "{} {1}"
    assert substitute('{"a": 1}', r) == '{"a": 1}'


def test_substitute_empty_value() -> None:
    r = Record({"Email": ""})
    assert substitute("mail={Email}", r) == "mail="


def test_substitute_headers_values_only() -> None:
    r = Record({"Token": "abc", "Name": "X-Other"})
    out = substitute_headers({"Authorization": "Bearer {Token}", "{Name}": "v"}, r)
    assert out == {"Authorization": "Bearer abc", "{Name}": "v"}
