"""Tests for atelier_client.auth.session_cache."""

from __future__ import annotations

from atelier_client.auth.session_cache import (
    SessionCache,
    cookie_header,
    cookie_name,
    merge_cookies,
)
from atelier_client.models import ConnectionIdentity
from atelier_client.state import MemoryStateStore


IDENTITY = ConnectionIdentity(host="iris.local", port=52773)


class TestCookieName:
    def test_with_attributes(self) -> None:
        assert cookie_name("CSPSESSIONID=abc; path=/; httpOnly") == "CSPSESSIONID"

    def test_bare_name(self) -> None:
        assert cookie_name("flag") == "flag"


class TestMergeCookies:
    def test_replace_in_place(self) -> None:
        assert merge_cookies(["a=1", "b=2"], ["a=3"]) == ["a=3", "b=2"]

    def test_append_new_names(self) -> None:
        assert merge_cookies(["a=1"], ["c=1", "b=1"]) == ["a=1", "c=1", "b=1"]

    def test_names_matched_exactly(self) -> None:
        merged = merge_cookies(["CSPSESSIONID=1", "CSPWSERVERID=2"], ["CSP=3"])
        assert merged == ["CSPSESSIONID=1", "CSPWSERVERID=2", "CSP=3"]

    def test_repeated_name_in_update(self) -> None:
        assert merge_cookies([], ["a=1", "a=2"]) == ["a=2"]

    def test_inputs_not_modified(self) -> None:
        existing = ["a=1"]
        merge_cookies(existing, ["a=2"])
        assert existing == ["a=1"]


class TestCookieHeader:
    def test_attributes_dropped(self) -> None:
        cookies = ["CSPSESSIONID=abc; path=/; httpOnly", "CSPWSERVERID=xyz; path=/"]
        assert cookie_header(cookies) == "CSPSESSIONID=abc; CSPWSERVERID=xyz"

    def test_blank_entries_skipped(self) -> None:
        assert cookie_header(["a=1", " ", ""]) == "a=1"


class TestSessionCache:
    def test_empty_by_default(self) -> None:
        assert SessionCache(IDENTITY, MemoryStateStore()).get_cookies() == []

    def test_key_layout(self) -> None:
        store = MemoryStateStore()
        SessionCache(IDENTITY, store).set_cookies(["a=1"])
        assert store.get("API:iris.local:52773:cookies") == ["a=1"]

    def test_update_persists_and_returns(self) -> None:
        store = MemoryStateStore()
        cache = SessionCache(IDENTITY, store)
        cache.set_cookies(["a=1", "b=2"])
        assert cache.update_cookies(["a=3"]) == ["a=3", "b=2"]
        assert SessionCache(IDENTITY, store).get_cookies() == ["a=3", "b=2"]

    def test_sessions_are_per_identity(self) -> None:
        store = MemoryStateStore()
        SessionCache(IDENTITY, store).set_cookies(["a=1"])
        other = SessionCache(ConnectionIdentity(host="iris.local", port=1972), store)
        assert other.get_cookies() == []

    def test_clear(self) -> None:
        cache = SessionCache(IDENTITY, MemoryStateStore())
        cache.set_cookies(["a=1"])
        cache.clear()
        assert cache.get_cookies() == []

    def test_returned_list_is_a_copy(self) -> None:
        cache = SessionCache(IDENTITY, MemoryStateStore())
        cache.set_cookies(["a=1"])
        cache.get_cookies().append("b=2")
        assert cache.get_cookies() == ["a=1"]
