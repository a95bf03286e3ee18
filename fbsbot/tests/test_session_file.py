from __future__ import annotations

import json

import pytest

from fbsbot.session_file import load_session_cookies, save_session_cookies


def test_missing_file_means_no_session(tmp_path) -> None:
    assert load_session_cookies(str(tmp_path / "session.json")) is None


def test_save_then_load_keeps_webdriver_cookie_fields(tmp_path) -> None:
    path = tmp_path / "nested" / "session.json"
    cookies = [
        {
            "name": "ASP.NET_SessionId",
            "value": "abc",
            "domain": "fbs.example.edu",
            "path": "/",
            "secure": True,
            "httpOnly": True,
            "sameSite": "Lax",
            "expiry": 1893456000,
        }
    ]

    save_session_cookies(str(path), cookies)

    assert load_session_cookies(str(path)) == cookies
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert "saved_at" in raw
    assert list(tmp_path.joinpath("nested").glob("*.tmp")) == []


def test_corrupted_file_yields_empty_session(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_session_cookies(str(path)) == []


def test_entries_without_name_or_value_are_dropped(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text(
        json.dumps({"cookies": [{"name": "a"}, "junk", {"name": "b", "value": "2", "extra": "x"}]}),
        encoding="utf-8",
    )
    assert load_session_cookies(str(path)) == [{"name": "b", "value": "2"}]


def test_undecodable_file_yields_empty_session(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    assert load_session_cookies(str(path)) == []


@pytest.mark.parametrize("stored", [None, "sid=1", {"name": "sid", "value": "1"}, 3])
def test_non_list_cookies_yield_empty_session(tmp_path, stored: object) -> None:
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"cookies": stored}), encoding="utf-8")
    assert load_session_cookies(str(path)) == []


def test_directory_in_place_of_file_yields_empty_session(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.mkdir()
    assert load_session_cookies(str(path)) == []
