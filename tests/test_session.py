from lensocr.session import SessionState


def test_fresh_session_has_no_cookie_and_starts_at_zero() -> None:
    s = SessionState()
    assert s.cookie is None
    assert s.sequence_id == 0


def test_next_sequence_returns_current_then_increments() -> None:
    s = SessionState()
    assert [s.next_sequence() for _ in range(3)] == [0, 1, 2]
    assert s.sequence_id == 3


def test_refresh_adopts_issued_cookie_without_attributes() -> None:
    s = SessionState()
    s.refresh({"set-cookie": "NID=511=abc; expires=Sat, 01-Jan-2033 00:00:00 GMT; path=/; HttpOnly"})
    assert s.cookie == "NID=511=abc"


def test_refresh_joins_multiple_cookies() -> None:
    s = SessionState()
    s.refresh({"Set-Cookie": ["AEC=x1; Path=/", "NID=y2; Secure"]})
    assert s.cookie == "AEC=x1; NID=y2"


def test_refresh_without_cookie_keeps_current_one() -> None:
    s = SessionState(cookie="abc")
    s.refresh({})
    s.refresh({"Content-Type": "text/html"})
    assert s.cookie == "abc"


def test_expire_forgets_cookie_but_not_sequence() -> None:
    s = SessionState(cookie="abc", sequence_id=4)
    s.expire()
    assert s.cookie is None
    assert s.sequence_id == 4
