import hypothesis.strategies as st
import pytest
from hypothesis import given

from davkit import exceptions
from davkit import utils
from davkit.models import HomeAccount
from davkit.models import RootedAccount

from . import path_strategy


@pytest.mark.parametrize(
    "a,b",
    [
        ("/home/", "/home"),
        ("http://example.com/home/", "http://example.com/home"),
        ("http://EXAMPLE.com/home/", "http://example.com/home/"),
        ("HTTP://example.com/home/", "http://example.com/home/"),
        ("http://example.com:80/home/", "http://example.com/home/"),
        ("https://example.com:443/dav", "https://example.com/dav/"),
        ("http://example.com", "http://example.com/"),
    ],
)
def test_url_equals(a, b):
    assert utils.url_equals(a, b)
    assert utils.url_equals(b, a)


@pytest.mark.parametrize(
    "a,b",
    [
        ("http://example.com/home/", "http://example.org/home/"),
        ("http://example.com/home/", "https://example.com/home/"),
        ("http://example.com:8080/home/", "http://example.com/home/"),
        ("http://example.com/Home/", "http://example.com/home/"),
        ("http://example.com/home/a", "http://example.com/home/b"),
    ],
)
def test_url_not_equals(a, b):
    assert not utils.url_equals(a, b)


@given(path=path_strategy, host=st.sampled_from(["example.com", "example.org"]))
def test_trailing_slash_is_ignored(path, host):
    url = f"https://{host}{path}"
    assert utils.url_equals(url, url + "/")
    assert utils.url_key(url) == utils.url_key(url + "/")


@given(path=path_strategy)
def test_different_hosts_never_equal(path):
    assert not utils.url_equals(
        "https://example.com" + path, "https://example.org" + path
    )


@pytest.mark.parametrize(
    "base,href,expected",
    [
        ("http://example.com/dav/", "/principals/bob/", "http://example.com/principals/bob/"),
        ("http://example.com/dav/", "calendars/", "http://example.com/dav/calendars/"),
        ("http://example.com/dav/", "https://other.com/x/", "https://other.com/x/"),
        ("http://example.com/dav/", None, "http://example.com/dav/"),
        ("http://example.com/dav/", "", "http://example.com/dav/"),
    ],
)
def test_resolve_url(base, href, expected):
    assert utils.resolve_url(base, href) == expected


def test_camelcase():
    assert utils.camelcase("calendar-home-set") == "calendarHomeSet"
    assert utils.camelcase("getetag") == "getetag"
    assert utils.camelcase("supported-calendar-component-set") == (
        "supportedCalendarComponentSet"
    )


def test_require_fields():
    account = RootedAccount("http://example.com/", "caldav", "")
    with pytest.raises(exceptions.PreconditionError) as excinfo:
        utils.require_fields(account, ("root_url", "home_url"), "fetch_collections")

    assert excinfo.value.missing == ["root_url", "home_url"]
    assert "root_url, home_url" in str(excinfo.value)
    assert "fetch_collections" in str(excinfo.value)

    with pytest.raises(exceptions.PreconditionError) as excinfo:
        utils.require_fields(None, ("root_url",), "fetch_collection_objects")
    assert "no account" in str(excinfo.value)

    account = HomeAccount("http://example.com/", "caldav", "http://a/", "http://b/", "http://c/")
    utils.require_fields(account, ("root_url", "home_url"), "fetch_collections")


def test_split_dict():
    a, b = utils.split_dict({"x": 1, "y": 2, "z": 3}, lambda k: k != "y")
    assert a == {"x": 1, "z": 3}
    assert b == {"y": 2}
