import asyncio

import aiohttp
import pytest
from aioresponses import CallbackResult
from aioresponses import aioresponses

from davkit import exceptions
from davkit.http import BasicAuthMethod
from davkit.http import DigestAuthMethod
from davkit.http import USERAGENT
from davkit.http import prepare_auth
from davkit.http import prepare_verify
from davkit.http import request


def test_prepare_auth():
    assert prepare_auth(None, "", "") is None

    assert prepare_auth(None, "user", "pwd") == BasicAuthMethod("user", "pwd")
    assert prepare_auth("basic", "user", "pwd") == BasicAuthMethod("user", "pwd")

    with pytest.raises(exceptions.UserError) as excinfo:
        assert prepare_auth("basic", "", "pwd")
    assert "you need to specify username and password" in str(excinfo.value).lower()

    assert isinstance(prepare_auth("digest", "user", "pwd"), DigestAuthMethod)

    with pytest.raises(exceptions.UserError) as excinfo:
        prepare_auth("ladida", "user", "pwd")

    assert "unknown authentication method" in str(excinfo.value).lower()


def test_prepare_verify():
    assert prepare_verify(None, None) is None
    fingerprint = ":".join(["94"] * 32)
    assert isinstance(prepare_verify(None, fingerprint), aiohttp.Fingerprint)

    with pytest.raises(exceptions.UserError):
        prepare_verify(False, None)

    with pytest.raises(exceptions.UserError):
        prepare_verify(None, 1234)


def test_basic_auth_header():
    assert BasicAuthMethod("user", "pwd").get_auth_header("GET", "/") == (
        "Basic dXNlcjpwd2Q="
    )


@pytest.mark.asyncio
async def test_auth_header_is_sent(aio_connector):
    url = "http://example.com/"

    def callback(url, headers, **kwargs):
        assert headers["Authorization"] == "Basic dXNlcjpwd2Q="
        return CallbackResult(status=200, body="ok")

    with aioresponses() as m:
        m.get(url, callback=callback)
        async with aiohttp.ClientSession(
            connector=aio_connector, connector_owner=False
        ) as session:
            response = await request(
                "GET", url, session, auth=BasicAuthMethod("user", "pwd")
            )

    assert response.status == 200
    assert await response.text() == "ok"


@pytest.mark.parametrize(
    "status,exc",
    [
        (412, exceptions.PreconditionFailed),
        (404, exceptions.NotFoundError),
        (410, exceptions.NotFoundError),
        (403, exceptions.TransportError),
        (500, exceptions.TransportError),
    ],
)
@pytest.mark.asyncio
async def test_status_mapping(aio_connector, status, exc):
    url = "http://example.com/cal/a.ics"
    with aioresponses() as m:
        m.put(url, status=status)
        async with aiohttp.ClientSession(
            connector=aio_connector, connector_owner=False
        ) as session:
            with pytest.raises(exc) as excinfo:
                await request("PUT", url, session, data=b"x")

    assert excinfo.value.status == status
    assert excinfo.value.url == url


@pytest.mark.asyncio
async def test_redirect_is_returned(aio_connector):
    url = "http://example.com/.well-known/caldav"
    with aioresponses() as m:
        m.get(url, status=301, headers={"Location": "/dav/"})
        async with aiohttp.ClientSession(
            connector=aio_connector, connector_owner=False
        ) as session:
            response = await request("GET", url, session, allow_redirects=False)

    assert response.status == 301
    assert response.headers["Location"] == "/dav/"


@pytest.mark.asyncio
async def test_connection_error(aio_connector):
    url = "http://example.com/"
    with aioresponses() as m:
        m.get(url, exception=aiohttp.ClientConnectionError("refused"))
        async with aiohttp.ClientSession(
            connector=aio_connector, connector_owner=False
        ) as session:
            with pytest.raises(exceptions.TransportError) as excinfo:
                await request("GET", url, session)

    assert excinfo.value.status is None
    assert "refused" in str(excinfo.value)


@pytest.mark.asyncio
async def test_session_sends_useragent(session):
    url = "http://example.com/"

    def callback(url, headers, **kwargs):
        assert headers["User-Agent"] == USERAGENT
        assert USERAGENT.startswith("davkit/")
        return CallbackResult(status=207, body="")

    with aioresponses() as m:
        m.add(url, method="PROPFIND", callback=callback)
        response = await session.request(
            "PROPFIND", url, headers=session.get_default_headers()
        )

    assert response.status == 207


@pytest.mark.asyncio
async def test_timeout(aio_connector):
    url = "http://example.com/"
    with aioresponses() as m:
        m.add(url, method="PROPFIND", exception=asyncio.TimeoutError())
        async with aiohttp.ClientSession(
            connector=aio_connector, connector_owner=False
        ) as session:
            with pytest.raises(exceptions.TransportError) as excinfo:
                await request("PROPFIND", url, session)

    assert excinfo.value.status is None
    assert excinfo.value.url == url
