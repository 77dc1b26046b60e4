import logging
from inspect import getfullargspec

import aiohttp

from . import davxml
from . import exceptions
from . import http
from . import utils
from .http import USERAGENT
from .http import prepare_auth
from .http import prepare_client_cert
from .http import prepare_verify

dav_logger = logging.getLogger(__name__)


class DAVSession:
    """A helper class to connect to DAV servers.

    Unlike a plain ``aiohttp.ClientSession`` this is cheap to keep around:
    every request opens a short-lived client session on the shared
    ``connector``.
    """

    connector: aiohttp.BaseConnector

    @classmethod
    def init_and_remaining_args(cls, **kwargs):
        def is_arg(k):
            """Return true if ``k`` is an argument of ``cls.__init__``."""
            return k in argspec.args or k in argspec.kwonlyargs

        argspec = getfullargspec(cls.__init__)
        self_args, remainder = utils.split_dict(kwargs, is_arg)

        return cls(**self_args), remainder

    def __init__(
        self,
        username="",
        password="",
        verify=None,
        auth=None,
        useragent=USERAGENT,
        verify_fingerprint=None,
        auth_cert=None,
        *,
        connector: aiohttp.BaseConnector,
    ):
        self._settings = {
            "cert": prepare_client_cert(auth_cert),
        }
        auth = prepare_auth(auth, username, password)
        if auth:
            self._settings["auth"] = auth

        ssl = prepare_verify(verify, verify_fingerprint)
        if ssl:
            self._settings["ssl"] = ssl

        self.useragent = useragent
        self.connector = connector

    async def request(self, method, url, **kwargs):
        more = dict(self._settings)
        more.update(kwargs)

        async with self._session as session:
            return await http.request(method, url, session=session, **more)

    @property
    def _session(self):
        """Return a new session for requests."""

        return aiohttp.ClientSession(
            connector=self.connector,
            connector_owner=False,
        )

    def get_default_headers(self):
        return {
            "User-Agent": self.useragent,
            "Content-Type": "application/xml; charset=UTF-8",
        }


async def dav_request(session, url, method, body=None, headers=None, depth=None):
    """Issue one WebDAV request and decode the multistatus it returns.

    :param session: The :py:class:`DAVSession` to use.
    :param body: An ElementTree element, or ``None`` for no body.
    :param depth: Value of the ``Depth`` header, if any.
    :returns: A list of :py:class:`davkit.davxml.Response`, one per
        ``<response>`` element. An empty body yields an empty list.

    Failed sub-responses of a 207 are not an error, check ``ok`` on every
    record.
    """
    all_headers = session.get_default_headers()
    if depth is not None:
        all_headers["Depth"] = str(depth)
    all_headers.update(headers or {})

    kwargs = {}
    if body is not None:
        kwargs["data"] = davxml.to_bytes(body)

    response = await session.request(method, url, headers=all_headers, **kwargs)
    content = await response.read()
    if not content.strip():
        return []

    root = davxml.parse_xml(content)
    return davxml.parse_responses(root, default_status=response.status)


async def propfind(session, url, props, depth=0, headers=None):
    return await dav_request(
        session,
        url,
        "PROPFIND",
        body=davxml.propfind_body(props),
        headers=headers,
        depth=depth,
    )


async def report(session, url, body, depth=1, headers=None):
    return await dav_request(
        session, url, "REPORT", body=body, headers=headers, depth=depth
    )


async def supported_report_set(session, url, headers=None):
    """Names of the REPORTs the server supports on ``url``, e.g.
    ``("calendar-multiget", "sync-collection")``."""
    responses = await propfind(
        session, url, [davxml.SUPPORTED_REPORT_SET], depth=0, headers=headers
    )
    for response in responses:
        reports = response.props.get("supportedReportSet")
        if reports:
            return tuple(reports)
    return ()


async def sync_collection(session, url, sync_token, props, sync_level=1, headers=None):
    """Issue an RFC 6578 ``sync-collection`` REPORT.

    :returns: ``(responses, new_sync_token)``. Members that were removed
        since ``sync_token`` come back with a 404 status.
    """
    all_headers = session.get_default_headers()
    all_headers.update(headers or {})
    body = davxml.sync_collection_body(sync_token, props, sync_level=sync_level)
    response = await session.request(
        "REPORT", url, headers=all_headers, data=davxml.to_bytes(body)
    )
    root = davxml.parse_xml(await response.read())
    new_token = root.findtext(davxml.SYNC_TOKEN)
    if not new_token:
        raise exceptions.InvalidResponse(
            f"Server did not return a sync-token for {url}."
        )
    return davxml.parse_responses(root, default_status=response.status), new_token


async def make_calendar(
    session,
    url,
    display_name=None,
    description=None,
    components=(),
    timezone=None,
    headers=None,
):
    """Create a calendar at ``url`` with MKCALENDAR."""
    body = davxml.mkcalendar_body(
        display_name=display_name,
        description=description,
        components=components,
        timezone=timezone,
    )
    dav_logger.debug(f"Creating calendar at {url}")
    return await dav_request(session, url, "MKCALENDAR", body=body, headers=headers)
