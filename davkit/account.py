"""
Turning a bare server URL into a usable account.

The steps run strictly one after another, every step consumes the URL the
previous one resolved:

1. :py:func:`service_discovery` finds the service root via well-known URIs.
2. :py:func:`fetch_principal_url` asks the root for the current principal.
3. :py:func:`fetch_home_url` asks the principal for its home collection.

:py:func:`create_account` chains them and optionally loads collections and
their objects.
"""
import asyncio
import logging
import urllib.parse as urlparse

from . import davxml
from . import exceptions
from .collection import fetch_collection_objects
from .collection import fetch_collections
from .dav import propfind
from .models import ServerAccount
from .protocol import get_protocol
from .utils import resolve_url
from .utils import url_equals

dav_logger = logging.getLogger(__name__)


async def service_discovery(session, server_url, account_type):
    """Find the service root of ``server_url`` (RFC 6764).

    Sends a GET to ``/.well-known/caldav`` (or ``carddav``) on the server's
    host without following redirects. A redirect's ``Location``, resolved
    against the server's scheme and host, is the root.

    This is best-effort and never raises: many servers don't implement
    well-known URIs, so any failure or any response that isn't a redirect
    yields ``server_url`` unchanged.
    """
    protocol = get_protocol(account_type)
    endpoint = urlparse.urlsplit(server_url)
    base = urlparse.urlunsplit((endpoint.scheme or "http", endpoint.netloc, "/", "", ""))
    uri = urlparse.urljoin(base, protocol.well_known_uri)

    dav_logger.debug(f"Service discovery at {uri}")
    try:
        response = await session.request(
            "GET",
            uri,
            headers={"User-Agent": session.useragent},
            allow_redirects=False,
        )
    except exceptions.Error as e:
        dav_logger.debug(f"Service discovery failed, using {server_url}: {e}")
        return server_url

    if 300 <= response.status < 400:
        location = response.headers.get("Location")
        if location:
            root_url = urlparse.urljoin(base, location)
            dav_logger.debug(f"Service discovery redirected to {root_url}")
            return root_url

    dav_logger.debug(
        f"No redirect from {uri} (status {response.status}), using {server_url}"
    )
    return server_url


async def fetch_principal_url(session, root_url):
    """Resolve the URL of the authenticated principal.

    Servers that don't return ``current-user-principal`` (e.g. Synology NAS)
    get ``root_url`` itself as principal.
    """
    if not root_url:
        raise exceptions.PreconditionError(
            "account must have root_url before fetch_principal_url",
            missing=["root_url"],
        )

    dav_logger.debug(f"Fetching principal url from {root_url}")
    responses = await propfind(
        session, root_url, [davxml.CURRENT_USER_PRINCIPAL], depth=0
    )
    href = None
    if responses:
        response = responses[0]
        if not response.ok:
            dav_logger.debug(
                f"Fetching principal url failed with status {response.status}, "
                "trying to use the response anyway."
            )
        href = davxml.get_href(response.props.get("currentUserPrincipal"))

    if href is None:
        dav_logger.debug(
            f"No current-user-principal returned, re-using URL {root_url}"
        )
    principal_url = resolve_url(root_url, href)
    dav_logger.debug(f"Fetched principal url {principal_url}")
    return principal_url


async def fetch_home_url(session, principal_url, root_url, account_type):
    """Resolve the home collection of the principal, under which its calendars
    or address books live.

    Returns an empty string if the server names no home set for the
    principal.
    """
    missing = [
        name
        for name, value in (("root_url", root_url), ("principal_url", principal_url))
        if not value
    ]
    if missing:
        raise exceptions.PreconditionError(
            "account must have {} before fetch_home_url".format(", ".join(missing)),
            missing=missing,
        )

    protocol = get_protocol(account_type)
    dav_logger.debug(f"Fetching home url from {principal_url}")
    responses = await propfind(session, principal_url, [protocol.homeset_prop])

    matched = next(
        (
            r
            for r in responses
            if url_equals(principal_url, resolve_url(root_url, r.href))
        ),
        None,
    )
    href = None
    if matched is not None:
        href = davxml.get_href(matched.props.get(protocol.homeset_key))

    if href is None:
        dav_logger.warning(f"Couldn't find home-set for {principal_url}.")
        return ""

    home_url = resolve_url(root_url, href)
    dav_logger.debug(f"Fetched home url {home_url}")
    return home_url


async def create_account(
    session, server_url, account_type, load_collections=True, load_objects=False
):
    """Bootstrap an account from nothing but a server URL.

    :param load_collections: Fetch the account's collections.
    :param load_objects: Also fetch every collection's objects, concurrently.
        Implies ``load_collections``.
    :returns: A :py:class:`davkit.models.Account`. Its ``collections`` are
        empty unless loading was requested.
    """
    protocol = get_protocol(account_type)
    account = ServerAccount(server_url, protocol.account_type)
    account = account.with_root_url(
        await service_discovery(session, account.server_url, protocol)
    )
    account = account.with_principal_url(
        await fetch_principal_url(session, account.root_url)
    )
    account = account.with_home_url(
        await fetch_home_url(
            session, account.principal_url, account.root_url, protocol
        )
    )

    collections = []
    # objects can't be fetched without knowing the collections
    if load_collections or load_objects:
        collections = await fetch_collections(session, account, protocol)

    if load_objects:

        async def _load(collection):
            objects = await fetch_collection_objects(
                session, collection, account, protocol=protocol
            )
            return collection.with_objects(objects)

        collections = await asyncio.gather(*map(_load, collections))

    return account.with_collections(collections)
