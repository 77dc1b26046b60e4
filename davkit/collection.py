import asyncio
import logging
from dataclasses import replace

import aiostream

from . import davxml
from .dav import propfind
from .dav import report
from .dav import supported_report_set
from .protocol import get_protocol
from .utils import require_fields
from .utils import resolve_url
from .utils import url_equals

dav_logger = logging.getLogger(__name__)


async def collection_query(
    session, url, protocol, props, filters=None, timezone=None, depth=1, headers=None
):
    """Send a ``calendar-query`` or ``addressbook-query`` REPORT."""
    protocol = get_protocol(protocol)
    body = davxml.query_body(
        protocol.query_tag, props, filters=filters, timezone=timezone
    )
    return await report(session, url, body, depth=depth, headers=headers)


async def collection_multiget(
    session, url, protocol, props, hrefs, depth=1, headers=None
):
    """Send a ``calendar-multiget`` or ``addressbook-multiget`` REPORT for
    exactly ``hrefs``."""
    protocol = get_protocol(protocol)
    body = davxml.multiget_body(protocol.multiget_tag, props, hrefs)
    return await report(session, url, body, depth=depth, headers=headers)


async def iter_collections(session, account, protocol=None):
    """Yield the collections below the account's home, in the order the
    server lists them. Supported reports are not filled in."""
    require_fields(account, ("root_url", "home_url"), "fetch_collections")
    protocol = get_protocol(protocol or account.account_type)

    responses = await propfind(
        session, account.home_url, protocol.collection_props, depth=1
    )
    for response in responses:
        if not protocol.accepts(response):
            continue
        collection = protocol.to_collection(response, account.root_url)
        dav_logger.debug(f"Found collection {collection.display_name!r}")
        yield collection


async def fetch_collections(session, account, protocol=None):
    """Fetch the calendars or address books of ``account``.

    The account needs a ``root_url`` and a ``home_url``, otherwise
    :py:exc:`davkit.exceptions.PreconditionError` is raised. The supported
    reports of all collections are fetched concurrently.
    """
    collections = await aiostream.stream.list(
        iter_collections(session, account, protocol)
    )
    reports = await asyncio.gather(
        *(supported_report_set(session, c.url) for c in collections)
    )
    return [
        replace(collection, reports=tuple(r))
        for collection, r in zip(collections, reports)
    ]


def has_inline_data(responses, protocol):
    """Whether any record of a query response already carries an object
    body. Decides whether a multiget is needed."""
    return any(protocol.has_data(r) for r in responses)


async def iter_collection_objects(
    session, collection, account, filters=None, protocol=None
):
    """Yield the objects of ``collection``.

    Phase one is a query REPORT asking for etags and object data. Many
    servers include the data right away; if any record has it, the records
    are the result. Otherwise the objects are fetched with a multiget naming
    every href of the query response, resolved and in the same order, and
    only the multiget response is used.
    """
    require_fields(account, ("root_url",), "fetch_collection_objects")
    protocol = get_protocol(protocol or account.account_type)
    if filters is None:
        filters = protocol.default_filters()

    dav_logger.debug(f"Fetching objects from {collection.url}")
    responses = await collection_query(
        session, collection.url, protocol, protocol.object_props, filters=filters
    )
    if not responses:
        return

    if not has_inline_data(responses, protocol):
        hrefs = [resolve_url(account.root_url, r.href) for r in responses]
        dav_logger.debug(
            f"Query on {collection.url} returned no data, fetching "
            f"{len(hrefs)} objects with multiget"
        )
        responses = await collection_multiget(
            session, collection.url, protocol, protocol.object_props, hrefs
        )

    for response in responses:
        yield protocol.to_object(response, account.root_url)


async def fetch_collection_objects(
    session, collection, account, filters=None, protocol=None
):
    """Fetch all objects of ``collection`` matching ``filters``. See
    :py:func:`iter_collection_objects`."""
    return await aiostream.stream.list(
        iter_collection_objects(
            session, collection, account, filters=filters, protocol=protocol
        )
    )


async def is_collection_dirty(session, collection):
    """Check the collection's ctag on the server.

    :returns: ``(dirty, new_ctag)``. A server without ctags always counts as
        dirty.
    """
    responses = await propfind(session, collection.url, [davxml.GETCTAG], depth=0)
    for response in responses:
        if url_equals(resolve_url(collection.url, response.href), collection.url):
            new_ctag = response.props.get("getctag")
            if not new_ctag:
                return True, None
            return new_ctag != collection.ctag, new_ctag
    return True, None
