"""
CalDAV shortcuts. Everything here is the generic machinery with
:py:class:`davkit.protocol.CalDAVProtocol` filled in.
"""
from . import dav
from . import davxml
from .collection import collection_multiget
from .collection import collection_query
from .collection import fetch_collection_objects
from .collection import fetch_collections
from .objects import create_object
from .objects import delete_object
from .objects import update_object
from .protocol import CalDAVProtocol
from .sync import sync_collections

CALDAV = CalDAVProtocol()


async def calendar_query(
    session, url, props, filters=None, timezone=None, depth=1, headers=None
):
    return await collection_query(
        session,
        url,
        CALDAV,
        props,
        filters=filters,
        timezone=timezone,
        depth=depth,
        headers=headers,
    )


async def calendar_multiget(session, url, props, hrefs, depth=1, headers=None):
    return await collection_multiget(
        session, url, CALDAV, props, hrefs, depth=depth, headers=headers
    )


async def make_calendar(
    session, url, display_name=None, description=None, components=("VEVENT",)
):
    return await dav.make_calendar(
        session,
        url,
        display_name=display_name,
        description=description,
        components=components,
    )


async def fetch_calendars(session, account):
    return await fetch_collections(session, account, CALDAV)


async def fetch_calendar_objects(
    session, calendar, account, filters=None, start=None, end=None
):
    """Fetch the events of ``calendar``. ``start`` and ``end`` restrict the
    result to events overlapping that time range."""
    if (start is None) != (end is None):
        raise ValueError("If start is given, end has to be given too.")
    if filters is None and start is not None:
        filters = [davxml.time_range_filter(start, end)]
    return await fetch_collection_objects(
        session, calendar, account, filters=filters, protocol=CALDAV
    )


async def create_calendar_object(session, calendar, ical, filename, headers=None):
    return await create_object(
        session,
        calendar.url,
        ical,
        filename,
        CALDAV,
        headers=headers,
    )


async def update_calendar_object(session, calendar_object, headers=None):
    return await update_object(session, calendar_object, CALDAV, headers=headers)


async def delete_calendar_object(session, calendar_object, headers=None):
    return await delete_object(session, calendar_object, headers=headers)


async def sync_calendars(session, local_calendars, account, detail_result=False):
    return await sync_collections(
        session, local_calendars, account, detail_result=detail_result, protocol=CALDAV
    )
