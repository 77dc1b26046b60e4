import pytest
from aioresponses import aioresponses
from yarl import URL

from davkit import davxml
from davkit import exceptions
from davkit.addressbook import fetch_address_books
from davkit.addressbook import fetch_vcards
from davkit.calendar import fetch_calendar_objects
from davkit.calendar import fetch_calendars
from davkit.collection import fetch_collection_objects
from davkit.collection import is_collection_dirty
from davkit.models import Collection
from davkit.models import HomeAccount
from davkit.models import RootedAccount

from . import EVENT_TEMPLATE
from . import VCARD_TEMPLATE
from . import calendar_response
from . import multistatus
from . import object_response
from . import propstat
from . import response

ROOT = "https://dav.example.com/"
HOME = "https://dav.example.com/calendars/bob/"
ACCOUNT = HomeAccount(ROOT, "caldav", ROOT, ROOT + "principals/bob/", HOME)
CALENDAR = Collection(url=HOME + "work/", display_name="Work")


def _reports(*names):
    reports = "".join(
        f"<supported-report><report><{name}/></report></supported-report>"
        for name in names
    )
    return propstat(f"<supported-report-set>{reports}</supported-report-set>")


@pytest.mark.asyncio
async def test_fetch_calendars(session):
    home_body = multistatus(
        response(
            "/calendars/bob/",
            propstat("<resourcetype><collection/></resourcetype>"),
        ),
        calendar_response("/calendars/bob/work/", "Work", ctag="3", token="tok-1"),
        calendar_response("/calendars/bob/tasks/", "Tasks", components=("VTODO",)),
        calendar_response("/calendars/bob/busy/", "Busy", components=("VFREEBUSY",)),
        calendar_response("/calendars/bob/nothing/", "Nothing", components=()),
        response(
            "/calendars/bob/inbox/",
            propstat(
                "<displayname>Inbox</displayname>"
                "<resourcetype><collection/><C:schedule-inbox/></resourcetype>"
            ),
        ),
    )
    with aioresponses() as m:
        m.add(HOME, method="PROPFIND", status=207, body=home_body)
        m.add(
            HOME + "work/",
            method="PROPFIND",
            status=207,
            body=multistatus(
                response(
                    "/calendars/bob/work/",
                    _reports("C:calendar-multiget", "C:calendar-query", "sync-collection"),
                )
            ),
        )
        m.add(
            HOME + "tasks/",
            method="PROPFIND",
            status=207,
            body=multistatus(response("/calendars/bob/tasks/", _reports("C:calendar-query"))),
        )
        calendars = await fetch_calendars(session, ACCOUNT)

    assert [c.display_name for c in calendars] == ["Work", "Tasks"]
    work, tasks = calendars
    assert work.url == HOME + "work/"
    assert work.ctag == "3"
    assert work.sync_token == "tok-1"
    assert work.components == ("VEVENT",)
    assert work.reports == ("calendar-multiget", "calendar-query", "sync-collection")
    assert "calendar" in work.resource_types
    assert tasks.components == ("VTODO",)
    assert tasks.reports == ("calendar-query",)
    assert tasks.ctag is None

    (call,) = m.requests[("PROPFIND", URL(HOME))]
    assert call.kwargs["headers"]["Depth"] == "1"


@pytest.mark.asyncio
async def test_fetch_address_books(session):
    home = "https://dav.example.com/addressbooks/bob/"
    account = HomeAccount(ROOT, "carddav", ROOT, ROOT + "principals/bob/", home)
    body = multistatus(
        response(
            "/addressbooks/bob/contacts/",
            propstat(
                "<displayname>Contacts</displayname>"
                "<resourcetype><collection/><CR:addressbook/></resourcetype>"
                "<CR:addressbook-description>Mine</CR:addressbook-description>"
            ),
        ),
        calendar_response("/addressbooks/bob/cal/", "Not an address book"),
    )
    with aioresponses() as m:
        m.add(home, method="PROPFIND", status=207, body=body)
        m.add(home + "contacts/", method="PROPFIND", status=207, body=multistatus())
        (address_book,) = await fetch_address_books(session, account)

    assert address_book.url == home + "contacts/"
    assert address_book.display_name == "Contacts"
    assert address_book.description == "Mine"
    assert address_book.components == ()
    assert address_book.reports == ()


@pytest.mark.asyncio
async def test_fetch_collections_without_home(session):
    account = RootedAccount(ROOT, "caldav", ROOT)
    with aioresponses() as m:
        with pytest.raises(exceptions.PreconditionError) as excinfo:
            await fetch_calendars(session, account)

    assert excinfo.value.missing == ["home_url"]
    assert not m.requests


@pytest.mark.asyncio
async def test_objects_inline_data_skips_multiget(session):
    event = EVENT_TEMPLATE.format(uid="a")
    body = multistatus(
        object_response("/calendars/bob/work/a.ics", '"1"', data=event),
        object_response("/calendars/bob/work/b.ics", '"2"'),
    )
    with aioresponses() as m:
        m.add(CALENDAR.url, method="REPORT", status=207, body=body)
        objects = await fetch_calendar_objects(session, CALENDAR, ACCOUNT)

    assert [(o.url, o.etag, o.data) for o in objects] == [
        (HOME + "work/a.ics", '"1"', event),
        (HOME + "work/b.ics", '"2"', None),
    ]
    assert len(m.requests[("REPORT", URL(CALENDAR.url))]) == 1


@pytest.mark.asyncio
async def test_objects_multiget(session):
    event_a = EVENT_TEMPLATE.format(uid="a")
    event_b = EVENT_TEMPLATE.format(uid="b")
    query_body = multistatus(
        object_response("/calendars/bob/work/b.ics", '"2"'),
        object_response("https://dav.example.com/calendars/bob/work/a.ics", '"1"'),
    )
    multiget_body = multistatus(
        object_response("/calendars/bob/work/b.ics", '"2"', data=event_b),
        object_response("/calendars/bob/work/a.ics", '"1"', data=event_a),
    )
    with aioresponses() as m:
        m.add(CALENDAR.url, method="REPORT", status=207, body=query_body)
        m.add(CALENDAR.url, method="REPORT", status=207, body=multiget_body)
        objects = await fetch_calendar_objects(session, CALENDAR, ACCOUNT)

    assert [(o.url, o.data) for o in objects] == [
        (HOME + "work/b.ics", event_b),
        (HOME + "work/a.ics", event_a),
    ]

    query, multiget = m.requests[("REPORT", URL(CALENDAR.url))]
    assert b"calendar-query" in query.kwargs["data"]
    assert query.kwargs["headers"]["Depth"] == "1"

    root = davxml.parse_xml(multiget.kwargs["data"])
    assert root.tag == davxml.qname(davxml.CALDAV, "calendar-multiget")
    assert [e.text for e in root.findall(davxml.qname(davxml.DAV, "href"))] == [
        HOME + "work/b.ics",
        HOME + "work/a.ics",
    ]


@pytest.mark.asyncio
async def test_objects_empty_collection(session):
    with aioresponses() as m:
        m.add(CALENDAR.url, method="REPORT", status=207, body=multistatus())
        assert await fetch_calendar_objects(session, CALENDAR, ACCOUNT) == []

    assert len(m.requests[("REPORT", URL(CALENDAR.url))]) == 1


@pytest.mark.asyncio
async def test_objects_require_root(session):
    with aioresponses() as m:
        with pytest.raises(exceptions.PreconditionError):
            await fetch_collection_objects(session, CALENDAR, None)
    assert not m.requests


@pytest.mark.asyncio
async def test_objects_time_range(session):
    import datetime

    start = datetime.datetime(2020, 1, 1, tzinfo=datetime.timezone.utc)
    end = datetime.datetime(2020, 2, 1, tzinfo=datetime.timezone.utc)
    with aioresponses() as m:
        m.add(CALENDAR.url, method="REPORT", status=207, body=multistatus())
        await fetch_calendar_objects(session, CALENDAR, ACCOUNT, start=start, end=end)

    (call,) = m.requests[("REPORT", URL(CALENDAR.url))]
    time_range = davxml.parse_xml(call.kwargs["data"]).find(
        ".//" + davxml.qname(davxml.CALDAV, "time-range")
    )
    assert time_range.attrib == {"start": "20200101T000000Z", "end": "20200201T000000Z"}

    with pytest.raises(ValueError):
        await fetch_calendar_objects(session, CALENDAR, ACCOUNT, start=start)


@pytest.mark.asyncio
async def test_fetch_vcards(session):
    home = "https://dav.example.com/addressbooks/bob/"
    account = HomeAccount(ROOT, "carddav", ROOT, ROOT + "principals/bob/", home)
    address_book = Collection(url=home + "contacts/")
    vcard = VCARD_TEMPLATE.format(uid="x")
    body = multistatus(
        object_response(
            "/addressbooks/bob/contacts/x.vcf",
            '"9"',
            data=vcard,
            data_tag="CR:address-data",
        )
    )
    with aioresponses() as m:
        m.add(address_book.url, method="REPORT", status=207, body=body)
        (obj,) = await fetch_vcards(session, address_book, account)

    assert obj.url == home + "contacts/x.vcf"
    assert obj.data == vcard

    (call,) = m.requests[("REPORT", URL(address_book.url))]
    root = davxml.parse_xml(call.kwargs["data"])
    assert root.tag == davxml.qname(davxml.CARDDAV, "addressbook-query")


@pytest.mark.parametrize(
    "ctag,expected",
    [("1", (False, "1")), ("0", (True, "1")), (None, (True, "1"))],
)
@pytest.mark.asyncio
async def test_is_collection_dirty(session, ctag, expected):
    calendar = Collection(url=HOME + "work/", ctag=ctag)
    with aioresponses() as m:
        m.add(
            calendar.url,
            method="PROPFIND",
            status=207,
            body=multistatus(
                response("/calendars/bob/work", propstat("<CS:getctag>1</CS:getctag>"))
            ),
        )
        assert await is_collection_dirty(session, calendar) == expected
