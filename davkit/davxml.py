"""
Building WebDAV request bodies and decoding multistatus responses.

Property names are ElementTree-style qualified names (``{DAV:}getetag``).
Decoded properties are keyed by the camel-cased local name, so
``{urn:ietf:params:xml:ns:caldav}calendar-home-set`` ends up as
``calendarHomeSet``.
"""
import datetime
import logging
import xml.etree.ElementTree as etree
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from . import exceptions
from .utils import camelcase

dav_logger = logging.getLogger(__name__)

DAV = "DAV:"
CALDAV = "urn:ietf:params:xml:ns:caldav"
CARDDAV = "urn:ietf:params:xml:ns:carddav"
CALENDAR_SERVER = "http://calendarserver.org/ns/"

NAMESPACE_PREFIXES = {
    DAV: "d",
    CALDAV: "c",
    CARDDAV: "card",
    CALENDAR_SERVER: "cs",
}

for _namespace, _prefix in NAMESPACE_PREFIXES.items():
    etree.register_namespace(_prefix, _namespace)

CALDAV_DT_FORMAT = "%Y%m%dT%H%M%SZ"


def qname(namespace, name):
    return f"{{{namespace}}}{name}"


def local_name(tag):
    return tag.rsplit("}", 1)[-1]


DISPLAYNAME = qname(DAV, "displayname")
RESOURCETYPE = qname(DAV, "resourcetype")
GETETAG = qname(DAV, "getetag")
GETCTAG = qname(CALENDAR_SERVER, "getctag")
SYNC_TOKEN = qname(DAV, "sync-token")
CURRENT_USER_PRINCIPAL = qname(DAV, "current-user-principal")
SUPPORTED_REPORT_SET = qname(DAV, "supported-report-set")
CALENDAR_HOME_SET = qname(CALDAV, "calendar-home-set")
CALENDAR_DESCRIPTION = qname(CALDAV, "calendar-description")
CALENDAR_TIMEZONE = qname(CALDAV, "calendar-timezone")
CALENDAR_DATA = qname(CALDAV, "calendar-data")
SUPPORTED_CALENDAR_COMPONENT_SET = qname(CALDAV, "supported-calendar-component-set")
ADDRESSBOOK_HOME_SET = qname(CARDDAV, "addressbook-home-set")
ADDRESSBOOK_DESCRIPTION = qname(CARDDAV, "addressbook-description")
ADDRESS_DATA = qname(CARDDAV, "address-data")


@dataclass
class Filter:
    """
    Structured description of a query filter element, e.g.::

        Filter("comp-filter", {"name": "VCALENDAR"},
               children=[Filter("comp-filter", {"name": "VEVENT"})])

    The namespace is taken from the query the filter is used in.
    """

    type: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Filter"] = field(default_factory=list)
    value: Optional[str] = None


@dataclass
class Response:
    """One ``<response>`` element of a multistatus.

    ``props`` only contains properties the server returned with a successful
    propstat. A property that is missing was not returned, a property with
    an empty value was returned empty.
    """

    href: str
    status: int
    ok: bool
    props: Dict[str, Any] = field(default_factory=dict)


class InvalidXMLResponse(exceptions.InvalidResponse):
    pass


_BAD_XML_CHARS = (
    b"\x00\x01\x02\x03\x04\x05\x06\x07\x08\x0b\x0c\x0e\x0f"
    b"\x10\x11\x12\x13\x14\x15\x16\x17\x18\x19\x1a\x1b\x1c\x1d\x1e\x1f"
)


def _clean_body(content, bad_chars=_BAD_XML_CHARS):
    new_content = content.translate(None, bad_chars)
    if new_content != content:
        dav_logger.warning(
            "Your server incorrectly returned ASCII control characters in its "
            "XML. davkit ignores those, but this is a bug in your server."
        )
    return new_content


def parse_xml(content):
    try:
        return etree.XML(_clean_body(content))
    except etree.ParseError as e:
        raise InvalidXMLResponse(
            "Invalid XML encountered: {}\n"
            "Double-check the URLs in your config.".format(e)
        )


def parse_status(text):
    """``HTTP/1.1 404 Not Found`` -> ``404``"""
    parts = (text or "").strip().split()
    try:
        return int(parts[1])
    except (ValueError, IndexError):
        return None


def is_ok(status):
    return status is not None and 200 <= status < 300


def _decode_text(element):
    return element.text or ""


def _decode_names(element):
    return [local_name(child.tag) for child in element]


def _decode_components(element):
    return [
        comp.get("name") for comp in element.iter(qname(CALDAV, "comp"))
        if comp.get("name")
    ]


def _decode_reports(element):
    rv = []
    for report in element.iter(qname(DAV, "report")):
        rv.extend(local_name(child.tag) for child in report)
    return rv


def _decode_element(element):
    children = list(element)
    if not children:
        if element.attrib:
            return dict(element.attrib)
        return element.text or ""

    rv: Dict[str, Any] = {}
    for child in children:
        key = camelcase(local_name(child.tag))
        value = _decode_element(child)
        if key not in rv:
            rv[key] = value
        elif isinstance(rv[key], list):
            rv[key].append(value)
        else:
            rv[key] = [rv[key], value]
    return rv


_PROP_DECODERS = {
    RESOURCETYPE: _decode_names,
    SUPPORTED_CALENDAR_COMPONENT_SET: _decode_components,
    SUPPORTED_REPORT_SET: _decode_reports,
    CALENDAR_DATA: _decode_text,
    ADDRESS_DATA: _decode_text,
    GETETAG: _decode_text,
}


def decode_prop(element):
    decoder = _PROP_DECODERS.get(element.tag, _decode_element)
    return decoder(element)


def get_href(value):
    """Extract the href of a decoded href-valued property such as
    ``current-user-principal``. Returns ``None`` if there is none."""
    if isinstance(value, dict):
        value = value.get("href")
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str):
        return value.strip() or None
    return None


def parse_responses(root, default_status=207):
    """Decode every ``<response>`` of a multistatus into a
    :py:class:`Response`, in document order."""
    rv = []
    for response in root.iter(qname(DAV, "response")):
        href = response.find(qname(DAV, "href"))
        if href is None or not href.text:
            dav_logger.error("Skipping response, href is missing.")
            continue

        status = parse_status(response.findtext(qname(DAV, "status")))
        props = {}
        propstat_statuses = []
        for propstat in response.findall(qname(DAV, "propstat")):
            propstat_status = parse_status(propstat.findtext(qname(DAV, "status")))
            propstat_statuses.append(propstat_status)
            if propstat_status is not None and not is_ok(propstat_status):
                continue
            prop = propstat.find(qname(DAV, "prop"))
            if prop is None:
                continue
            for element in prop:
                props[camelcase(local_name(element.tag))] = decode_prop(element)

        if status is None:
            known = [s for s in propstat_statuses if s is not None]
            ok_statuses = [s for s in known if is_ok(s)]
            if ok_statuses:
                status = ok_statuses[0]
            elif known:
                status = known[0]
            else:
                status = default_status

        rv.append(
            Response(href=href.text.strip(), status=status, ok=is_ok(status), props=props)
        )
    return rv


def _prop_element(parent, props):
    prop = etree.SubElement(parent, qname(DAV, "prop"))
    for name in props:
        etree.SubElement(prop, name)
    return prop


def _filter_element(parent, filters, namespace):
    rv = etree.SubElement(parent, qname(namespace, "filter"))
    for f in filters:
        _filter_child(rv, f, namespace)
    return rv


def _filter_child(parent, f, namespace):
    element = etree.SubElement(parent, qname(namespace, f.type), f.attributes)
    if f.value is not None:
        element.text = f.value
    for child in f.children:
        _filter_child(element, child, namespace)
    return element


def to_bytes(element):
    return etree.tostring(element, encoding="utf-8", xml_declaration=True)


def propfind_body(props):
    root = etree.Element(qname(DAV, "propfind"))
    _prop_element(root, props)
    return root


def query_body(tag, props, filters=None, timezone=None):
    """Body of a ``calendar-query`` or ``addressbook-query`` REPORT. The
    filters are put into the namespace of ``tag``."""
    namespace = tag[1:].split("}", 1)[0]
    root = etree.Element(tag)
    _prop_element(root, props)
    if filters:
        _filter_element(root, filters, namespace)
    if timezone:
        etree.SubElement(root, qname(namespace, "timezone")).text = timezone
    return root


def multiget_body(tag, props, hrefs):
    root = etree.Element(tag)
    _prop_element(root, props)
    for href in hrefs:
        etree.SubElement(root, qname(DAV, "href")).text = href
    return root


def sync_collection_body(sync_token, props, sync_level=1):
    root = etree.Element(qname(DAV, "sync-collection"))
    etree.SubElement(root, qname(DAV, "sync-token")).text = sync_token or ""
    etree.SubElement(root, qname(DAV, "sync-level")).text = str(sync_level)
    _prop_element(root, props)
    return root


def mkcalendar_body(
    display_name=None, description=None, components: Sequence[str] = (), timezone=None
):
    root = etree.Element(qname(CALDAV, "mkcalendar"))
    prop = etree.SubElement(etree.SubElement(root, qname(DAV, "set")), qname(DAV, "prop"))
    if display_name is not None:
        etree.SubElement(prop, DISPLAYNAME).text = display_name
    if description is not None:
        etree.SubElement(prop, CALENDAR_DESCRIPTION).text = description
    if components:
        comp_set = etree.SubElement(prop, SUPPORTED_CALENDAR_COMPONENT_SET)
        for component in components:
            etree.SubElement(comp_set, qname(CALDAV, "comp"), {"name": component})
    if timezone is not None:
        etree.SubElement(prop, CALENDAR_TIMEZONE).text = timezone
    return root


def format_datetime(dt):
    if dt.tzinfo is not None:
        dt = dt.astimezone(datetime.timezone.utc)
    return dt.strftime(CALDAV_DT_FORMAT)


def time_range_filter(start, end, component="VEVENT"):
    """Filter for objects of ``component`` overlapping ``[start, end)``.
    Naive datetimes are taken to be UTC."""
    time_range = Filter(
        "time-range", {"start": format_datetime(start), "end": format_datetime(end)}
    )
    return Filter(
        "comp-filter",
        {"name": "VCALENDAR"},
        children=[Filter("comp-filter", {"name": component}, children=[time_range])],
    )
