"""
What differs between CalDAV and CardDAV.

The discovery chain and the fetch/sync algorithms are shared. A
:py:class:`Protocol` supplies the property names, resource types, filters
and content types they need.
"""
import logging
from abc import abstractmethod
from dataclasses import replace
from typing import Tuple

from . import davxml
from . import exceptions
from .davxml import Filter
from .models import Collection
from .models import CollectionObject
from .utils import camelcase
from .utils import resolve_url

dav_logger = logging.getLogger(__name__)


class Protocol:
    @property
    @abstractmethod
    def account_type(self) -> str:
        pass

    @property
    @abstractmethod
    def resourcetype(self) -> str:
        """Local name of the resource type that marks a collection."""

    @property
    @abstractmethod
    def homeset_prop(self) -> str:
        pass

    @property
    @abstractmethod
    def data_prop(self) -> str:
        """Property holding an object's body."""

    @property
    @abstractmethod
    def query_tag(self) -> str:
        pass

    @property
    @abstractmethod
    def multiget_tag(self) -> str:
        pass

    @property
    @abstractmethod
    def content_type(self) -> str:
        pass

    @property
    @abstractmethod
    def collection_props(self) -> Tuple[str, ...]:
        """Properties requested when listing the home collection."""

    @property
    def well_known_uri(self):
        return f"/.well-known/{self.account_type}"

    @property
    def homeset_key(self):
        return camelcase(davxml.local_name(self.homeset_prop))

    @property
    def data_key(self):
        return camelcase(davxml.local_name(self.data_prop))

    @property
    def object_props(self):
        return (davxml.GETETAG, self.data_prop)

    @abstractmethod
    def default_filters(self):
        pass

    def is_collection(self, response):
        resourcetype = response.props.get("resourcetype") or ()
        if self.resourcetype not in resourcetype:
            dav_logger.debug(
                "Skipping, not of resource type %s: %s",
                self.resourcetype,
                response.href,
            )
            return False
        return True

    def accepts(self, response):
        """Whether ``response`` describes a collection this protocol can
        work with."""
        return self.is_collection(response)

    def to_collection(self, response, root_url):
        props = response.props
        return Collection(
            url=resolve_url(root_url, response.href),
            display_name=props.get("displayname"),
            ctag=props.get("getctag"),
            sync_token=props.get("syncToken"),
            resource_types=tuple(props.get("resourcetype") or ()),
        )

    def has_data(self, response):
        return bool(response.props.get(self.data_key))

    def to_object(self, response, root_url):
        return CollectionObject(
            url=resolve_url(root_url, response.href),
            etag=response.props.get("getetag"),
            data=response.props.get(self.data_key),
        )

    def __repr__(self):
        return f"<{self.__class__.__name__}>"


class CalDAVProtocol(Protocol):
    account_type = "caldav"
    resourcetype = "calendar"
    homeset_prop = davxml.CALENDAR_HOME_SET
    data_prop = davxml.CALENDAR_DATA
    query_tag = davxml.qname(davxml.CALDAV, "calendar-query")
    multiget_tag = davxml.qname(davxml.CALDAV, "calendar-multiget")
    content_type = "text/calendar; charset=utf-8"
    collection_props = (
        davxml.CALENDAR_DESCRIPTION,
        davxml.CALENDAR_TIMEZONE,
        davxml.DISPLAYNAME,
        davxml.GETCTAG,
        davxml.RESOURCETYPE,
        davxml.SUPPORTED_CALENDAR_COMPONENT_SET,
        davxml.SYNC_TOKEN,
    )

    # Components davkit knows how to handle. Collections supporting none of
    # them (e.g. free-busy only) are skipped.
    components = frozenset(["VEVENT", "VTODO", "VJOURNAL"])

    def default_filters(self):
        return [
            Filter(
                "comp-filter",
                {"name": "VCALENDAR"},
                children=[Filter("comp-filter", {"name": "VEVENT"})],
            )
        ]

    def accepts(self, response):
        if not super().accepts(response):
            return False
        components = response.props.get("supportedCalendarComponentSet") or ()
        if not self.components.intersection(components):
            dav_logger.debug(
                "Skipping %s, no supported components in %r", response.href, components
            )
            return False
        return True

    def to_collection(self, response, root_url):
        props = response.props
        return replace(
            super().to_collection(response, root_url),
            description=props.get("calendarDescription"),
            timezone=props.get("calendarTimezone"),
            components=tuple(props.get("supportedCalendarComponentSet") or ()),
        )


class CardDAVProtocol(Protocol):
    account_type = "carddav"
    resourcetype = "addressbook"
    homeset_prop = davxml.ADDRESSBOOK_HOME_SET
    data_prop = davxml.ADDRESS_DATA
    query_tag = davxml.qname(davxml.CARDDAV, "addressbook-query")
    multiget_tag = davxml.qname(davxml.CARDDAV, "addressbook-multiget")
    content_type = "text/vcard; charset=utf-8"
    collection_props = (
        davxml.ADDRESSBOOK_DESCRIPTION,
        davxml.DISPLAYNAME,
        davxml.GETCTAG,
        davxml.RESOURCETYPE,
        davxml.SYNC_TOKEN,
    )

    def default_filters(self):
        return [Filter("prop-filter", {"name": "FN"})]

    def to_collection(self, response, root_url):
        return replace(
            super().to_collection(response, root_url),
            description=response.props.get("addressbookDescription"),
        )


PROTOCOLS = {
    CalDAVProtocol.account_type: CalDAVProtocol(),
    CardDAVProtocol.account_type: CardDAVProtocol(),
}


def get_protocol(account_type):
    """Look up the protocol for ``"caldav"`` or ``"carddav"``. Protocol
    instances are passed through."""
    if isinstance(account_type, Protocol):
        return account_type
    try:
        return PROTOCOLS[account_type]
    except KeyError:
        raise exceptions.UserError(
            "Unknown account type {!r}, expected one of: {}".format(
                account_type, ", ".join(PROTOCOLS)
            )
        )
