"""
Test suite for davkit.
"""

import hypothesis.strategies as st

VCARD_TEMPLATE = """BEGIN:VCARD
VERSION:3.0
FN:Cyrus Daboo
N:Daboo;Cyrus;;;
ADR;TYPE=POSTAL:;2822 Email HQ;Suite 2821;RFCVille;PA;15213;USA
EMAIL;TYPE=PREF:cyrus@example.com
NICKNAME:me
NOTE:Example VCard.
ORG:Self Employed
TEL;TYPE=VOICE:412 605 0499
TEL;TYPE=FAX:412 605 0705
URL;VALUE=URI:http://www.example.com
UID:{uid}
END:VCARD"""

EVENT_TEMPLATE = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//hacksw/handcal//NONSGML v1.0//EN
BEGIN:VEVENT
DTSTART:19970714T170000Z
DTEND:19970715T035959Z
SUMMARY:Bastille Day Party
UID:{uid}
END:VEVENT
END:VCALENDAR"""

NAMESPACES = (
    'xmlns="DAV:" '
    'xmlns:C="urn:ietf:params:xml:ns:caldav" '
    'xmlns:CR="urn:ietf:params:xml:ns:carddav" '
    'xmlns:CS="http://calendarserver.org/ns/"'
)


def propstat(props, status="HTTP/1.1 200 OK"):
    return f"<propstat><prop>{props}</prop><status>{status}</status></propstat>"


def response(href, *propstats, status=None):
    status_xml = f"<status>{status}</status>" if status else ""
    return f"<response><href>{href}</href>{status_xml}{''.join(propstats)}</response>"


def multistatus(*responses, extra=""):
    return (
        '<?xml version="1.0" encoding="utf-8" ?>'
        f"<multistatus {NAMESPACES}>{''.join(responses)}{extra}</multistatus>"
    )


def calendar_response(href, name, ctag=None, components=("VEVENT",), token=None):
    comps = "".join(f'<C:comp name="{c}"/>' for c in components)
    props = (
        f"<displayname>{name}</displayname>"
        "<resourcetype><collection/><C:calendar/></resourcetype>"
        f"<C:supported-calendar-component-set>{comps}"
        "</C:supported-calendar-component-set>"
    )
    if ctag is not None:
        props += f"<CS:getctag>{ctag}</CS:getctag>"
    if token is not None:
        props += f"<sync-token>{token}</sync-token>"
    return response(href, propstat(props))


def object_response(href, etag, data=None, data_tag="C:calendar-data"):
    props = f"<getetag>{etag}</getetag>"
    if data is not None:
        props += f"<{data_tag}>{data}</{data_tag}>"
    return response(href, propstat(props))


path_strategy = st.lists(
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_", min_size=1, max_size=8),
    min_size=1,
    max_size=4,
).map(lambda parts: "/" + "/".join(parts))

marker_strategy = st.one_of(
    st.none(), st.text(alphabet="0123456789abcdef", min_size=1, max_size=4)
)
