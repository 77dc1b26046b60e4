"""
CardDAV shortcuts. Everything here is the generic machinery with
:py:class:`davkit.protocol.CardDAVProtocol` filled in.
"""
from .collection import collection_multiget
from .collection import collection_query
from .collection import fetch_collection_objects
from .collection import fetch_collections
from .objects import create_object
from .objects import delete_object
from .objects import update_object
from .protocol import CardDAVProtocol
from .sync import sync_collections

CARDDAV = CardDAVProtocol()


async def addressbook_query(session, url, props, filters=None, depth=1, headers=None):
    return await collection_query(
        session, url, CARDDAV, props, filters=filters, depth=depth, headers=headers
    )


async def addressbook_multiget(session, url, props, hrefs, depth=1, headers=None):
    return await collection_multiget(
        session, url, CARDDAV, props, hrefs, depth=depth, headers=headers
    )


async def fetch_address_books(session, account):
    return await fetch_collections(session, account, CARDDAV)


async def fetch_vcards(session, address_book, account, filters=None):
    return await fetch_collection_objects(
        session, address_book, account, filters=filters, protocol=CARDDAV
    )


async def create_vcard(session, address_book, vcard, filename, headers=None):
    return await create_object(
        session,
        address_book.url,
        vcard,
        filename,
        CARDDAV,
        headers=headers,
    )


async def update_vcard(session, vcard, headers=None):
    return await update_object(session, vcard, CARDDAV, headers=headers)


async def delete_vcard(session, vcard, headers=None):
    return await delete_object(session, vcard, headers=headers)


async def sync_address_books(session, local_address_books, account, detail_result=False):
    return await sync_collections(
        session,
        local_address_books,
        account,
        detail_result=detail_result,
        protocol=CARDDAV,
    )
