"""
Finding out what changed on the server since the last time we looked.

:py:func:`sync_collections` compares a cached list of collections with the
server's. :py:func:`sync_collection_objects` does the same for the objects
of a single collection. Both only report differences, they never write to
the server.
"""
import logging
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from typing import List

from . import davxml
from . import exceptions
from .collection import collection_multiget
from .collection import fetch_collection_objects
from .collection import fetch_collections
from .collection import is_collection_dirty
from .dav import sync_collection
from .protocol import get_protocol
from .utils import require_fields
from .utils import resolve_url
from .utils import url_key

sync_logger = logging.getLogger(__name__)

SYNC_METHODS = ("webdav", "basic")


@dataclass
class SyncResult:
    """Outcome of a comparison.

    ``updated`` holds the server's versions. ``unchanged`` holds the cached
    versions of everything that exists on both sides and did not change.
    """

    created: List = field(default_factory=list)
    updated: List = field(default_factory=list)
    deleted: List = field(default_factory=list)
    unchanged: List = field(default_factory=list)

    @property
    def merged(self):
        """New and changed entries, in the server's version."""
        return self.created + self.updated

    @property
    def cache_view(self):
        """What the cache should contain now."""
        return self.created + self.updated + self.unchanged


def _match(local, remote):
    """Pair every local entry with at most one remote entry of equal URL.

    :returns: ``(pairs, unmatched_local, unmatched_remote)``
    """
    remote_by_key = {}
    for r in remote:
        remote_by_key.setdefault(url_key(r.url), r)

    pairs = []
    unmatched_local = []
    claimed = set()
    for entry in local:
        key = url_key(entry.url)
        if key in remote_by_key and key not in claimed:
            claimed.add(key)
            pairs.append((entry, remote_by_key[key]))
        else:
            unmatched_local.append(entry)

    unmatched_remote = []
    for r in remote:
        key = url_key(r.url)
        if key in claimed and remote_by_key[key] is r:
            continue
        unmatched_remote.append(r)

    return pairs, unmatched_local, unmatched_remote


def collection_changed(local, remote):
    """A collection changed if the server's sync token or ctag is present and
    differs from ours. Without either marker we can't tell and assume it
    didn't."""
    if remote.sync_token and remote.sync_token != local.sync_token:
        return True
    if remote.ctag and remote.ctag != local.ctag:
        return True
    return False


def diff_collections(local_collections, remote_collections):
    pairs, deleted, created = _match(local_collections, remote_collections)
    rv = SyncResult(created=created, deleted=deleted)
    for local, remote in pairs:
        if collection_changed(local, remote):
            rv.updated.append(remote)
        else:
            rv.unchanged.append(local)
    return rv


async def sync_collections(
    session, local_collections, account, detail_result=False, protocol=None
):
    """Compare ``local_collections`` with the account's collections on the
    server.

    :param detail_result: Return a :py:class:`SyncResult` instead of the
        merged list.
    :returns: The new and the changed collections, in the server's version.
        Unchanged and deleted collections are only reported with
        ``detail_result``.
    """
    remote_collections = await fetch_collections(session, account, protocol)
    result = diff_collections(local_collections, remote_collections)

    sync_logger.debug(f"new collections: {[c.display_name for c in result.created]}")
    sync_logger.debug(
        f"updated collections: {[c.display_name for c in result.updated]}"
    )
    sync_logger.debug(
        f"deleted collections: {[c.display_name for c in result.deleted]}"
    )

    if detail_result:
        return result
    return result.merged


def diff_objects(local_objects, remote_objects):
    pairs, deleted, created = _match(local_objects, remote_objects)
    rv = SyncResult(created=created, deleted=deleted)
    for local, remote in pairs:
        if remote.etag != local.etag:
            rv.updated.append(remote)
        else:
            rv.unchanged.append(local)
    return rv


async def _sync_objects_webdav(session, collection, account, protocol):
    responses, new_token = await sync_collection(
        session, collection.url, collection.sync_token, [davxml.GETETAG]
    )

    changed_hrefs = []
    deleted_keys = set()
    for response in responses:
        url = resolve_url(account.root_url, response.href)
        if url_key(url) == url_key(collection.url):
            continue
        if response.status == 404:
            deleted_keys.add(url_key(url))
        elif response.ok:
            changed_hrefs.append(url)

    fetched = []
    if changed_hrefs:
        fetched = [
            protocol.to_object(r, account.root_url)
            for r in await collection_multiget(
                session, collection.url, protocol, protocol.object_props, changed_hrefs
            )
        ]

    local_objects = list(collection.objects or ())
    local_keys = {url_key(o.url) for o in local_objects}
    fetched_by_key = {url_key(o.url): o for o in fetched}

    rv = SyncResult(created=[o for o in fetched if url_key(o.url) not in local_keys])
    for obj in local_objects:
        key = url_key(obj.url)
        if key in deleted_keys:
            rv.deleted.append(obj)
        elif key in fetched_by_key:
            rv.updated.append(fetched_by_key[key])
        else:
            rv.unchanged.append(obj)

    sync_logger.debug(
        f"{collection.url}: sync-collection returned {len(changed_hrefs)} changed "
        f"and {len(deleted_keys)} removed members"
    )
    return replace(collection, sync_token=new_token), rv


async def _sync_objects_basic(session, collection, account, protocol):
    dirty, new_ctag = await is_collection_dirty(session, collection)
    local_objects = list(collection.objects or ())
    if not dirty:
        sync_logger.debug(f"{collection.url}: ctag unchanged, nothing to do")
        return collection, SyncResult(unchanged=local_objects)

    remote_objects = await fetch_collection_objects(
        session, collection, account, protocol=protocol
    )
    return replace(collection, ctag=new_ctag), diff_objects(
        local_objects, remote_objects
    )


async def sync_collection_objects(
    session, collection, account, method=None, detail_result=False
):
    """Bring the cached objects of ``collection`` up to date.

    ``collection.objects`` is the cache. With the ``"webdav"`` method only
    the members changed since ``collection.sync_token`` are fetched (RFC
    6578). The ``"basic"`` method checks the ctag and, if it changed,
    fetches everything and compares etags. By default ``"webdav"`` is used
    if the server advertises ``sync-collection`` for the collection.

    :returns: The updated collection. With ``detail_result`` a tuple of the
        updated collection and a :py:class:`SyncResult` of its objects.
    """
    require_fields(account, ("root_url",), "sync_collection_objects")
    protocol = get_protocol(account.account_type)

    if method is None:
        method = "webdav" if "sync-collection" in collection.reports else "basic"

    if method == "webdav":
        new_collection, result = await _sync_objects_webdav(
            session, collection, account, protocol
        )
    elif method == "basic":
        new_collection, result = await _sync_objects_basic(
            session, collection, account, protocol
        )
    else:
        raise exceptions.UserError(
            "Unknown sync method {!r}, expected one of: {}".format(
                method, ", ".join(SYNC_METHODS)
            )
        )

    new_collection = new_collection.with_objects(result.cache_view)
    if detail_result:
        return new_collection, result
    return new_collection
