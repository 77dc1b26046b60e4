import logging
import urllib.parse as urlparse

from . import davxml
from . import exceptions
from .protocol import get_protocol

dav_logger = logging.getLogger(__name__)


async def _assert_multistatus_success(response):
    # Xandikos returns a multistatus on PUT.
    try:
        root = davxml.parse_xml(await response.read())
    except davxml.InvalidXMLResponse:
        return
    for status in root.iter(davxml.qname(davxml.DAV, "status")):
        st = davxml.parse_status(status.text)
        if st is None:
            continue
        if st < 200 or st >= 400:
            raise exceptions.TransportError(
                f"Server error: {st}", status=st, url=str(response.url)
            )


def object_url(collection_url, filename):
    """URL of ``filename`` inside the collection."""
    return urlparse.urljoin(collection_url.rstrip("/") + "/", filename)


def _headers(session, content_type, extra):
    headers = session.get_default_headers()
    if content_type is None:
        headers.pop("Content-Type", None)
    else:
        headers["Content-Type"] = content_type
    headers.update(extra or {})
    return headers


async def create_object(
    session, collection_url, data, filename, protocol, headers=None
):
    """PUT a new object named ``filename`` into the collection.

    ``protocol`` (``"caldav"``, ``"carddav"`` or a protocol instance) decides
    the content type.

    :raises davkit.exceptions.ConflictError: if the object already exists.
    :returns: The server's response.
    """
    url = object_url(collection_url, filename)
    content_type = get_protocol(protocol).content_type
    all_headers = _headers(session, content_type, {"If-None-Match": "*"})
    all_headers.update(headers or {})

    try:
        response = await session.request(
            "PUT", url, data=data.encode("utf-8"), headers=all_headers
        )
    except exceptions.PreconditionFailed as e:
        raise exceptions.ConflictError(
            f"{url} already exists.", status=e.status, url=url, existing_href=url
        ) from e
    except exceptions.TransportError as e:
        if e.status != 409:
            raise
        raise exceptions.ConflictError(
            f"{url} already exists.", status=e.status, url=url, existing_href=url
        ) from e

    await _assert_multistatus_success(response)
    return response


async def update_object(session, obj, protocol, headers=None):
    """PUT ``obj.data`` to ``obj.url``, only if the server still has
    ``obj.etag``.

    :raises davkit.exceptions.StaleETagError: if the object changed on the
        server in the meantime. Fetch it again before retrying.
    :returns: The server's response.
    """
    if obj.etag is None:
        raise ValueError("etag must be given and must not be None.")

    content_type = get_protocol(protocol).content_type
    all_headers = _headers(session, content_type, {"If-Match": obj.etag})
    all_headers.update(headers or {})

    try:
        response = await session.request(
            "PUT", obj.url, data=(obj.data or "").encode("utf-8"), headers=all_headers
        )
    except exceptions.PreconditionFailed as e:
        raise exceptions.StaleETagError(
            f"{obj.url} changed on the server.",
            status=e.status,
            url=obj.url,
            etag=obj.etag,
        ) from e

    await _assert_multistatus_success(response)
    return response


async def delete_object(session, obj, headers=None):
    """DELETE ``obj.url``, only if the server still has ``obj.etag``.

    An object that is already gone is not an error, ``None`` is returned in
    that case.

    :raises davkit.exceptions.StaleETagError: if the object changed on the
        server in the meantime.
    """
    all_headers = _headers(session, None, {})
    if obj.etag:
        all_headers["If-Match"] = obj.etag
    else:  # baikal doesn't give us an etag.
        dav_logger.warning(f"Deleting {obj.url} with no etag.")
    all_headers.update(headers or {})

    try:
        return await session.request("DELETE", obj.url, headers=all_headers)
    except exceptions.NotFoundError:
        dav_logger.debug(f"{obj.url} is already gone.")
        return None
    except exceptions.PreconditionFailed as e:
        raise exceptions.StaleETagError(
            f"{obj.url} changed on the server.",
            status=e.status,
            url=obj.url,
            etag=obj.etag,
        ) from e
