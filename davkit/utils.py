import os
import re
import urllib.parse as urlparse

from . import exceptions

_DEFAULT_PORTS = {"http": 80, "https": 443}
_CAMEL_RE = re.compile(r"-([a-z0-9])")


def expand_path(p: str) -> str:
    """Expand $HOME in a path and normalize the separator."""
    p = os.path.expanduser(p)
    p = os.path.normpath(p)
    return p


def split_dict(d, f):
    """Puts key into first dict if f(key), otherwise in second dict"""
    a = {}
    b = {}
    for k, v in d.items():
        if f(k):
            a[k] = v
        else:
            b[k] = v

    return a, b


def camelcase(name: str) -> str:
    """``calendar-home-set`` -> ``calendarHomeSet``"""
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def resolve_url(base, href):
    """Resolve ``href`` against ``base``. A missing href resolves to the base
    itself."""
    return urlparse.urljoin(base or "", href or "")


def url_key(url):
    """
    Comparison key for URLs. Scheme and host are case-insensitive, default
    ports are made explicit and a trailing slash is ignored. Everything else
    has to match exactly.
    """
    parts = urlparse.urlsplit(url or "")
    scheme = parts.scheme.lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is None:
        port = _DEFAULT_PORTS.get(scheme)

    return (scheme, parts.hostname or "", port, parts.path.rstrip("/"), parts.query)


def url_equals(a, b):
    return url_key(a) == url_key(b)


def find_missing_fields(obj, fields):
    return [f for f in fields if not getattr(obj, f, None)]


def require_fields(obj, fields, operation):
    """Raise :py:exc:`PreconditionError` unless ``obj`` has all ``fields``."""
    if obj is None:
        raise exceptions.PreconditionError(
            f"no account for {operation}", missing=list(fields)
        )

    missing = find_missing_fields(obj, fields)
    if missing:
        raise exceptions.PreconditionError(
            "account must have {} before {}".format(", ".join(missing), operation),
            missing=missing,
        )
