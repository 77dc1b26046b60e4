"""
The values davkit hands to its callers.

An account is resolved in stages. Every stage is a frozen dataclass that
carries all fields of the previous stage plus the one its step resolved, so
a value of type :py:class:`HomeAccount` is known to have a ``root_url``, a
``principal_url`` and a ``home_url``. Nothing is ever updated in place.
"""
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import fields
from dataclasses import replace
from typing import Optional
from typing import Tuple


@dataclass(frozen=True)
class CollectionObject:
    """A calendar object or vCard as stored on the server."""

    url: str
    etag: Optional[str]
    data: Optional[str]


@dataclass(frozen=True)
class Collection:
    """A calendar or address book.

    ``ctag`` and ``sync_token`` change whenever the collection's members
    change. Servers may provide either, both or neither.
    """

    url: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    ctag: Optional[str] = None
    sync_token: Optional[str] = None
    timezone: Optional[str] = None
    components: Tuple[str, ...] = ()
    reports: Tuple[str, ...] = ()
    resource_types: Tuple[str, ...] = ()
    objects: Optional[Tuple[CollectionObject, ...]] = None

    def with_objects(self, objects):
        return replace(self, objects=tuple(objects))

    def to_dict(self):
        rv = asdict(self)
        for key in ("components", "reports", "resource_types"):
            rv[key] = list(rv[key])
        if self.objects is not None:
            rv["objects"] = [asdict(o) for o in self.objects]
        return rv

    @classmethod
    def from_dict(cls, d):
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in d.items() if k in known}
        for key in ("components", "reports", "resource_types"):
            kwargs[key] = tuple(kwargs.get(key) or ())
        if kwargs.get("objects") is not None:
            kwargs["objects"] = tuple(CollectionObject(**o) for o in kwargs["objects"])
        return cls(**kwargs)


@dataclass(frozen=True)
class ServerAccount:
    server_url: str
    account_type: str

    def with_root_url(self, root_url):
        return RootedAccount(self.server_url, self.account_type, root_url)


@dataclass(frozen=True)
class RootedAccount(ServerAccount):
    root_url: str

    def with_principal_url(self, principal_url):
        return PrincipalAccount(
            self.server_url, self.account_type, self.root_url, principal_url
        )


@dataclass(frozen=True)
class PrincipalAccount(RootedAccount):
    principal_url: str

    def with_home_url(self, home_url):
        return HomeAccount(
            self.server_url,
            self.account_type,
            self.root_url,
            self.principal_url,
            home_url,
        )


@dataclass(frozen=True)
class HomeAccount(PrincipalAccount):
    home_url: str

    def with_collections(self, collections):
        return Account(
            self.server_url,
            self.account_type,
            self.root_url,
            self.principal_url,
            self.home_url,
            tuple(collections),
        )


@dataclass(frozen=True)
class Account(HomeAccount):
    """A fully bootstrapped account, see :py:func:`davkit.account.create_account`."""

    collections: Tuple[Collection, ...] = ()
