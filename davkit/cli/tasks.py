import aiohttp

from ..account import create_account
from ..collection import fetch_collection_objects
from ..models import Collection
from ..sync import sync_collections
from ..utils import resolve_url
from .utils import cli_logger
from .utils import load_status
from .utils import save_status
from .utils import session_from_config


async def discover_account(
    config,
    account_name,
    load_objects=False,
    *,
    connector: aiohttp.TCPConnector,
):
    account_config = config.get_account(account_name)
    session = session_from_config(account_config, connector=connector)

    cli_logger.info(f"Discovering collections for {account_name}")
    return await create_account(
        session,
        account_config.url,
        account_config.type,
        load_collections=True,
        load_objects=load_objects,
    )


async def list_objects(
    config,
    account_name,
    collection_url,
    *,
    connector: aiohttp.TCPConnector,
):
    account_config = config.get_account(account_name)
    session = session_from_config(account_config, connector=connector)

    account = await create_account(
        session, account_config.url, account_config.type, load_collections=False
    )
    collection = Collection(url=resolve_url(account.root_url, collection_url))
    return await fetch_collection_objects(session, collection, account)


async def account_status(
    config,
    account_name,
    save=True,
    *,
    connector: aiohttp.TCPConnector,
):
    """Compare the cached collections of an account with the server and
    optionally update the cache."""
    account_config = config.get_account(account_name)
    session = session_from_config(account_config, connector=connector)
    status_path = config.general["status_path"]

    account = await create_account(
        session, account_config.url, account_config.type, load_collections=False
    )
    local_collections = load_status(status_path, account_name)
    result = await sync_collections(
        session, local_collections, account, detail_result=True
    )

    if save:
        save_status(status_path, account_name, result.cache_view)
    return result
