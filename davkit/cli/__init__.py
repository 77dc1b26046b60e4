import asyncio
import functools
import logging
import sys

import aiohttp
import click
import click_log

from .. import __version__

cli_logger = logging.getLogger(__name__)
click_log.basic_config("davkit")


class AppContext:
    def __init__(self):
        self.config = None
        self.logger = None


pass_context = click.make_pass_decorator(AppContext, ensure=True)


def catch_errors(f):
    @functools.wraps(f)
    def inner(*a, **kw):
        try:
            f(*a, **kw)
        except BaseException:
            from .utils import handle_cli_error

            handle_cli_error()
            sys.exit(1)

    return inner


@click.group()
@click_log.simple_verbosity_option("davkit")
@click.version_option(version=__version__)
@click.option("--config", "-c", metavar="FILE", help="Config file to use.")
@pass_context
@catch_errors
def app(ctx, config):
    """
    Explore CalDAV and CardDAV accounts
    """

    if not ctx.config:
        from .config import load_config

        ctx.config = load_config(config)


main = app


def _collection_line(collection):
    return "{url}  {name}  ctag={ctag} sync-token={token}".format(
        url=collection.url,
        name=collection.display_name or "-",
        ctag=collection.ctag or "-",
        token=collection.sync_token or "-",
    )


@app.command()
@click.argument("account")
@click.option(
    "--objects/--no-objects",
    default=False,
    help="Also fetch the objects of every collection and show their count.",
)
@pass_context
@catch_errors
def discover(ctx, account, objects):
    """
    Show the collections of an account.

    \b
    \b\bExamples:
    # Show the calendars of the account "work"
    davkit discover work
    """
    from .tasks import discover_account

    async def main():
        async with aiohttp.TCPConnector(limit_per_host=16) as conn:
            return await discover_account(
                ctx.config, account, load_objects=objects, connector=conn
            )

    rv = asyncio.run(main())
    click.echo(f"root: {rv.root_url}")
    click.echo(f"principal: {rv.principal_url}")
    click.echo(f"home: {rv.home_url}")
    for collection in rv.collections:
        line = _collection_line(collection)
        if collection.objects is not None:
            line += f" objects={len(collection.objects)}"
        click.echo(line)


@app.command()
@click.argument("account")
@click.argument("collection")
@pass_context
@catch_errors
def objects(ctx, account, collection):
    """
    List the objects of a collection with their etags.

    COLLECTION is the collection's URL, absolute or relative to the server.
    """
    from .tasks import list_objects

    async def main():
        async with aiohttp.TCPConnector(limit_per_host=16) as conn:
            return await list_objects(ctx.config, account, collection, connector=conn)

    for obj in asyncio.run(main()):
        click.echo(f"{obj.url}  {obj.etag}")


@app.command()
@click.argument("account")
@click.option(
    "--save/--no-save",
    default=True,
    help="Do/Don't remember the current state for the next run.",
)
@pass_context
@catch_errors
def status(ctx, account, save):
    """
    Show which collections were created, changed or deleted since the last
    run.
    """
    from .tasks import account_status

    async def main():
        async with aiohttp.TCPConnector(limit_per_host=16) as conn:
            return await account_status(ctx.config, account, save=save, connector=conn)

    result = asyncio.run(main())
    for prefix, collections in (
        ("+", result.created),
        ("~", result.updated),
        ("-", result.deleted),
    ):
        for collection in collections:
            click.echo(f"{prefix} {_collection_line(collection)}")

    if not (result.created or result.updated or result.deleted):
        cli_logger.info("No changes.")
