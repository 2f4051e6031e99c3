import logging

import click
from click_aliases import ClickAliasedGroup

from uploadsio.scheduler import TransformScheduler
from uploadsio.settings import Settings

from . import files


@click.group(cls=ClickAliasedGroup)
@click.option(
    "--log-level",
    default="WARNING",
    envvar="UIO_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
@click.version_option()
@click.pass_context
def cli(ctx, log_level):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    settings = Settings()
    ctx.obj = {
        "settings": settings,
        "scheduler": TransformScheduler(settings=settings),
    }


files.make(cli)
