import os

import click

from uploadsio import download as downloader
from uploadsio.errors import UploadError

from .util import exit_with, exit_with_report, load_uploader, parse_scope

uploader_option = click.option(
    "--uploader",
    "uploader_path",
    required=True,
    envvar="UIO_UPLOADER",
    help="Uploader to use, as package.module:Name",
)
scope_option = click.option("--scope", help="JSON scope, e.g. '{\"id\": 1}'")


def make(cli: click.Group):
    @cli.command(name="store", aliases=["s"])
    @click.argument(
        "path", type=click.Path(exists=True, dir_okay=False, resolve_path=True)
    )
    @click.option("--name", type=click.STRING, help="Store under this name")
    @uploader_option
    @scope_option
    @click.pass_obj
    def store(ctx, path, name, uploader_path, scope):
        uploader = load_uploader(uploader_path, ctx["settings"])
        file = uploader.new(location=path, name=name, scope=parse_scope(scope))
        try:
            uploader.check(file)
        except UploadError as e:
            exit_with({"error": str(e)})
        exit_with_report(ctx["scheduler"].store(file))

    @cli.command(name="load", aliases=["l"])
    @click.argument("name", type=click.STRING)
    @uploader_option
    @scope_option
    @click.pass_obj
    def load(ctx, name, uploader_path, scope):
        uploader = load_uploader(uploader_path, ctx["settings"])
        file = uploader.new(name=name, scope=parse_scope(scope))
        try:
            loaded = ctx["scheduler"].load(file)
        except UploadError as e:
            exit_with({"error": str(e)})
        exit_with({"response": {"name": loaded.name, "location": loaded.location}})

    @cli.command(name="delete", aliases=["d", "rm"])
    @click.argument("name", type=click.STRING)
    @uploader_option
    @scope_option
    @click.pass_obj
    def delete(ctx, name, uploader_path, scope):
        uploader = load_uploader(uploader_path, ctx["settings"])
        file = uploader.new(name=name, scope=parse_scope(scope))
        exit_with_report(ctx["scheduler"].delete(file))

    @cli.command(name="regenerate", aliases=["r"])
    @click.argument("name", type=click.STRING)
    @uploader_option
    @scope_option
    @click.pass_obj
    def regenerate(ctx, name, uploader_path, scope):
        uploader = load_uploader(uploader_path, ctx["settings"])
        file = uploader.new(name=name, scope=parse_scope(scope))
        try:
            report = ctx["scheduler"].regenerate(file)
        except UploadError as e:
            exit_with({"error": str(e)})
        exit_with_report(report)

    @cli.command(name="url", aliases=["u"])
    @click.argument("name", type=click.STRING)
    @click.option("--version", "version", default="original")
    @click.option("--signed", is_flag=True)
    @uploader_option
    @scope_option
    @click.pass_obj
    def url(ctx, name, version, signed, uploader_path, scope):
        uploader = load_uploader(uploader_path, ctx["settings"])
        file = uploader.new(name=name, scope=parse_scope(scope))
        click.echo(ctx["scheduler"].url(file, version, signed=signed))

    @cli.command(name="download")
    @click.argument("url", type=click.STRING)
    @click.option("--max-redirects", type=click.INT, default=10)
    @click.option("--store", "store_it", is_flag=True, help="Store after download")
    @click.option("--uploader", "uploader_path", envvar="UIO_UPLOADER")
    @scope_option
    @click.pass_obj
    def download(ctx, url, max_redirects, store_it, uploader_path, scope):
        try:
            file = downloader.download(url, max_redirects=max_redirects)
        except UploadError as e:
            exit_with({"error": str(e)})
        if not store_it:
            exit_with({"response": {"name": file.name, "location": file.location}})
        if not uploader_path:
            raise click.UsageError("--store requires --uploader")
        uploader = load_uploader(uploader_path, ctx["settings"])
        file = uploader.new(
            location=file.location, name=file.name, scope=parse_scope(scope)
        )
        try:
            report = ctx["scheduler"].store(file)
        finally:
            os.remove(file.location)
        exit_with_report(report)
