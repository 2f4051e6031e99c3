import importlib
import json
import sys
from typing import Any, Optional

import click

from uploadsio.settings import Settings
from uploadsio.uploader import Uploader


def load_uploader(path: str, settings: Settings) -> Uploader:
    """Resolve "package.module:Name" to an uploader instance"""
    module_name, _, attr = path.partition(":")
    if not attr:
        raise click.BadParameter(f"{path} is not in module:name form")
    try:
        target = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise click.BadParameter(f"Cannot import {path}: {e}")
    if isinstance(target, type):
        target = target(settings=settings)
    if not isinstance(target, Uploader):
        raise click.BadParameter(f"{path} is not an Uploader")
    return target


def parse_scope(scope: Optional[str]) -> Any:
    if scope is None:
        return None
    try:
        return json.loads(scope)
    except ValueError:
        raise click.BadParameter(f"--scope must be JSON, got {scope}")


def exit_with(out: dict):
    if out.get("error"):
        click.secho(json.dumps(out, indent=2, sort_keys=True, default=str), fg="red")
        sys.exit(1)
    click.echo(json.dumps(out, indent=2, sort_keys=True, default=str))
    sys.exit(0)


def exit_with_report(report):
    summary = report.summary()
    if report.ok:
        exit_with({"response": summary})
    exit_with({"error": summary})
