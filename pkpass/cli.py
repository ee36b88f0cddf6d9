"""
pkpass command line: build, inspect and personalize signed .pkpass archives.

Usage:
    pkpass build pass.json --assets-dir ./assets --out ticket.pkpass
    pkpass inspect ticket.pkpass --trust-root wwdr.pem
    pkpass personalize ticket.pkpass --set seat=12B --serial T-0002 --out copy.pkpass
    pkpass dev-certs ./certs

Signing material is taken from the PKPASS_* environment variables (see
pkpass.config), optionally loaded from a .env file.
"""

import copy
import dataclasses
import functools
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import click

from .assets import ImageKind, discover_assets, image_name
from .certificates import load_certificates_file
from .config import SigningConfig
from .dev_certs import DEFAULT_PASS_TYPE_IDENTIFIER, DEFAULT_TEAM_IDENTIFIER, generate_chain, write_chain
from .exceptions import (
    ConfigurationError,
    FieldLookupError,
    InvalidAssetNameError,
    KeyNotFoundError,
    PassKitError,
    UnpackingError,
    ValidationError,
)
from .field_index import get_value, set_value
from .images import placeholder_icons
from .models import CurrencyAmount, FieldValue, Pass
from .package import Package
from .serialization import parse_date

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_INTEGRITY = 3


def handle_errors(func):
    """Map pkpass errors to an error message and exit code"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ValidationError, ConfigurationError, InvalidAssetNameError, FieldLookupError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(EXIT_INVALID)
        except UnpackingError as e:
            click.echo(f"Rejected: {e}", err=True)
            sys.exit(EXIT_INTEGRITY)
        except PassKitError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(EXIT_ERROR)
    return wrapper


def parse_pairs(values: Iterable[str], option: str) -> Dict[str, str]:
    pairs = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got {item!r}", param_hint=option)
        pairs[name] = value
    return pairs


def load_trust_roots(paths: Iterable[str]) -> Optional[List]:
    roots = [cert for path in paths for cert in load_certificates_file(path, "trust root")]
    return roots or None


def coerce_value(key: str, raw: str, current: FieldValue) -> FieldValue:
    """Convert command line text to the type of the field's current value"""
    try:
        if isinstance(current, CurrencyAmount):
            amount = float(raw) if "." in raw else int(raw)
            return CurrencyAmount(amount=amount, currency_code=current.currency_code)
        if isinstance(current, datetime):
            return parse_date(raw)
        if isinstance(current, int) and not isinstance(current, bool):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
    except ValueError as e:
        raise ValidationError([f"field '{key}': {e}"]) from e
    return raw


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose):
    """Build, inspect and personalize signed wallet passes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


@main.command()
@click.argument("pass_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--asset", "asset_pairs", multiple=True, metavar="NAME=PATH",
              help="Add a file under an archive name (repeatable).")
@click.option("--assets-dir", type=click.Path(exists=True, file_okay=False, path_type=Path),
              help="Directory with images and *.lproj folders.")
@click.option("--out", "out_path", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="Output .pkpass path")
@click.option("--placeholder-icon", is_flag=True, help="Draw icon.png when none is supplied.")
@click.option("--require-icon", is_flag=True, help="Fail when icon.png is missing.")
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False), default=None,
              help=".env file with PKPASS_* signing settings")
@handle_errors
def build(pass_json, asset_pairs, assets_dir, out_path, placeholder_icon, require_icon, env_file):
    """Sign PASS_JSON and its assets into a .pkpass archive."""
    pass_obj = Pass.from_json_bytes(pass_json.read_bytes())
    package = Package(pass_obj)

    if assets_dir:
        for name, path in discover_assets(assets_dir).items():
            package.add_asset(name, path)
    for name, path in parse_pairs(asset_pairs, "--asset").items():
        package.add_asset(name, Path(path))

    if placeholder_icon and image_name(ImageKind.ICON) not in package.assets:
        for name, data in placeholder_icons(pass_obj.background_color).items():
            package.add_asset(name, data)
        click.echo("Added placeholder icon")

    material = SigningConfig.from_env(env_file).load_material()
    package.write_with(out_path, material, require_icon=require_icon)
    click.echo(f"Created: {out_path}")
    click.echo(f"Manifest entries: {', '.join(package.manifest)}")


@main.command("inspect")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--trust-root", "trust_root_paths", multiple=True,
              type=click.Path(exists=True, dir_okay=False),
              help="PEM file with trusted root certificates (repeatable).")
@click.option("--json", "as_json", is_flag=True, help="Print pass.json instead of a summary.")
@handle_errors
def inspect_archive(archive, trust_root_paths, as_json):
    """Verify ARCHIVE and print what it contains."""
    package = Package.read(archive, trust_roots=load_trust_roots(trust_root_paths))
    pass_obj = package.pass_obj

    if as_json:
        click.echo(json.dumps(pass_obj.to_dict(), ensure_ascii=False, indent=2, sort_keys=True))
        return

    click.echo(f"Signature OK: {package.signer_cert.subject.rfc4514_string()}")
    click.echo(f"Style: {pass_obj.style.style_key}")
    click.echo(f"Serial: {pass_obj.serial_number}")
    click.echo(f"Organization: {pass_obj.organization_name}")
    click.echo(f"Description: {pass_obj.description}")
    for group, _, item in pass_obj.iter_fields():
        value = item.value
        if isinstance(value, CurrencyAmount):
            value = f"{value.amount} {value.currency_code}"
        elif isinstance(value, datetime):
            value = value.isoformat()
        label = f" ({item.label})" if item.label else ""
        click.echo(f"  [{group}] {item.key}{label}: {value}")
    click.echo(f"Assets: {', '.join(package.assets) or '-'}")


@main.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--set", "assignments", multiple=True, metavar="KEY=VALUE",
              help="New value for the field with KEY (repeatable).")
@click.option("--serial", default=None, help="New serial number.")
@click.option("--out", "out_path", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="Output .pkpass path")
@click.option("--trust-root", "trust_root_paths", multiple=True,
              type=click.Path(exists=True, dir_okay=False))
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False), default=None)
@handle_errors
def personalize(archive, assignments, serial, out_path, trust_root_paths, env_file):
    """Copy ARCHIVE with changed field values and re-sign it."""
    source = Package.read(archive, trust_roots=load_trust_roots(trust_root_paths))
    pass_obj = copy.deepcopy(source.pass_obj)
    if serial:
        pass_obj = dataclasses.replace(pass_obj, serial_number=serial)

    for key, raw in parse_pairs(assignments, "--set").items():
        current = get_value(pass_obj, key)
        if current is None:
            raise KeyNotFoundError(key)
        set_value(pass_obj, key, coerce_value(key, raw, current))

    material = SigningConfig.from_env(env_file).load_material()
    Package(pass_obj, source.assets).write_with(out_path, material)
    click.echo(f"Created: {out_path}")


@main.command("dev-certs")
@click.argument("outdir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--pass-type-identifier", default=DEFAULT_PASS_TYPE_IDENTIFIER, show_default=True)
@click.option("--team-identifier", default=DEFAULT_TEAM_IDENTIFIER, show_default=True)
@handle_errors
def dev_certs(outdir, pass_type_identifier, team_identifier):
    """Write a throwaway CA and signer certificate to OUTDIR."""
    chain = generate_chain(pass_type_identifier=pass_type_identifier, team_identifier=team_identifier)
    paths = write_chain(chain, outdir)
    for label, path in paths.items():
        click.echo(f"{label}: {path}")
    click.echo(f"Use with: --env-file {paths['env']}")


if __name__ == "__main__":
    main()
