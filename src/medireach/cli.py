"""CLI entrypoint for medireach."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from medireach import queries
from medireach.config import BACKENDS, Settings
from medireach.errors import InvalidCoordinateError, InvalidQueryError, RecordSourceError
from medireach.geo import Coordinate, distance_km
from medireach.location import resolve_location
from medireach.models import GeoRecord, Predicate, RankedResult, SearchQuery
from medireach.records import load_records, load_records_from_file
from medireach.search import nearest as nearest_record
from medireach.search import search as run_search
from medireach.sources import RECORD_KINDS

console = Console()

KIND_CHOICE = click.Choice(RECORD_KINDS)

TYPE_CHOICES = queries.HOSPITAL_TYPES + queries.CAMP_TYPES + [queries.ALL]

EMPTY_MESSAGE = "No records found, try adjusting filters."


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity.")
@click.pass_context
def cli(ctx: click.Context, verbose: int):
    """MediReach: find nearby hospitals, blood banks, camps and donors."""
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    level = logging.DEBUG if verbose > 1 else logging.INFO if verbose else settings.log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    ctx.obj = settings


def _load(settings: Settings, kind: str, from_file: Optional[str], backend: Optional[str]) -> list[GeoRecord]:
    try:
        if from_file:
            return load_records_from_file(from_file, kind)
        return load_records(kind, settings, backend=backend)
    except (RecordSourceError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _origin(lat: Optional[float], lng: Optional[float], locate: bool) -> Optional[Coordinate]:
    if (lat is None) != (lng is None):
        raise click.UsageError("--lat and --lng must be given together.")
    if lat is not None:
        return Coordinate(lat=lat, lng=lng)
    if locate:
        resolved = asyncio.run(resolve_location())
        if resolved.message:
            console.print(f"[yellow]{resolved.message}[/]")
        return resolved.coordinate
    return None


def _predicates(kind: str, type_: Optional[str], status: Optional[str], blood_group: Optional[str],
                text: Optional[str], within_days: Optional[int]) -> list[Predicate]:
    if kind == "hospitals":
        return queries.hospital_predicates(type=type_, status=status, text=text)
    if kind == "blood_banks":
        return queries.blood_bank_predicates(blood_group)
    if kind == "camps":
        return queries.camp_predicates(date.today(), type=type_, within_days=within_days)
    return queries.donor_predicates(blood_group)


def _detail(record: GeoRecord) -> str:
    attrs = record.attributes
    if record.kind == "hospital":
        return f"{attrs.get('type', '')} / {attrs.get('status', '')}"
    if record.kind == "blood_bank":
        return ", ".join(attrs.get("blood_groups", []))
    if record.kind == "camp":
        camp_date = attrs.get("date")
        if isinstance(camp_date, date):
            camp_date = camp_date.isoformat()
        return f"{attrs.get('type', '')} on {camp_date or '?'}"
    if record.kind == "donor":
        return attrs.get("blood_group", "")
    return ""


def _contact(record: GeoRecord) -> str:
    attrs = record.attributes
    return attrs.get("contact") or attrs.get("phone") or ""


def _print_results(title: str, results: list[RankedResult], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([json.loads(r.to_json()) for r in results], indent=2))
        return

    if not results:
        console.print(f"[yellow]{EMPTY_MESSAGE}[/]")
        return

    table = Table(title=title)
    table.add_column("Distance (km)", justify="right", width=13)
    table.add_column("Name", style="bold")
    table.add_column("Details")
    table.add_column("Contact")
    table.add_column("Coords", width=20)

    for r in results:
        distance = "—" if r.distance_km is None else f"{r.distance_km:.1f}"
        loc = r.record.location
        table.add_row(
            distance,
            r.record.name,
            _detail(r.record),
            _contact(r.record),
            f"{loc.lat:.4f}, {loc.lng:.4f}",
        )

    console.print(table)


@cli.command()
@click.argument("kind", type=KIND_CHOICE)
@click.option("--lat", type=float, help="Origin latitude.")
@click.option("--lng", type=float, help="Origin longitude.")
@click.option("--locate", is_flag=True, help="Resolve the origin from your IP address.")
@click.option("--radius", type=float, help="Maximum distance in km (requires an origin).")
@click.option("--type", "type_", type=click.Choice(TYPE_CHOICES, case_sensitive=False),
              help="Hospital or camp type ('all' for any).")
@click.option("--status", type=click.Choice(queries.HOSPITAL_STATUSES + [queries.ALL], case_sensitive=False),
              help="Hospital status ('all' for any).")
@click.option("--blood-group", type=click.Choice(queries.BLOOD_GROUPS + [queries.ALL]), help="Blood group.")
@click.option("--text", help="Match name or address (hospitals).")
@click.option("--within-days", type=int, help="Only camps in the next N days.")
@click.option("--limit", type=int, help="Max results to display.")
@click.option("--from-file", type=click.Path(exists=True, dir_okay=False), help="Read rows from a JSON file.")
@click.option("--backend", type=click.Choice(BACKENDS), help="Record source backend.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.pass_obj
def search(settings: Settings, kind: str, lat, lng, locate, radius, type_, status, blood_group,
           text, within_days, limit, from_file, backend, as_json):
    """Search records of KIND, nearest first when an origin is known."""
    origin = _origin(lat, lng, locate)
    if radius is None and origin is not None:
        if kind == "donors":
            radius = queries.DEFAULT_DONOR_RADIUS_KM
        elif kind == "hospitals" and text:
            radius = queries.DEFAULT_HOSPITAL_RADIUS_KM

    query = SearchQuery(
        origin=origin,
        radius_km=radius,
        predicates=_predicates(kind, type_, status, blood_group, text, within_days),
        limit=limit,
    )
    records = _load(settings, kind, from_file, backend)

    try:
        results = run_search(records, query)
    except (InvalidCoordinateError, InvalidQueryError) as exc:
        raise click.UsageError(str(exc)) from exc

    title = kind.replace("_", " ").title()
    if origin is not None:
        title += f" near {origin.lat:.4f}, {origin.lng:.4f}"
    _print_results(title, results, as_json)


@cli.command()
@click.argument("kind", type=KIND_CHOICE, default="hospitals")
@click.option("--lat", type=float, help="Origin latitude.")
@click.option("--lng", type=float, help="Origin longitude.")
@click.option("--blood-group", type=click.Choice(queries.BLOOD_GROUPS), help="Blood group.")
@click.option("--from-file", type=click.Path(exists=True, dir_okay=False), help="Read rows from a JSON file.")
@click.option("--backend", type=click.Choice(BACKENDS), help="Record source backend.")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.pass_obj
def nearest(settings: Settings, kind: str, lat, lng, blood_group, from_file, backend, as_json):
    """Show the single nearest record of KIND (open hospitals by default)."""
    origin = _origin(lat, lng, locate=True)

    if kind == "hospitals":
        predicates = queries.emergency_hospital_predicates()
    else:
        predicates = _predicates(kind, None, None, blood_group, None, None)

    records = _load(settings, kind, from_file, backend)
    try:
        result = nearest_record(records, origin, predicates)
    except (InvalidCoordinateError, InvalidQueryError) as exc:
        raise click.UsageError(str(exc)) from exc

    _print_results(f"Nearest {kind.replace('_', ' ')}", [result] if result else [], as_json)


@cli.command()
@click.argument("lat1", type=float)
@click.argument("lng1", type=float)
@click.argument("lat2", type=float)
@click.argument("lng2", type=float)
def distance(lat1: float, lng1: float, lat2: float, lng2: float):
    """Great-circle distance between two points, in km."""
    try:
        km = distance_km(Coordinate(lat1, lng1), Coordinate(lat2, lng2))
    except InvalidCoordinateError as exc:
        raise click.UsageError(str(exc)) from exc
    click.echo(f"{km:.3f} km")


@cli.command()
@click.option("--no-ip", is_flag=True, help="Skip the IP lookup and use the default location.")
def locate(no_ip: bool):
    """Resolve the current location (IP lookup, then default)."""
    resolved = asyncio.run(resolve_location(use_ip=not no_ip))
    click.echo(f"{resolved.coordinate.lat:.4f}, {resolved.coordinate.lng:.4f} ({resolved.method})")
    if resolved.message:
        console.print(f"[yellow]{resolved.message}[/]")
