"""
Command-line interface for the pass predictor.

This module provides a CLI for predicting satellite passes over ground
stations from the command line.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional
import json
import logging
import sys

import click

from .config import AppConfig, load_config
from .models import Pass
from .observer import ObserverSite
from .orbit import SatelliteOrbit
from .overlap import OverlapCache
from .pass_cache import PassCache
from .utils import format_duration, get_current_utc, parse_datetime, setup_logging

logger = logging.getLogger(__name__)


def station_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that needs one ground station."""
    options = [
        click.option('--tle', required=True, type=click.Path(exists=True),
                     help='Path to TLE file'),
        click.option('--satellite', required=True,
                     help='Satellite name (must match name in TLE file)'),
        click.option('--station', nargs=3, type=str, default=None, metavar='NAME LAT LON',
                     help='Ground station: name latitude longitude'),
        click.option('--station-name', type=str,
                     help='Ground station defined in the configuration file'),
        click.option('--altitude', default=0.0, type=float,
                     help='Station altitude in meters (default: 0)'),
        click.option('--min-elevation', type=float,
                     help='Minimum elevation for a valid pass in degrees'),
        click.option('--reference-time', type=str,
                     help='Fixed reference time instead of the wall clock (UTC)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_observer(
    config: AppConfig,
    station: Optional[tuple],
    station_name: Optional[str],
    altitude: float,
    min_elevation: Optional[float],
    reference_time: Optional[datetime],
) -> ObserverSite:
    if station:
        name, lat_str, lon_str = station
        if min_elevation is None:
            min_elevation = config.pass_cache.min_elevation_deg
        return ObserverSite(
            latitude=float(lat_str),
            longitude=float(lon_str),
            altitude_m=altitude,
            min_elevation_deg=min_elevation,
            reference_time=reference_time,
            name=name,
        )
    if station_name:
        observer = config.station(station_name).to_observer(reference_time)
        if min_elevation is not None:
            return ObserverSite(
                latitude=observer.latitude,
                longitude=observer.longitude,
                altitude_m=observer.altitude_m,
                min_elevation_deg=min_elevation,
                reference_time=reference_time,
                name=observer.name,
            )
        return observer
    raise click.UsageError("Specify a ground station with --station NAME LAT LON or --station-name")


def _echo_passes(passes: List[Pass], output_format: str) -> None:
    if output_format == 'json':
        click.echo(json.dumps([p.to_dict() for p in passes], indent=2))
        return

    click.echo(f"{'#':>3}  {'AOS (UTC)':<19}  {'Max Elev':>8}  {'LOS (UTC)':<19}  {'Duration':>8}")
    for i, satellite_pass in enumerate(passes, 1):
        if satellite_pass.is_synthetic:
            click.echo(f"{i:>3}  {str(satellite_pass)}")
            continue
        click.echo(
            f"{i:>3}  {satellite_pass.aos.time.strftime('%Y-%m-%d %H:%M:%S')}  "
            f"{satellite_pass.max_el.elevation_deg:>7.1f}°  "
            f"{satellite_pass.los.time.strftime('%Y-%m-%d %H:%M:%S')}  "
            f"{format_duration(satellite_pass.duration_ms / 1000.0):>8}"
        )


def _fail(message: str, error: Exception) -> None:
    logger.error(f"{message}: {error}")
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set logging level')
@click.option('--log-file', type=click.Path(), help='Log file path')
@click.option('--config', 'config_path', type=click.Path(),
              help='YAML configuration file (default: $PASS_PREDICTOR_CONFIG)')
@click.pass_context
def main(ctx: click.Context, log_level: str, log_file: Optional[str], config_path: Optional[str]) -> None:
    """Satellite Pass Predictor - Predict passes of satellites over ground stations."""
    setup_logging(log_level, log_file)
    try:
        ctx.obj = load_config(config_path)
    except Exception as e:
        _fail("Loading configuration failed", e)


@main.command()
@station_options
@click.option('--start-time', type=str,
              help='Start time (YYYY-MM-DD HH:MM:SS UTC, default: now)')
@click.option('--hours', default=24.0, type=float,
              help='Search duration in hours (default: 24)')
@click.option('--format', 'output_format', default='table',
              type=click.Choice(['table', 'json']),
              help='Output format')
@click.pass_obj
def passes(
    config: AppConfig,
    tle: str,
    satellite: str,
    station: Optional[tuple],
    station_name: Optional[str],
    altitude: float,
    min_elevation: Optional[float],
    reference_time: Optional[str],
    start_time: Optional[str],
    hours: float,
    output_format: str,
) -> None:
    """List every pass of a satellite over a ground station in a time window.

    Example:
    passes --tle stations.tle --satellite "ISS (ZARYA)" --station Tokyo 35.698 139.874 --hours 12
    """
    try:
        start_dt = parse_datetime(start_time) if start_time else get_current_utc()
        reference_dt = parse_datetime(reference_time) if reference_time else start_dt
        observer = _build_observer(config, station, station_name, altitude, min_elevation, reference_dt)

        sat = SatelliteOrbit.from_tle_file(tle, satellite)
        cache = PassCache(sat, observer, config.pass_cache)
        end_dt = start_dt + timedelta(hours=hours)

        if output_format == 'table':
            click.echo(f"Passes of {satellite} over {observer} ({cache.visibility.value})")
        result = cache.passes_in_range(start_dt, end_dt)

        if not result:
            click.echo(f"No passes found for {satellite} over {observer.name} "
                       f"between {start_dt} and {end_dt}")
            return
        _echo_passes(result, output_format)

    except click.UsageError:
        raise
    except Exception as e:
        _fail("Pass prediction failed", e)


@main.command(name='next-pass')
@station_options
@click.option('--after', type=str,
              help='Search from this time (YYYY-MM-DD HH:MM:SS UTC, default: now)')
@click.option('--format', 'output_format', default='table',
              type=click.Choice(['table', 'json']),
              help='Output format')
@click.pass_obj
def next_pass(
    config: AppConfig,
    tle: str,
    satellite: str,
    station: Optional[tuple],
    station_name: Optional[str],
    altitude: float,
    min_elevation: Optional[float],
    reference_time: Optional[str],
    after: Optional[str],
    output_format: str,
) -> None:
    """Find the next pass of a satellite over a ground station."""
    try:
        after_dt = parse_datetime(after) if after else get_current_utc()
        reference_dt = parse_datetime(reference_time) if reference_time else after_dt
        observer = _build_observer(config, station, station_name, altitude, min_elevation, reference_dt)

        sat = SatelliteOrbit.from_tle_file(tle, satellite)
        cache = PassCache(sat, observer, config.pass_cache)
        result = cache.next_pass_after(after_dt)

        if result is None:
            click.echo(f"No upcoming pass of {satellite} over {observer.name} after {after_dt}")
            return
        if output_format == 'json':
            click.echo(json.dumps(result.to_dict(), indent=2))
            return

        click.echo(f"\nNext pass of {satellite} over {observer.name}:")
        if result.is_synthetic:
            click.echo(str(result))
            return
        click.echo(f"AOS:      {result.aos.time.strftime('%Y-%m-%d %H:%M:%S')} UTC")
        click.echo(f"Max Elev: {result.max_el.time.strftime('%Y-%m-%d %H:%M:%S')} UTC "
                   f"({result.max_el.elevation_deg:.1f}°)")
        click.echo(f"LOS:      {result.los.time.strftime('%Y-%m-%d %H:%M:%S')} UTC")
        click.echo(f"Azimuth:  {result.aos.azimuth_deg:.1f}° → {result.max_el.azimuth_deg:.1f}° "
                   f"→ {result.los.azimuth_deg:.1f}°")
        click.echo(f"Duration: {format_duration(result.duration_ms / 1000.0)}")

    except click.UsageError:
        raise
    except Exception as e:
        _fail("Next pass calculation failed", e)


@main.command()
@station_options
@click.option('--station2', nargs=3, type=str, default=None, metavar='NAME LAT LON',
              help='Second ground station: name latitude longitude')
@click.option('--station2-name', type=str,
              help='Second ground station defined in the configuration file')
@click.option('--altitude2', default=0.0, type=float,
              help='Second station altitude in meters (default: 0)')
@click.option('--min-elevation2', type=float,
              help='Second station minimum elevation in degrees')
@click.option('--start-time', type=str,
              help='Start time (YYYY-MM-DD HH:MM:SS UTC, default: now)')
@click.option('--hours', default=24.0, type=float,
              help='Search duration in hours (default: 24)')
@click.option('--format', 'output_format', default='table',
              type=click.Choice(['table', 'json']),
              help='Output format')
@click.pass_obj
def overlap(
    config: AppConfig,
    tle: str,
    satellite: str,
    station: Optional[tuple],
    station_name: Optional[str],
    altitude: float,
    min_elevation: Optional[float],
    reference_time: Optional[str],
    station2: Optional[tuple],
    station2_name: Optional[str],
    altitude2: float,
    min_elevation2: Optional[float],
    start_time: Optional[str],
    hours: float,
    output_format: str,
) -> None:
    """Find windows when two ground stations see a satellite simultaneously."""
    try:
        start_dt = parse_datetime(start_time) if start_time else get_current_utc()
        reference_dt = parse_datetime(reference_time) if reference_time else start_dt
        observer1 = _build_observer(config, station, station_name, altitude, min_elevation, reference_dt)
        observer2 = _build_observer(config, station2, station2_name, altitude2, min_elevation2, reference_dt)

        sat = SatelliteOrbit.from_tle_file(tle, satellite)
        cache = OverlapCache(sat, observer1, observer2, config.pass_cache)
        end_dt = start_dt + timedelta(hours=hours)
        result = cache.overlap_in_range(start_dt, end_dt)

        if not result:
            click.echo(f"No overlapping passes of {satellite} over {observer1.name} "
                       f"and {observer2.name} between {start_dt} and {end_dt}")
            return
        if output_format == 'table':
            click.echo(f"Overlapping passes of {satellite} over {observer1.name} and {observer2.name}")
        _echo_passes(result, output_format)

    except click.UsageError:
        raise
    except Exception as e:
        _fail("Overlap calculation failed", e)


@main.command()
@station_options
@click.option('--time', 'at_time', type=str,
              help='Time to look at (YYYY-MM-DD HH:MM:SS UTC, default: now)')
@click.pass_obj
def look(
    config: AppConfig,
    tle: str,
    satellite: str,
    station: Optional[tuple],
    station_name: Optional[str],
    altitude: float,
    min_elevation: Optional[float],
    reference_time: Optional[str],
    at_time: Optional[str],
) -> None:
    """Show where a satellite is seen from a ground station."""
    try:
        when = parse_datetime(at_time) if at_time else get_current_utc()
        reference_dt = parse_datetime(reference_time) if reference_time else when
        observer = _build_observer(config, station, station_name, altitude, min_elevation, reference_dt)

        sat = SatelliteOrbit.from_tle_file(tle, satellite)
        cache = PassCache(sat, observer, config.pass_cache)
        angles = cache.look_angles(when)

        if angles is None:
            click.echo(f"{satellite} cannot be propagated to {when} (target lost)")
            return
        click.echo(f"{satellite} from {observer.name} at {when} UTC:")
        click.echo(f"Elevation:  {angles.elevation_deg:.2f}°")
        click.echo(f"Azimuth:    {angles.azimuth_deg:.2f}°")
        click.echo(f"Visible:    {'yes' if cache.is_visible(when) else 'no'}")
        click.echo(f"Visibility: {cache.visibility.value}")

    except click.UsageError:
        raise
    except Exception as e:
        _fail("Look angle calculation failed", e)


if __name__ == '__main__':
    main()
