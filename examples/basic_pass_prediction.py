#!/usr/bin/env python3
"""
Basic Pass Prediction Example

This example walks through the core workflow: TLE → pass cache per ground
station → passes in a window → simultaneous visibility from two stations.
"""

import sys
from pathlib import Path
from datetime import datetime, timedelta

# Add the src directory to the path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pass_predictor import OverlapCache, PassCache, SatelliteOrbit, load_config
from pass_predictor.utils import format_duration, setup_logging

EXAMPLES_DIR = Path(__file__).parent


def print_passes(passes):
    if not passes:
        print("  No passes found")
        return
    for i, satellite_pass in enumerate(passes, 1):
        if satellite_pass.is_synthetic:
            print(f"  {satellite_pass}")
            continue
        print(f"  Pass {i}: {satellite_pass.aos.time.strftime('%m/%d %H:%M:%S')} - "
              f"{satellite_pass.los.time.strftime('%H:%M:%S')} UTC, "
              f"Max Elev: {satellite_pass.max_el.elevation_deg:.1f}°, "
              f"Duration: {format_duration(satellite_pass.duration_ms / 1000.0)}")


def main():
    """Run basic pass prediction example."""

    setup_logging("INFO")

    print("=== Satellite Pass Predictor - Basic Example ===\n")

    # Step 1: Load configuration and stations
    config = load_config(EXAMPLES_DIR / "ground_stations.yaml")
    start_time = datetime(2024, 9, 13, 0, 0, 0)
    end_time = start_time + timedelta(hours=12)
    tokyo = config.station("Tokyo").to_observer(start_time)
    tanegashima = config.station("Tanegashima").to_observer(start_time)
    print(f"Stations: {tokyo}, {tanegashima}\n")

    # Step 2: Passes of every satellite over Tokyo
    for satellite_name in ("ISS (ZARYA)", "HIMAWARI 8", "GOES 17"):
        satellite = SatelliteOrbit.from_tle_file(EXAMPLES_DIR / "sample_satellites.tle", satellite_name)
        cache = PassCache(satellite, tokyo, config.pass_cache)
        print(f"{satellite_name} over {tokyo.name} ({cache.visibility.value}):")
        print_passes(cache.passes_in_range(start_time, end_time))

        # A narrower query is answered from the cache
        print(f"  Next pass after {start_time + timedelta(hours=6)}: "
              f"{cache.next_pass_after(start_time + timedelta(hours=6))}\n")

    # Step 3: Simultaneous ISS visibility from both stations
    iss = SatelliteOrbit.from_tle_file(EXAMPLES_DIR / "sample_satellites.tle", "ISS (ZARYA)")
    overlap = OverlapCache(iss, tokyo, tanegashima, config.pass_cache)
    print(f"ISS seen from {tokyo.name} and {tanegashima.name} at the same time:")
    print_passes(overlap.overlap_in_range(start_time, end_time))


if __name__ == "__main__":
    main()
