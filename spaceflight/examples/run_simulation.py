#!/usr/bin/env python3
"""
Spaceflight Simulation Example
==============================

Example script demonstrating the propagation engine.
"""

import time

import numpy as np

from spaceflight.core.config import SimulationConfig
from spaceflight.core.simulator import Simulator, VehicleCommand
from spaceflight.parts.staging import StagingEngine
from spaceflight.scenarios.lunar_transfer import LunarTransferConfig, LunarTransferScenario
from spaceflight.scenarios.staging_ascent import StagingAscentConfig, StagingAscentScenario
from spaceflight.scenarios.vehicles import circular_orbit_state, two_stage_blueprint
from spaceflight.scenarios.warp_coast import WarpCoastConfig, WarpCoastScenario


def run_quick_simulation():
    """Run a short two-vehicle coast in low orbit."""
    print("=" * 60)
    print("Spaceflight Quick Simulation")
    print("=" * 60)

    config = SimulationConfig(
        duration_seconds=600,  # 10 minutes
        time_step_seconds=1.0,
        verbose=False,
    )

    sim = Simulator(config=config)
    earth = sim.registry.get('earth')

    # Two vehicles 50 km apart in altitude
    for vehicle_id, altitude in (('alpha', 300e3), ('bravo', 350e3)):
        position, velocity = circular_orbit_state(earth, altitude)
        sim.create_vehicle(vehicle_id, two_stage_blueprint(), 'earth', position, velocity)

    print(f"\nSimulation Configuration:")
    print(f"  Duration: {config.duration_seconds} s")
    print(f"  Time step: {config.time_step_seconds} s")
    print(f"  Vehicles: {', '.join(sim.vehicles)}")
    print(f"  Workers: {config.max_workers}")

    print("\nRunning simulation...")
    start_time = time.time()

    def progress(p):
        if p > 0:
            print(f"  Progress: {p*100:.0f}%", end='\r')

    history = sim.run(progress_callback=progress)

    elapsed = time.time() - start_time
    print(f"\nSimulation complete in {elapsed:.2f}s")
    print(f"  Simulated {sim.step_count} steps")
    print(f"  Real-time factor: {config.duration_seconds / elapsed:.1f}x")

    print(f"\nFinal State:")
    for vehicle_id, samples in history.items():
        final = samples[-1]
        print(f"  {vehicle_id}: t={final.time_s:.1f} s, "
              f"altitude={(final.radius_m - earth.radius_m)/1000:.1f} km, "
              f"speed={np.linalg.norm(final.velocity):.1f} m/s, "
              f"mode={final.mode}")
    sim.close()


def run_staging_scenario():
    """Run the staged burn scenario."""
    print("\n" + "=" * 60)
    print("Staging Scenario")
    print("=" * 60)

    scenario = StagingAscentScenario(StagingAscentConfig(duration_s=20.0))
    scenario.run()

    print(scenario.get_summary())
    for event in scenario.staging_log:
        print(f"  Stage {event['from_stage']} -> {event['to_stage']} at "
              f"t={event['time_s']:.2f} s, dropped {', '.join(event['detached'])}")


def run_warp_scenario():
    """Run the time-warp coast scenario."""
    print("\n" + "=" * 60)
    print("Warp Coast Scenario")
    print("=" * 60)

    scenario = WarpCoastScenario(WarpCoastConfig(warp_factor=100.0))
    scenario.run()

    print(scenario.get_summary())


def run_transfer_scenario():
    """Run the lunar transfer scenario."""
    print("\n" + "=" * 60)
    print("Lunar Transfer Scenario")
    print("=" * 60)

    scenario = LunarTransferScenario(LunarTransferConfig())
    scenario.run()

    print(scenario.get_summary())


def demonstrate_staging_sequence():
    """Step a blueprint through every stage by hand."""
    print("\n" + "=" * 60)
    print("Manual Staging Sequence")
    print("=" * 60)

    graph = two_stage_blueprint().build_graph()
    engine = StagingEngine(graph, auto_stage=False)

    print(f"\n{'Stage':>6} {'Mass':>10} {'Thrust':>12} {'Fuel':>8} {'Parts':>6}")
    print("-" * 46)
    while True:
        agg = graph.aggregate()
        print(f"{engine.current_stage:>6} {agg.mass_kg:>8.1f} kg {agg.thrust_n:>10.1f} N "
              f"{agg.fuel_kg:>6.1f} {len(graph):>6}")
        if engine.is_terminal:
            break
        engine.advance_stage()


def demonstrate_warp_refusal():
    """Show the warp safety reasons for a thrusting vehicle."""
    print("\n" + "=" * 60)
    print("Warp Safety Check")
    print("=" * 60)

    sim = Simulator(config=SimulationConfig(verbose=False, max_workers=1))
    earth = sim.registry.get('earth')
    position, velocity = circular_orbit_state(earth, 250e3)
    sim.create_vehicle('probe', two_stage_blueprint(), 'earth', position, velocity)

    for throttle in (1.0, 0.0):
        result = sim.step(commands={'probe': VehicleCommand(throttle=throttle, warp_request=1000.0)})
        if result.ok:
            print(f"  Throttle {throttle:.0f}: warp {result.warp_factor:g}x granted")
        else:
            for error in result.errors:
                print(f"  Throttle {throttle:.0f}: refused ({error.error_code}) {error}")
        # back to real time for the next request
        sim.warp.drop_to_realtime("demo")
    sim.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Spaceflight Simulation Examples")
    parser.add_argument('--all', action='store_true', help='Run all examples')
    parser.add_argument('--quick', action='store_true', help='Run quick simulation')
    parser.add_argument('--staging', action='store_true', help='Run staging scenario')
    parser.add_argument('--warp', action='store_true', help='Run warp coast scenario')
    parser.add_argument('--transfer', action='store_true', help='Run lunar transfer scenario')
    parser.add_argument('--sequence', action='store_true', help='Manual staging sequence')
    parser.add_argument('--safety', action='store_true', help='Warp safety check')

    args = parser.parse_args()

    # Default to quick if no args
    if not any(vars(args).values()):
        args.quick = True

    if args.all or args.quick:
        run_quick_simulation()

    if args.all or args.staging:
        run_staging_scenario()

    if args.all or args.warp:
        run_warp_scenario()

    if args.all or args.transfer:
        run_transfer_scenario()

    if args.all or args.sequence:
        demonstrate_staging_sequence()

    if args.all or args.safety:
        demonstrate_warp_refusal()

    print("\n" + "=" * 60)
    print("Examples complete!")
    print("=" * 60)
