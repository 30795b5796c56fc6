# main.py
"""
Main entry point for the charged particle trajectory simulator.

This script orchestrates the entire simulation lifecycle:
1. Loads configuration from `config.json` (or the path given as argument).
2. Initializes the logging system.
3. Builds the simulator from the scenario: field areas and particles.
4. Integrates every trajectory, optionally under the profiler.
5. Shows the trajectories until the window is closed.
"""
import logging
import sys
from utils import setup_logging, load_config, build_simulator
from constants import DEFAULT_BLANK_SPACE_RATIO, DEFAULT_RENDER_HEIGHT, DEFAULT_RENDER_WIDTH
import cProfile
import pstats
import io

def main():
    """
    The main function to run the simulation.
    """
    config_path = sys.argv[1] if len(sys.argv) > 1 else 'config.json'
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"FATAL: Could not load {config_path}. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Charged Particle Simulation Starting ---")

    run_params = config.get('run_control', {})
    vis_params = config.get('visualization', {})

    simulator = build_simulator(config['scenario'])
    simulator.log_throttle_steps = run_params.get('log_throttle_steps', simulator.log_throttle_steps)

    accurate = bool(run_params.get('accurate', False))
    profile = bool(run_params.get('profile', False))

    profiler = cProfile.Profile()
    if profile:
        profiler.enable()
    simulator.start_simulate(accurate=accurate)
    if profile:
        profiler.disable()

        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        # Sort by cumulative time spent in the function
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20) # Print top 20 slowest functions
        logging.info(f"\n{s.getvalue()}")

    for particle in simulator.get_particles():
        box = particle.bounding_box()
        last = particle.trajectory[-1].to_float()
        logging.info(
            f"Particle {particle.id}: {len(particle.trajectory)} points, "
            f"ends at t={last.time:.4f} ({last.position.x:.4f}, {last.position.y:.4f}), "
            f"box left={box.left:.4f} right={box.right:.4f} bottom={box.bottom:.4f} top={box.top:.4f}"
        )

    if vis_params.get('enabled', True):
        # Imported late so a headless run never initializes Pygame.
        from visualization import TrajectoryViewer

        viewer = TrajectoryViewer(
            width=vis_params.get('width', DEFAULT_RENDER_WIDTH),
            height=vis_params.get('height', DEFAULT_RENDER_HEIGHT),
            colors=vis_params.get('particle_colors'),
            blank_space_ratio=vis_params.get('blank_space_ratio', DEFAULT_BLANK_SPACE_RATIO),
        )
        viewer.render(simulator)
        while viewer.draw():
            pass
        viewer.close()

    logging.info("--- Charged Particle Simulation Shutting Down ---")


if __name__ == "__main__":
    main()
