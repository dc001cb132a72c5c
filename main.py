# main.py
"""
Main entry point for the wave particle simulation.

This script orchestrates the entire simulation lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the particle model (unbounded store or fixed pool) and the stepper.
4. Runs the fixed-timestep main loop.
5. Handles clean shutdown.
"""
import logging
from utils import setup_logging, load_config, validate_simulation_params, ConfigurationError
import cProfile
import pstats
import io

def build_model(sim_params):
    """Creates the particle model selected by the "model" parameter."""
    from particle import ParticleStore
    from particle_pool import ParticlePool

    if sim_params['model'] == 'store':
        return ParticleStore(sim_params)
    return ParticlePool(sim_params)

def main():
    """
    The main function to run the simulation.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Wave Particle Simulation Starting ---")

    run_params = config.get('run_control', {})
    try:
        sim_params = validate_simulation_params(config.get('simulation_parameters', {}))
    except ConfigurationError:
        logging.critical("Invalid simulation parameters. Aborting.")
        return

    from simulation import Simulation
    from visualization import Visualizer
    from constants import FPS

    # --- Component Initialization ---
    visualizer = Visualizer(plane_size=sim_params['plane_size'], sim_params=sim_params)
    model = build_model(sim_params)
    sim = Simulation(model, sim_params)

    profiler = cProfile.Profile()

    log_throttle = run_params.get('log_throttle_steps', 100)
    max_steps = run_params.get('max_steps', 0) # 0 runs until the window is closed

    running = True
    step_num = 0

    profiler.enable()
    while running:
        sim.step()
        step_num += 1

        # The visualizer's draw method controls the loop by checking for
        # the QUIT event. Input it receives is queued on the simulation.
        if not visualizer.draw(sim):
            running = False

        # Fixed timestep: one tick per frame.
        visualizer.clock.tick(FPS)

        # Hot loops must throttle logs
        if step_num % log_throttle == 0:
            logging.info(f"Simulation step {step_num} | t={sim.current_time:.2f}")
            logging.debug(f"Step {step_num} | Status: {sim.status()}")

        if max_steps and step_num >= max_steps:
            logging.info(f"Reached max_steps ({max_steps}). Stopping simulation.")
            running = False
    profiler.disable()

    visualizer.close()
    logging.info("Simulation loop finished.")

    # --- Performance Profile Output ---
    logging.info("--- Performance Profile ---")
    s = io.StringIO()
    stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
    stats.print_stats(20)
    logging.info(f"\n{s.getvalue()}")

    logging.info("--- Wave Particle Simulation Shutting Down ---")


if __name__ == "__main__":
    main()
