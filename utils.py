# utils.py
"""
Utility functions for the simulation framework.

This module provides helper functions, such as logging setup and configuration
loading, that are used across different parts of the application but do not
belong to a specific domain like wave physics or rendering.
"""
import logging
import logging.handlers
import json
import math
import os
from typing import Dict, Any

from constants import EVENTS_FILE_NAME, FIXED_DELTA_TIME

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler.
#   - Invariants: After this function runs, the logging system is
#     initialized and ready for use throughout the application.
#
# validate_simulation_params(params: Dict[str, Any]) -> Dict[str, Any]:
#   - Inputs: the "simulation_parameters" section of config.json.
#   - Outputs: a new dictionary with every tunable present.
#   - Raises: ConfigurationError for values outside their domain.
#   - Invariants: the input dictionary is not mutated.

DEFAULT_SIMULATION_PARAMS: Dict[str, Any] = {
    "model": "pool",
    "particle_radius": 1.0,
    "wave_radius": 10.0,
    "plane_size": [100.0, 100.0],
    "pool_capacity": 4096,
    "decay_amplitude": 1e-3,
    "stop_on_subdivision": False,
    "delta_time": FIXED_DELTA_TIME,
    "events_file": EVENTS_FILE_NAME,
}

SIMULATION_MODELS = ("pool", "store")


class ConfigurationError(ValueError):
    """Raised when a tunable is outside the domain the wave model accepts."""


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/simulation.log')

    # Ensure the log directory exists
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates when the log reaches 1MB, keeps 5 backup logs.
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path}")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def _reject(msg: str) -> None:
    logging.critical(msg)
    raise ConfigurationError(msg)

def validate_simulation_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merges the simulation parameters over the defaults and checks every value.

    `wave_radius` is deliberately not compared against `particle_radius`
    here: both are live tunables, and the ring derivation rejects the pair
    when a wave is actually generated.
    """
    merged = dict(DEFAULT_SIMULATION_PARAMS)
    merged.update(params or {})

    if merged['model'] not in SIMULATION_MODELS:
        _reject(
            f"Configuration error: unknown model '{merged['model']}'. "
            f"Expected one of {SIMULATION_MODELS}."
        )

    for key in ('particle_radius', 'wave_radius', 'delta_time'):
        value = merged[key]
        if (not isinstance(value, (int, float)) or isinstance(value, bool)
                or not math.isfinite(value) or value <= 0):
            _reject(f"Configuration error: '{key}' must be a finite positive number, got {value!r}.")
        merged[key] = float(value)

    capacity = merged['pool_capacity']
    if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
        _reject(f"Configuration error: 'pool_capacity' must be a positive integer, got {capacity!r}.")

    decay = merged['decay_amplitude']
    if (not isinstance(decay, (int, float)) or isinstance(decay, bool)
            or not math.isfinite(decay) or decay < 0):
        _reject(f"Configuration error: 'decay_amplitude' must be >= 0, got {decay!r}.")
    merged['decay_amplitude'] = float(decay)

    plane_size = merged['plane_size']
    if (not isinstance(plane_size, (list, tuple)) or len(plane_size) != 2
            or any(not isinstance(v, (int, float)) or not math.isfinite(v) or v <= 0
                   for v in plane_size)):
        _reject(f"Configuration error: 'plane_size' must be two positive extents, got {plane_size!r}.")
    merged['plane_size'] = (float(plane_size[0]), float(plane_size[1]))

    merged['stop_on_subdivision'] = bool(merged['stop_on_subdivision'])

    logging.debug(f"Simulation parameters validated: {merged}")
    return merged
