# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are fundamental to the application's framework, such as rendering
properties, default window sizes, or the fixed simulation timestep that are
not part of the experimental configuration.
"""

# Visualization settings
# Set to True to run in borderless fullscreen mode.
# Set to False to run in a fixed-size window (1100x800).
FULLSCREEN = False
UI_PANEL_WIDTH = 300
FPS = 60
BACKGROUND_COLOR = (24, 24, 24) # Dark Gray
PARTICLE_COLOR = (0, 255, 255)  # Cyan
BIRTH_MARKER_COLOR = (255, 0, 102) # Hot Pink
PLANE_BORDER_COLOR = (0, 255, 102) # Bright Green

# --- Amplitude Glow Effect ---
# Ratio of the halo size to the particle radius.
PARTICLE_HALO_RATIO = 2
# The minimum alpha for a halo (for fully decayed particles).
AMPLITUDE_GLOW_MIN_ALPHA = 15
# The maximum alpha for a halo (for particles at amplitude 1).
AMPLITUDE_GLOW_MAX_ALPHA = 160
# Alpha for the UI panel background
UI_BACKGROUND_ALPHA = 100

# --- Simulation Framework ---
# Fixed timestep used when the config does not provide one (seconds).
FIXED_DELTA_TIME = 0.02
# Amplitude every ring particle is born with.
RING_AMPLITUDE = 1.0
# Amplitude and dispersion angle are divided by this on every subdivision.
SUBDIVISION_FACTOR = 3.0
# Default location of the persisted event log.
EVENTS_FILE_NAME = "events.bin"
