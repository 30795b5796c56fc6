# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are the defaults the simulator falls back to when a scenario leaves an
option out, plus the fixed rendering properties of the trajectory viewer.
"""

# --- Particle defaults ---
DEFAULT_PARTICLE_MASS = 100
DEFAULT_PARTICLE_CHARGE = 1
DEFAULT_PARTICLE_POSITION = (0, 0)
# Unit vector along +x.
DEFAULT_PARTICLE_VELOCITY = (1, 0)

# --- Simulator defaults ---
DEFAULT_DELTA_TIME = 0.1
DEFAULT_TIME_FROM = 0
DEFAULT_TIME_TO = 30

# Largest denominator kept when sin/cos results are converted back to exact
# fractions. Bounds denominator growth over long accurate runs.
TRIG_DENOMINATOR_LIMIT = 10**9
# Largest denominator kept for positions and velocities between steps.
# Repeated products otherwise grow denominators without bound.
STATE_DENOMINATOR_LIMIT = 10**18

# Length of the hex ids minted for field areas and particles.
ID_LENGTH = 16

# --- Logging ---
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = "logs/trajectories.log"
DEFAULT_LOG_MAX_BYTES = 1024 * 1024
DEFAULT_LOG_BACKUPS = 5
# Third-party loggers kept at WARNING; numba logs every compilation pass at DEBUG.
QUIET_LOGGERS = ("numba",)
# Per-particle debug lines are emitted every this many steps.
DEFAULT_LOG_THROTTLE_STEPS = 100

# --- Visualization settings ---
DEFAULT_RENDER_WIDTH = 800
DEFAULT_RENDER_HEIGHT = 800
# Minimum window edge in pixels.
MIN_RENDER_SIZE = 20
FPS = 30
BACKGROUND_COLOR = (255, 255, 255)
GRID_COLOR = (221, 221, 221)
GRID_DOT_COLOR = (187, 187, 187)
AXIS_LABEL_COLOR = (90, 90, 90)
# Fraction of the trajectory extent left blank around the plot.
DEFAULT_BLANK_SPACE_RATIO = 0.02
# Approximate number of grid lines along each axis.
GRID_DIVISIONS = 20
TRACK_LINE_WIDTH = 2

# Trajectory colours, cycled per particle.
TRACK_COLORS = [
    (199, 68, 64),    # Red
    (45, 112, 179),   # Blue
    (56, 140, 70),    # Green
    (96, 66, 166),    # Purple
    (250, 126, 25),   # Orange
    (0, 0, 0)         # Black
]
