# visualization.py
"""
Renders simulated trajectories onto a 2D canvas using Pygame.

The viewer fits the bounding boxes of all trajectories into the window,
keeping the aspect ratio and leaving a small blank margin, draws a labelled
grid and one coloured polyline per particle.
"""
import logging
import math
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
import pygame
from numba import jit

from constants import (
    AXIS_LABEL_COLOR, BACKGROUND_COLOR, DEFAULT_BLANK_SPACE_RATIO, DEFAULT_RENDER_HEIGHT,
    DEFAULT_RENDER_WIDTH, FPS, GRID_COLOR, GRID_DIVISIONS, GRID_DOT_COLOR, MIN_RENDER_SIZE,
    TRACK_COLORS, TRACK_LINE_WIDTH
)
from errors import TrajectoryError
from particle import BoundingBox

# Only needed for type hints; the viewer never drives a run itself.
if TYPE_CHECKING:
    from simulation import Simulator


# --- Data Contracts ---
#
# compute_display_range(boxes, width, height, blank_space_ratio) -> Tuple[BoundingBox, float]:
#   - Inputs: one BoundingBox per trajectory, the canvas size in pixels.
#   - Outputs: the world-space box shown on screen and the pixels-per-unit
#     scale. The box is padded by blank_space_ratio and centred so that it
#     fills the canvas at a single scale for both axes.
#
# class TrajectoryViewer:
#   - __init__(self, width: int, height: int, colors: Optional[list] = None, ...):
#     - Errors: ValueError if width or height is not larger than MIN_RENDER_SIZE.
#     - Side Effects: Initializes Pygame and creates a display surface.
#   - render(self, simulator: "Simulator") -> None:
#     - Side Effects: draws grid and trajectories onto the off-screen canvas.
#     - Errors: TrajectoryError if the simulator has not been simulated.
#   - draw(self) -> bool:
#     - Outputs: False if the user has quit, True otherwise.

@jit(nopython=True)
def _project_points_numba(points, left, top, scale):
    """
    Numba-jitted projection of world positions (N, 2) into screen pixels.
    The screen y axis points down, so world y is flipped against `top`.
    """
    count = points.shape[0]
    projected = np.empty((count, 2), dtype=np.float64)
    for i in range(count):
        projected[i, 0] = (points[i, 0] - left) * scale
        projected[i, 1] = (top - points[i, 1]) * scale
    return projected


def project_points(points: np.ndarray, display: BoundingBox, scale: float) -> np.ndarray:
    """Projects an (N, 2) float array of positions into screen coordinates."""
    return _project_points_numba(
        np.ascontiguousarray(points, dtype=np.float64), float(display.left), float(display.top), float(scale)
    )


def grid_interval(span: float, divisions: int = GRID_DIVISIONS) -> float:
    """
    Rounds span / divisions down to its leading digit, e.g. 23.7 -> 20 and
    0.0347 -> 0.03.
    """
    raw = span / divisions
    if raw <= 0 or not math.isfinite(raw):
        return 1.0
    exponent = math.floor(math.log10(raw))
    leading = int(raw / 10 ** exponent)
    # Guard against log10 rounding, e.g. 0.999... for an exact power of ten.
    if leading == 0:
        exponent -= 1
        leading = int(raw / 10 ** exponent)
    return leading * 10.0 ** exponent


def merge_boxes(boxes: Sequence[BoundingBox]) -> BoundingBox:
    """Returns the smallest box enclosing all given boxes."""
    if not boxes:
        raise ValueError("At least one bounding box is required")
    return BoundingBox(
        top=max(box.top for box in boxes),
        bottom=min(box.bottom for box in boxes),
        left=min(box.left for box in boxes),
        right=max(box.right for box in boxes),
    )


def compute_display_range(
    boxes: Sequence[BoundingBox],
    width: int,
    height: int,
    blank_space_ratio: float = DEFAULT_BLANK_SPACE_RATIO,
) -> Tuple[BoundingBox, float]:
    """
    Works out which part of the plane is shown and at what scale.

    Args:
        boxes (Sequence[BoundingBox]): Bounding boxes of the trajectories.
        width (int): Canvas width in pixels.
        height (int): Canvas height in pixels.
        blank_space_ratio (float): Margin added on each side, as a fraction
            of the trajectory extent.

    Returns:
        Tuple[BoundingBox, float]: The visible world box and pixels per unit.
    """
    merged = merge_boxes(boxes)
    span_x = merged.right - merged.left
    span_y = merged.top - merged.bottom
    # A straight line or a single point has no extent along some axis.
    if span_x == 0 and span_y == 0:
        span_x = span_y = 1.0
    elif span_x == 0:
        span_x = span_y
    elif span_y == 0:
        span_y = span_x
    center_x = (merged.left + merged.right) / 2
    center_y = (merged.top + merged.bottom) / 2

    padded_x = span_x * (1 + 2 * blank_space_ratio)
    padded_y = span_y * (1 + 2 * blank_space_ratio)
    scale = min(width / padded_x, height / padded_y)

    half_visible_x = width / scale / 2
    half_visible_y = height / scale / 2
    display = BoundingBox(
        top=center_y + half_visible_y,
        bottom=center_y - half_visible_y,
        left=center_x - half_visible_x,
        right=center_x + half_visible_x,
    )
    return display, scale


class TrajectoryViewer:
    """
    Draws the trajectories of a finished simulation in a Pygame window.
    """
    def __init__(
        self,
        width: int = DEFAULT_RENDER_WIDTH,
        height: int = DEFAULT_RENDER_HEIGHT,
        colors: Optional[list] = None,
        blank_space_ratio: float = DEFAULT_BLANK_SPACE_RATIO,
    ):
        """
        Initializes Pygame and the display window.
        """
        if width <= MIN_RENDER_SIZE:
            raise ValueError(f"Render width too small, should be larger than {MIN_RENDER_SIZE}px")
        if height <= MIN_RENDER_SIZE:
            raise ValueError(f"Render height too small, should be larger than {MIN_RENDER_SIZE}px")

        pygame.init()
        pygame.font.init()
        self.width = width
        self.height = height
        self.blank_space_ratio = blank_space_ratio
        self.screen = pygame.display.set_mode((width, height))
        # Trajectories are drawn once onto this surface and blitted every frame.
        self.canvas = pygame.Surface((width, height))
        self.canvas.fill(BACKGROUND_COLOR)
        pygame.display.set_caption("Charged Particle Trajectories")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont(None, 14)
        self.config_colors = colors

        logging.info(f"TrajectoryViewer initialized with Pygame display ({width}x{height}).")

    def _initialize_colors(self, particle_count: int) -> List[pygame.Color]:
        """Loads track colors from config, falling back to the default palette."""
        def get_default_colors(n):
            return [pygame.Color(TRACK_COLORS[i % len(TRACK_COLORS)]) for i in range(n)]

        if not self.config_colors:
            return get_default_colors(particle_count)

        final_colors = []
        try:
            for rgb in self.config_colors:
                final_colors.append(pygame.Color(rgb))
        except (ValueError, TypeError) as e:
            logging.error(f"Could not parse colors from config due to invalid format: {e}. Falling back to default palette.")
            return get_default_colors(particle_count)

        if len(final_colors) < particle_count:
            logging.warning(
                f"Config provides {len(final_colors)} colors, but {particle_count} are needed. "
                "Filling the rest from the default palette."
            )
            final_colors.extend(get_default_colors(particle_count)[len(final_colors):])
        return final_colors[:particle_count]

    def _draw_grid(self, display: BoundingBox, scale: float):
        """Draws grid lines, their labels and a dot at every intersection."""
        interval_x = grid_interval(display.right - display.left)
        interval_y = grid_interval(display.top - display.bottom)
        start_x = math.floor(display.left / interval_x) * interval_x
        start_y = math.floor(display.bottom / interval_y) * interval_y

        xs = np.arange(start_x, display.right + interval_x / 2, interval_x)
        ys = np.arange(start_y, display.top + interval_y / 2, interval_y)

        for x in xs:
            px = (x - display.left) * scale
            pygame.draw.line(self.canvas, GRID_COLOR, (px, 0), (px, self.height))
            label = self.font.render(f"{x:g}", True, AXIS_LABEL_COLOR)
            self.canvas.blit(label, (px + 2, self.height - label.get_height() - 2))
        for y in ys:
            py = (display.top - y) * scale
            pygame.draw.line(self.canvas, GRID_COLOR, (0, py), (self.width, py))
            label = self.font.render(f"{y:g}", True, AXIS_LABEL_COLOR)
            self.canvas.blit(label, (2, py + 2))
        for x in xs:
            for y in ys:
                center = ((x - display.left) * scale, (display.top - y) * scale)
                pygame.draw.circle(self.canvas, GRID_DOT_COLOR, center, 1)

    def render(self, simulator: "Simulator"):
        """Draws the grid and every particle's trajectory onto the canvas."""
        if not simulator.get_is_simulated():
            raise TrajectoryError("simulator has not been simulated, please simulate it first")

        snapshots = simulator.get_particles()
        particles = [p for p in snapshots if p.trajectory]
        skipped = len(snapshots) - len(particles)
        if skipped:
            logging.warning(f"{skipped} particles have no trajectory and are not drawn.")

        self.canvas.fill(BACKGROUND_COLOR)
        if not particles:
            return

        display, scale = compute_display_range(
            [p.bounding_box() for p in particles], self.width, self.height, self.blank_space_ratio
        )
        logging.debug(f"Display range {display} at scale {scale:.4f} px/unit.")
        self._draw_grid(display, scale)

        colors = self._initialize_colors(len(particles))
        for color, particle in zip(colors, particles):
            projected = project_points(particle.trajectory_array(), display, scale)
            if len(projected) == 1:
                pygame.draw.circle(self.canvas, color, tuple(projected[0]), TRACK_LINE_WIDTH)
            else:
                pygame.draw.lines(self.canvas, color, False, projected.tolist(), TRACK_LINE_WIDTH)

    def draw(self) -> bool:
        """
        Shows the rendered canvas and handles events.

        Returns:
            bool: False if the viewer should close, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down viewer.")
                return False
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                logging.info("ESC key pressed. Shutting down viewer.")
                return False

        self.screen.blit(self.canvas, (0, 0))
        pygame.display.flip()
        self.clock.tick(FPS)
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
