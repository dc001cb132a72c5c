# visualization.py
"""
Handles the visualization of the wave particle simulation using Pygame.

The visualizer is an outside collaborator of the core: it reads render
snapshots and translates mouse and keyboard input into InputEvent values
submitted to the Simulation. It never mutates simulation state directly.
"""
import logging
import pygame
import numpy as np
from constants import (
    BACKGROUND_COLOR, FULLSCREEN, UI_PANEL_WIDTH, PARTICLE_COLOR,
    PLANE_BORDER_COLOR, PARTICLE_HALO_RATIO, UI_BACKGROUND_ALPHA,
    AMPLITUDE_GLOW_MIN_ALPHA, AMPLITUDE_GLOW_MAX_ALPHA
)
from run_state import InputEvent, InputKind
from typing import Tuple, Optional

from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from simulation import Simulation


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, plane_size: Tuple[float, float], sim_params: Optional[dict] = None):
#     - Inputs:
#       - plane_size: world extents (width, height) of the plane, centered
#         on the origin.
#       - sim_params: validated simulation parameters, shown in the UI panel.
#     - Side Effects: Initializes Pygame and creates a display surface.
#
#   - draw(self, simulation: "Simulation") -> bool:
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Renders particles and UI to the screen, submits
#       input events to the simulation.

KEY_BINDINGS = {
    pygame.K_SPACE: InputKind.TOGGLE_RUNNING,
    pygame.K_c: InputKind.CLEAR,
    pygame.K_e: InputKind.CLEAR_EVENTS,
    pygame.K_s: InputKind.SAVE,
    pygame.K_l: InputKind.LOAD,
    pygame.K_r: InputKind.TOGGLE_REPLAY,
    pygame.K_t: InputKind.TOGGLE_STOP_ON_SUBDIVISION,
    pygame.K_d: InputKind.DEBUG,
}

KEY_HELP = [
    ("Space", "Run / Stop"),
    ("Click", "Generate wave"),
    ("C", "Clear particles"),
    ("E", "Clear events"),
    ("S / L", "Save / Load events"),
    ("R", "Replay"),
    ("T", "Stop on subdivision"),
    ("D", "Dump particles"),
]


class Visualizer:
    """
    Renders the wave particle state and provides keyboard/mouse input.
    """
    def __init__(self, plane_size: Tuple[float, float], sim_params: Optional[dict] = None):
        """
        Initializes Pygame and the display window.
        """
        pygame.init()
        pygame.font.init()

        if FULLSCREEN:
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            width, height = 800 + UI_PANEL_WIDTH, 800
            self.screen = pygame.display.set_mode((width, height))

        # The simulation area is the total width minus the UI panel
        self.sim_width = width - UI_PANEL_WIDTH
        self.sim_height = height
        self.sim_surface = pygame.Surface((self.sim_width, self.sim_height))

        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, self.sim_height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, UI_BACKGROUND_ALPHA))

        pygame.display.set_caption("Wave Particles")
        self.clock = pygame.time.Clock()

        # --- World <-> screen mapping ---
        self.plane_size = (float(plane_size[0]), float(plane_size[1]))
        self.scale = min(self.sim_width / self.plane_size[0], self.sim_height / self.plane_size[1])
        self.screen_center = np.array([self.sim_width / 2.0, self.sim_height / 2.0])

        try:
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
            self.font_main_bold = pygame.font.SysFont("Segoe UI", 14, bold=True)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_main = pygame.font.SysFont(None, 18)
            self.font_main_bold = pygame.font.SysFont(None, 18, bold=True)

        self.text_color_key = (200, 200, 200)
        self.text_color_value = (255, 255, 255)
        self.param_box_color = (60, 60, 60, 160)
        self.param_box_spacing = 4

        self.sim_params = sim_params if sim_params is not None else {}
        particle_radius = float(self.sim_params.get('particle_radius', 1.0))
        self.particle_pixel_radius = max(1, int(round(particle_radius * self.scale)))
        self.halo_surface = self._pre_render_halo()

        logging.info(
            f"Visualizer initialized with Pygame display ({width}x{height}), "
            f"{self.scale:.2f} px per world unit."
        )

    def world_to_screen(self, points: np.ndarray) -> np.ndarray:
        """Maps world points onto the simulation surface (y up)."""
        points = np.asarray(points, dtype=np.float64)
        screen = points * self.scale
        screen[..., 1] = -screen[..., 1]
        return screen + self.screen_center

    def screen_to_world(self, pos: Tuple[int, int]) -> Tuple[float, float]:
        x = (pos[0] - self.screen_center[0]) / self.scale
        y = -(pos[1] - self.screen_center[1]) / self.scale
        return (x, y)

    def _pre_render_halo(self) -> pygame.Surface:
        halo_radius = self.particle_pixel_radius * PARTICLE_HALO_RATIO
        diameter = halo_radius * 2
        halo_surf = pygame.Surface((diameter, diameter), pygame.SRCALPHA)
        pygame.draw.circle(halo_surf, pygame.Color(*PARTICLE_COLOR, 255), (halo_radius, halo_radius), halo_radius)
        logging.debug("Pre-rendered particle halo surface.")
        return halo_surf

    def _handle_events(self, simulation: "Simulation") -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    logging.info("ESC key pressed. Shutting down visualizer.")
                    return False
                kind = KEY_BINDINGS.get(event.key)
                if kind is not None:
                    simulation.submit(InputEvent(kind))

            # Generation fires on release, inside the simulation area only.
            if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                if event.pos[0] < self.sim_width:
                    world = self.screen_to_world(event.pos)
                    simulation.submit(InputEvent(InputKind.REQUEST_GENERATE, world))
                    logging.debug(f"Generate requested at world point ({world[0]:.2f}, {world[1]:.2f}).")
        return True

    def _draw_plane_border(self):
        half_w, half_h = self.plane_size[0] / 2.0, self.plane_size[1] / 2.0
        corners = self.world_to_screen(np.array([
            [-half_w, -half_h], [half_w, -half_h], [half_w, half_h], [-half_w, half_h]
        ]))
        pygame.draw.lines(self.sim_surface, PLANE_BORDER_COLOR, True, corners.tolist(), 1)

    def _draw_particles(self, simulation: "Simulation"):
        snapshot = simulation.render_snapshot()
        if snapshot.count == 0:
            return

        screen_positions = self.world_to_screen(snapshot.positions).astype(int)
        halo_radius = self.particle_pixel_radius * PARTICLE_HALO_RATIO
        for pos, amplitude in zip(screen_positions, snapshot.amplitudes):
            # Map amplitude (0..1) onto the alpha range.
            normalized = min(max(float(amplitude), 0.0), 1.0)
            alpha = AMPLITUDE_GLOW_MIN_ALPHA + normalized * (AMPLITUDE_GLOW_MAX_ALPHA - AMPLITUDE_GLOW_MIN_ALPHA)
            self.halo_surface.set_alpha(int(alpha))
            self.sim_surface.blit(self.halo_surface, (pos[0] - halo_radius, pos[1] - halo_radius))
            pygame.draw.circle(self.sim_surface, PARTICLE_COLOR, (int(pos[0]), int(pos[1])),
                               self.particle_pixel_radius)

    def _draw_status_panel(self, simulation: "Simulation"):
        """Renders the run status and tunables in a list of transparent boxes."""
        entries = [(key.replace('_', ' ').title(), value) for key, value in simulation.status().items()]
        entries += [
            (key.replace('_', ' ').title(), value) for key, value in self.sim_params.items()
            if key in ('model', 'particle_radius', 'wave_radius', 'pool_capacity', 'decay_amplitude')
        ]
        entries += KEY_HELP

        box_v_padding = 6
        line_height = self.font_main.get_linesize()
        key_value_gap = 16
        panel_x = self.sim_width + 20
        panel_width = UI_PANEL_WIDTH - 40
        current_y = 20

        key_max_width = (panel_width - key_value_gap) / 2 - box_v_padding
        key_column_right_x = panel_x + box_v_padding + key_max_width
        value_column_left_x = key_column_right_x + key_value_gap

        for key, value in entries:
            display_value = f"{value:.3f}" if isinstance(value, float) else str(value)
            key_surfs = self._render_text_wrapped(key, self.font_main_bold, key_max_width, self.text_color_key)
            value_surfs = self._render_text_wrapped(display_value, self.font_main, key_max_width, self.text_color_value)

            num_lines = max(len(key_surfs), len(value_surfs), 1)
            box_height = num_lines * line_height + box_v_padding * 2
            box_rect = pygame.Rect(panel_x, current_y, panel_width, box_height)
            pygame.draw.rect(self.screen, self.param_box_color, box_rect, border_radius=6)

            line_y = current_y + box_v_padding
            for surf in key_surfs:
                self.screen.blit(surf, surf.get_rect(topright=(key_column_right_x, line_y)))
                line_y += line_height

            line_y = current_y + box_v_padding
            for surf in value_surfs:
                self.screen.blit(surf, surf.get_rect(topleft=(value_column_left_x, line_y)))
                line_y += line_height

            current_y += box_height + self.param_box_spacing

    def _render_text_wrapped(
        self, text: str, font: pygame.font.Font, max_width: float, color: tuple
    ) -> list:
        """
        Renders text, wrapping it to a new line if it exceeds max_width.
        Returns a list of rendered surfaces, one for each line.
        """
        words = text.split(' ')
        lines = []
        current_line = ""

        for word in words:
            test_line = f"{current_line} {word}".strip()
            if font.size(test_line)[0] <= max_width:
                current_line = test_line
            else:
                lines.append(current_line)
                current_line = word

        lines.append(current_line)
        return [font.render(line, True, color) for line in lines if line]

    def draw(self, simulation: "Simulation") -> bool:
        """
        Draws all particles and UI, and handles events.

        Returns:
            bool: False if the simulation should exit, True otherwise.
        """
        if not self._handle_events(simulation):
            return False

        self.sim_surface.fill(BACKGROUND_COLOR)
        self._draw_plane_border()
        self._draw_particles(simulation)

        self.screen.blit(self.sim_surface, (0, 0))
        self.screen.blit(self.ui_panel_surface, (self.sim_width, 0))
        self._draw_status_panel(simulation)

        pygame.display.flip()
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
