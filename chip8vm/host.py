#!/usr/bin/env python3
"""
Reference pygame host for the CHIP-8 core.

Supplies everything the core leaves to its driver: a window that shows the
display bitmap, the QWERTY to hex keypad mapping, key input for Fx0A waits,
the 60Hz timer tick and the stop on program termination.

    python -m chip8vm.host game.ch8
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import pygame

from .constants import DISPLAY_H, DISPLAY_W, MAX_PROGRAM_SIZE
from .cpu import Chip8CPU, StepResult
from .errors import Chip8Error, ProgramTooLargeError

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# CONSTANTS & CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

SCALE = 12                              # Display scale factor
DEFAULT_CLOCK_HZ = 500                  # Instructions per second
TIMER_HZ = 60                           # Delay/Sound timer rate

COLORS = {
    'bg_dark': (15, 15, 25),
    'fg_green': (0, 255, 128),
}

# Keyboard mapping (QWERTY -> CHIP-8 hex keypad)
# CHIP-8 Keypad:    Keyboard:
# 1 2 3 C          1 2 3 4
# 4 5 6 D          Q W E R
# 7 8 9 E          A S D F
# A 0 B F          Z X C V
KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}

Color = Tuple[int, int, int]


def load_rom(path) -> bytes:
    """Read a ROM image, rejecting files that cannot fit at 0x200"""
    data = Path(path).read_bytes()
    if len(data) > MAX_PROGRAM_SIZE:
        raise ProgramTooLargeError(len(data), MAX_PROGRAM_SIZE)
    return data


def render_display(display: np.ndarray, scale: int = SCALE,
                   fg_color: Color = COLORS['fg_green'],
                   bg_color: Color = COLORS['bg_dark']) -> pygame.Surface:
    """
    Convert the boolean framebuffer to a scaled surface

    Args:
        display: (height, width) boolean array
    """
    on = display.T[:, :, np.newaxis]
    rgb = np.where(on, np.array(fg_color, dtype=np.uint8), np.array(bg_color, dtype=np.uint8))
    surf = pygame.surfarray.make_surface(rgb.astype(np.uint8))
    return pygame.transform.scale(surf, (DISPLAY_W * scale, DISPLAY_H * scale))


class Chip8Host:
    """Drives a Chip8CPU: input, timers, rendering"""

    def __init__(self, cpu: Chip8CPU, clock_hz: int = DEFAULT_CLOCK_HZ,
                 scale: int = SCALE, fg_color: Color = COLORS['fg_green'],
                 screen: Optional[pygame.Surface] = None):
        self.cpu = cpu
        self.scale = scale
        self.fg_color = fg_color
        self.cycles_per_frame = max(1, clock_hz // TIMER_HZ)
        self.screen = screen
        self.running = True
        self.last_key: Optional[int] = None

    def open_window(self):
        pygame.init()
        pygame.display.set_caption("CHIP-8")
        self.screen = pygame.display.set_mode((DISPLAY_W * self.scale, DISPLAY_H * self.scale))

    def handle_event(self, event: pygame.event.Event):
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self.running = False
            elif event.key in KEY_MAP:
                key = KEY_MAP[event.key]
                self.cpu.key_down(key)
                self.last_key = key
        elif event.type == pygame.KEYUP:
            if event.key in KEY_MAP:
                self.cpu.key_up(KEY_MAP[event.key])

    def update(self):
        """Run one frame worth of instructions, then tick timers once"""
        for _ in range(self.cycles_per_frame):
            if self.cpu.waiting_for_key:
                if self.last_key is None:
                    break
                self.cpu.step(self.last_key)
                self.last_key = None
                continue
            if self.cpu.step() is StepResult.TERMINATED:
                logger.info("Program finished")
                self.running = False
                return
        # Presses only satisfy a key wait in the frame they arrive
        self.last_key = None
        self.cpu.tick_timers()

    def render(self):
        if self.screen is None:
            return
        self.screen.blit(render_display(self.cpu.display, self.scale, self.fg_color), (0, 0))
        pygame.display.flip()

    def run(self):
        """Main loop"""
        if self.screen is None:
            self.open_window()
        clock = pygame.time.Clock()
        try:
            while self.running:
                for event in pygame.event.get():
                    self.handle_event(event)
                self.update()
                self.render()
                clock.tick(TIMER_HZ)
        finally:
            pygame.quit()


# ═══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════

def main(argv=None) -> int:
    """Main entry point"""
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s]:  %(message)s")

    if not argv:
        print("usage: python -m chip8vm.host ROM")
        return 2

    print("Controls:")
    print("  CHIP-8 Keypad: 1234 / QWER / ASDF / ZXCV")
    print("  ESC = Exit")
    print()

    try:
        program = load_rom(argv[0])
    except (OSError, ProgramTooLargeError) as e:
        print(f"Failed to load ROM: {e}")
        return 1

    try:
        Chip8Host(Chip8CPU(program)).run()
    except Chip8Error as e:
        logger.error("Machine fault: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
