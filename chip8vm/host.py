"""pygame host and headless runner for the CHIP-8 interpreter.

The engine ticks its timers once per executed cycle, so the effective timer
rate is ``ipf * fps`` ticks per second rather than a fixed 60 Hz. The defaults
keep the reference behaviour; lower ``ipf`` to slow timers down.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pygame
from tqdm import tqdm

from chip8vm.constants import SCREEN_HEIGHT, SCREEN_WIDTH
from chip8vm.logging import get_logger
from chip8vm.machine import Chip8
from chip8vm.rendering import frame_rgb, render_ascii

logger = get_logger("chip8vm.host")

# Host key for CHIP-8 keys 0x0..0xF, in order
KEYPAD_KEYS = [
    pygame.K_1, pygame.K_2, pygame.K_3, pygame.K_4,
    pygame.K_q, pygame.K_w, pygame.K_e, pygame.K_r,
    pygame.K_a, pygame.K_s, pygame.K_d, pygame.K_f,
    pygame.K_z, pygame.K_x, pygame.K_c, pygame.K_v,
]

START_LEGEND = [
    "Press SPACE to start",
    "Press ESC to exit",
    "",
    "1 2 3 4    ->  0 1 2 3",
    "Q W E R    ->  4 5 6 7",
    "A S D F    ->  8 9 A B",
    "Z X C V    ->  C D E F",
    "",
    "P = pause, F5 = reset",
]

SAMPLE_RATE = 44100


@dataclass(frozen=True)
class HostConfig:
    """Settings for one emulator run."""
    rom_path: str
    scale: int = 12
    ipf: int = 10
    fps: int = 60
    seed: int = 0
    beep_hz: float = 440.0
    volume: float = 0.2
    headless: bool = False
    cycles: int = 1000


def load_machine(config: HostConfig) -> Optional[Chip8]:
    """Fresh machine with the configured ROM, or None if the ROM cannot be loaded."""
    chip8 = Chip8(seed=config.seed)
    try:
        chip8.load_rom(config.rom_path)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot load ROM {config.rom_path}: {e}")
        return None
    return chip8


def make_beep(frequency: float, volume: float) -> pygame.mixer.Sound:
    """One second of square wave, looped while the sound timer runs."""
    t = np.arange(SAMPLE_RATE) / SAMPLE_RATE
    wave = np.where(np.sin(2 * np.pi * frequency * t) >= 0, 1.0, -1.0)
    samples = (wave * volume * 32767).astype(np.int16)
    return pygame.sndarray.make_sound(samples)


def _init_audio(config: HostConfig):
    try:
        pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
    except pygame.error as e:
        logger.warning(f"Audio disabled: {e}")
        return None
    return make_beep(config.beep_hz, config.volume)


def _draw(screen: pygame.Surface, chip8: Chip8, config: HostConfig):
    frame = frame_rgb(chip8.display, config.scale)
    # surfarray expects (width, height, 3)
    surface = pygame.surfarray.make_surface(frame.swapaxes(0, 1))
    screen.blit(surface, (0, 0))
    pygame.display.flip()


def _draw_start_screen(screen: pygame.Surface, font: pygame.font.Font):
    screen.fill((0, 0, 0))
    line_height = font.get_height()
    top = (screen.get_height() - len(START_LEGEND) * line_height) // 2
    for i, line in enumerate(START_LEGEND):
        text = font.render(line, True, (255, 255, 255))
        screen.blit(text, ((screen.get_width() - text.get_width()) // 2, top + i * line_height))
    pygame.display.flip()


def _wait_for_start(screen: pygame.Surface, clock: pygame.time.Clock, fps: int) -> bool:
    """Show the legend until SPACE (True) or ESC / window close (False)."""
    font = pygame.font.Font(None, max(16, screen.get_height() // 16))
    _draw_start_screen(screen, font)
    while True:
        clock.tick(fps)
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return False
                if event.key == pygame.K_SPACE:
                    return True


def run_emulator(config: HostConfig) -> int:
    """Open a window and run the ROM until quit or until it runs off its end."""
    chip8 = load_machine(config)
    if chip8 is None:
        return 1

    pygame.init()
    screen = pygame.display.set_mode((SCREEN_WIDTH * config.scale, SCREEN_HEIGHT * config.scale))
    pygame.display.set_caption(f"CHIP-8 - {config.rom_path}")
    clock = pygame.time.Clock()

    if not _wait_for_start(screen, clock, config.fps):
        pygame.quit()
        return 0

    beep = _init_audio(config)
    beeping = False

    running = True
    paused = False
    _draw(screen, chip8, config)

    while running:
        clock.tick(config.fps)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_p:
                    paused = not paused
                    logger.info("Paused" if paused else "Resumed")
                elif event.key == pygame.K_F5:
                    reloaded = load_machine(config)
                    if reloaded is not None:
                        chip8 = reloaded
                        _draw(screen, chip8, config)
                        logger.info("Reset")

        if paused:
            continue

        pressed = pygame.key.get_pressed()
        chip8.set_keys([pressed[key] for key in KEYPAD_KEYS])

        for _ in range(config.ipf):
            chip8.cycle()
            if chip8.rom_overrun:
                logger.info("Program counter left the loaded ROM, stopping.")
                running = False
                break

        if chip8.consume_redraw():
            _draw(screen, chip8, config)

        if beep is not None:
            if chip8.play_sound and not beeping:
                beep.play(loops=-1)
                beeping = True
            elif not chip8.play_sound and beeping:
                beep.stop()
                beeping = False

    pygame.quit()
    return 0


def run_headless(config: HostConfig) -> int:
    """Run a fixed number of cycles without a window and print the screen."""
    chip8 = load_machine(config)
    if chip8 is None:
        return 1

    executed = 0
    for _ in tqdm(range(config.cycles), desc="cycles", unit="cyc"):
        chip8.cycle()
        executed += 1
        if chip8.rom_overrun:
            logger.info("Program counter left the loaded ROM, stopping.")
            break

    logger.info(f"Executed {executed} cycles, PC: 0x{int(chip8.state.pc):03X}")
    print("\n--- CHIP-8 SCREEN ---")
    print(render_ascii(chip8.display))
    print("---------------------")
    return 0
