"""CHIP-8 emulator package."""

from chip8vm.state import (
    EmulatorState, create_state, read_pixel, set_key, set_keys,
    consume_redraw, play_sound, rom_overrun,
)
from chip8vm.emulator import execute, fetch, step, tick_timers, run_cycles, load_rom, load_rom_bytes
from chip8vm.decode import DecodedInstruction, decode
from chip8vm.faults import Fault, RomTooLarge
from chip8vm.constants import *
from chip8vm.machine import Chip8
from chip8vm.rendering import frame_rgb, render_ascii

__all__ = [
    "EmulatorState",
    "create_state",
    "read_pixel",
    "set_key",
    "set_keys",
    "consume_redraw",
    "play_sound",
    "rom_overrun",
    "fetch",
    "execute",
    "step",
    "tick_timers",
    "run_cycles",
    "load_rom",
    "load_rom_bytes",
    "DecodedInstruction",
    "decode",
    "Fault",
    "RomTooLarge",
    "Chip8",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "MAX_ROM_SIZE",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
    "NUM_KEYS",
    "frame_rgb",
    "render_ascii",
]
