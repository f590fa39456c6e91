"""
CHIP-8 emulator command line entry point.
"""

import argparse
import sys

from chip8vm.logging import set_log_level


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a CHIP-8 ROM.",
        epilog="Timers tick once per executed instruction, so their speed is IPF x FPS ticks per second.",
    )
    parser.add_argument("rom", help="path to the ROM file")
    parser.add_argument("--scale", type=int, default=12, help="window pixels per CHIP-8 pixel")
    parser.add_argument("--ipf", type=int, default=10, help="instructions per frame")
    parser.add_argument("--fps", type=int, default=60, help="frames per second")
    parser.add_argument("--seed", type=int, default=0, help="seed for the RND instruction")
    parser.add_argument("--beep-hz", type=float, default=440.0, help="tone frequency")
    parser.add_argument("--headless", action="store_true", help="run without a window and print the screen")
    parser.add_argument("--cycles", type=int, default=1000, help="cycles to run in headless mode")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    set_log_level(args.log_level)

    # pygame is only needed once arguments are valid
    from chip8vm.host import HostConfig, run_emulator, run_headless

    config = HostConfig(
        rom_path=args.rom,
        scale=args.scale,
        ipf=args.ipf,
        fps=args.fps,
        seed=args.seed,
        beep_hz=args.beep_hz,
        headless=args.headless,
        cycles=args.cycles,
    )
    if config.headless:
        return run_headless(config)
    return run_emulator(config)


if __name__ == "__main__":
    sys.exit(main())
