"""Headless demo: list the patterns, or play one through the default output device."""

import argparse
import logging
import time

from audio.player import list_output_devices
from core.engine import EmgSoundEngine
from shared.catalog import PATTERN_CATALOG
from shared.models import PatternId


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play an EMG teaching pattern")
    parser.add_argument(
        "pattern",
        nargs="?",
        default=PatternId.NORMAL.value,
        choices=[pid.value for pid in PatternId],
        help="Pattern to play",
    )
    parser.add_argument("--duration", type=float, default=3.0, help="Playback length in seconds")
    parser.add_argument("--volume", type=float, default=None, help="Linear volume in [0, 1]")
    parser.add_argument("--list", action="store_true", help="Print the pattern catalog and output devices")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def print_catalog() -> None:
    for pid, desc in PATTERN_CATALOG.items():
        print(f"{pid.value:14s} {desc.name:34s} {desc.duration_label:14s} {desc.firing_label}")
    print()
    for dev in list_output_devices(list_all=True):
        print(f"output device: {dev['label']}")


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    if args.list:
        print_catalog()
        return 0

    with EmgSoundEngine.create_default() as engine:
        buffer = engine.generate_pattern(args.pattern, 1000.0, 10.0)
        peak = float(abs(buffer.samples).max()) if len(buffer) else 0.0
        print(f"{args.pattern}: {len(buffer)} samples, peak {peak:.0f} uV")
        print(engine.get_audio_characteristics(args.pattern).sound_description)

        handle = engine.start_pattern(args.pattern, args.duration * 1000.0, args.volume)
        if not handle.is_playing:
            print("No audio output; nothing to play.")
            return 1
        try:
            while handle.is_playing:
                time.sleep(0.05)
        except KeyboardInterrupt:
            handle.stop()
        print(f"Played {handle.events_fired} event(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
