#!/usr/bin/env python3
"""
say_cli.py: speak one piece of text through the single-flight controller.

The CLI stays up until the engine exits, so the watcher can still enforce
the hard timeout. Ctrl+C stops the speech.

Examples:
  ./apps/say_cli.py "**Build** finished"

  # faster
  ./apps/say_cli.py --speed 1.5 "Deploy complete"

  # Linux: espeak takes words-per-minute via -s
  ./apps/say_cli.py --engine espeak --rate-flag -s "hello"

Exit codes: 0 spoken, 1 rejected (busy / engine missing or not executable),
2 bad input (empty text, speed out of range, bad config).

Set SAY_SERIF_DEBUG=1 (or pass --debug) to log to stderr and tmp/boot.log.
"""
from __future__ import annotations

import argparse
import logging
import time

from say_serif.l0_core import Outcome, configure_debug_logging
from say_serif.l3_domain.config import SpeechConfig, load_config
from say_serif.l3_domain.speech_manager import SpeechManager

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_USAGE = 2

# busy and engine errors fall through to EXIT_REJECTED
_EXIT_CODES = {
    Outcome.STARTED: EXIT_OK,
    Outcome.EMPTY_TEXT: EXIT_USAGE,
    Outcome.INVALID_SPEED: EXIT_USAGE,
}

log = logging.getLogger("say_serif.apps.say_cli")


def build_config(args: argparse.Namespace) -> SpeechConfig:
    base = load_config(args.config) if args.config else SpeechConfig()
    return base.with_overrides(engine=args.engine, rate_flag=args.rate_flag)


def wait_for_idle(mgr: SpeechManager, poll: float = 0.1) -> None:
    """Block until the active slot clears; Ctrl+C stops the speech."""
    try:
        while mgr.active() is not None:
            time.sleep(poll)
    except KeyboardInterrupt:
        print(mgr.stop())


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Speak text with a single-flight speech controller")
    ap.add_argument("text", nargs="+", help="Text to speak (Markdown is stripped)")
    ap.add_argument("--speed", type=float, default=None, help="Speed multiplier (0.25..4.0, default 1.0)")
    ap.add_argument("--config", default=None, help="YAML/JSON config file")
    ap.add_argument("--engine", default=None, help="Engine command (default: say)")
    ap.add_argument("--rate-flag", default=None, help="Engine rate flag (default: -r)")
    ap.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = ap.parse_args(argv)

    configure_debug_logging(force=args.debug)

    try:
        cfg = build_config(args)
    except (OSError, ValueError) as exc:
        ap.error(f"bad config: {exc}")

    mgr = SpeechManager(config=cfg)
    result = mgr.request(" ".join(args.text), args.speed)
    print(result.message)
    log.debug("outcome=%s", result.outcome.value)

    if result.outcome is Outcome.STARTED:
        wait_for_idle(mgr)
    mgr.shutdown()
    return _EXIT_CODES.get(result.outcome, EXIT_REJECTED)


if __name__ == "__main__":
    raise SystemExit(main())
