#!/usr/bin/env python3
"""
Developer Shell for say-serif
-----------------------------
Minimal REPL around one SpeechManager, for poking at busy / dedupe /
stop behaviour by hand.
"""
from __future__ import annotations

import argparse
import shlex
import signal
import sys

from say_serif.l0_core import configure_debug_logging
from say_serif.l3_domain.config import SpeechConfig, load_config
from say_serif.l3_domain.speech_manager import SpeechManager

HELP = """
Commands:
  speak [--speed X] TEXT...  - Start speaking TEXT (Markdown is stripped)
  stop                       - Stop the active speech
  status                     - Show the active speech, if any
  config                     - Show the effective configuration
  help                       - Show this help
  quit                       - Stop speech and exit
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="say-serif Dev Shell")
    parser.add_argument("--config", default=None, help="YAML/JSON config file")
    parser.add_argument("--engine", default=None, help="Engine command (default: say)")
    parser.add_argument("--rate-flag", default=None, help="Engine rate flag (default: -r)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_debug_logging(force=args.debug)
    base = load_config(args.config) if args.config else SpeechConfig()
    mgr = SpeechManager(config=base.with_overrides(engine=args.engine, rate_flag=args.rate_flag))

    def _cleanup(*_: object) -> None:
        mgr.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, _cleanup)
    signal.signal(signal.SIGTERM, _cleanup)

    print("say-serif Dev Shell ready. Type 'help' or 'quit'.")
    run_repl(mgr)
    mgr.shutdown()
    return 0


def run_repl(mgr: SpeechManager) -> None:
    while True:
        try:
            raw = input("say> ")
        except (EOFError, KeyboardInterrupt):
            break
        raw = raw.strip()
        if not raw:
            continue
        try:
            tokens = shlex.split(raw)
        except ValueError as exc:
            print(f"[error] {exc}")
            continue
        if not tokens:
            continue
        if not handle_command(tokens, mgr):
            break


def handle_command(tokens: list[str], mgr: SpeechManager) -> bool:
    cmd = tokens[0].lower()
    args = tokens[1:]
    if cmd in ("quit", "exit"):
        return False
    if cmd in ("help", "?"):
        print(HELP)
        return True
    if cmd == "speak":
        send_speak(mgr, args)
        return True
    if cmd == "stop":
        print(mgr.stop())
        return True
    if cmd == "status":
        print(mgr.status())
        return True
    if cmd == "config":
        print(mgr.config)
        return True
    print(f"[error] unknown command '{cmd}' (try 'help')")
    return True


def send_speak(mgr: SpeechManager, args: list[str]) -> None:
    speed = None
    if len(args) >= 2 and args[0] == "--speed":
        try:
            speed = float(args[1])
        except ValueError:
            print("[error] --speed expects a number")
            return
        args = args[2:]
    if not args:
        print("Usage: speak [--speed X] TEXT...")
        return
    print(mgr.speak(" ".join(args), speed))


if __name__ == "__main__":
    sys.exit(main())
