"""concurrencia CLI: model-check the cable car / village circuit system.

Usage::

    concurrencia safety --villages 2
    concurrencia progress --villages 3 --target depart --target board
    concurrencia safety --villages 2 --max-groups 6 --no-strict
    concurrencia all -v

Exit status:

- 0: every requested check passed
- 1: a safety violation, deadlock or progress witness was found
- 2: configuration or usage error
- 3: the state space exceeded ``--max-states``
"""

from __future__ import annotations

import argparse
import logging
import sys

from concurrencia._trace_format import format_violation, format_witness
from concurrencia.common import ConcurrenciaError, ConfigError, StateExplosion
from concurrencia.model import PROGRESS_TARGETS
from concurrencia.params import MAX_STATES_ENV, VILLAGES, WORKERS_ENV, ModelConfig
from concurrencia.verify import Verifier

EXIT_OK = 0
EXIT_VIOLATION = 1
EXIT_USAGE = 2
EXIT_EXPLOSION = 3

_COMMANDS = ("safety", "progress", "deadlock", "states", "all")


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="concurrencia",
        description="Verify mutual exclusion and progress of the Concurrencia tour-group system.",
        epilog=f"Environment variables: {MAX_STATES_ENV} (state cap), {WORKERS_ENV} (exploration threads).",
    )
    parser.add_argument("command", choices=_COMMANDS, help="check to run")
    parser.add_argument("--villages", type=int, default=VILLAGES, help=f"number of villages (default {VILLAGES})")
    parser.add_argument("--max-groups", type=int, default=None, help="groups allowed at once (default 2*villages+1)")
    parser.add_argument(
        "--no-strict",
        dest="strict",
        action="store_false",
        help="accept --max-groups above capacity (to demonstrate the violation)",
    )
    parser.add_argument("--max-states", type=_positive_int, default=None, help="abort exploration beyond this many states")
    parser.add_argument("--workers", type=_positive_int, default=None, help="threads used to expand each BFS layer")
    parser.add_argument(
        "--target",
        action="append",
        default=None,
        help=f"progress target: one of {', '.join(PROGRESS_TARGETS)} or an action pattern such as "
        "'train[*].dst.enter' (repeatable; default all named targets)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="log progress (-vv for debug)")
    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        return
    level = logging.DEBUG if verbosity > 1 else logging.INFO
    logging.basicConfig(level=level, format="%(name)s: %(message)s", stream=sys.stderr)


def _run(verifier: Verifier, command: str, targets: list[str]) -> int:
    failed = False

    if command == "states":
        print(f"Reachable states: {verifier.state_count()}")
        return EXIT_OK

    if command in ("safety", "all"):
        violations = verifier.verify_safety()
        for violation in violations:
            print(format_violation(violation))
        if violations:
            failed = True
        else:
            print("OK: no safety violations")

    if command in ("deadlock", "all"):
        deadlock = verifier.verify_deadlock()
        if deadlock is not None:
            print(format_violation(deadlock))
            failed = True
        else:
            print("OK: no deadlocks")

    if command in ("progress", "all"):
        for target in targets:
            witness = verifier.verify_progress(target)
            if witness is not None:
                print(format_witness(witness))
                failed = True
            else:
                print(f"OK: progress {target}")

    return EXIT_VIOLATION if failed else EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``concurrencia`` CLI command."""
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return EXIT_OK if e.code == 0 else EXIT_USAGE
    _configure_logging(args.verbose)

    try:
        config = ModelConfig(villages=args.villages, max_groups=args.max_groups, strict=args.strict)
        verifier = Verifier(config, max_states=args.max_states, workers=args.workers)
        return _run(verifier, args.command, args.target or list(PROGRESS_TARGETS))
    except ConfigError as e:
        print(f"concurrencia: configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except StateExplosion as e:
        print(f"concurrencia: {e}", file=sys.stderr)
        return EXIT_EXPLOSION
    except ConcurrenciaError as e:
        print(f"concurrencia: model error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ValueError as e:
        print(f"concurrencia: {e}", file=sys.stderr)
        return EXIT_USAGE
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
