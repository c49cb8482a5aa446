"""Entry point for ``wirecheck verify``.

    wirecheck verify \
        --provider provider-artifacts/ [--provider more.jsonl ...] \
        --consumer consumer-artifacts/ [--consumer ...] \
        [--config wirecheck.yaml] [--format text|json] [--output report.txt] \
        [--inconsistency fatal|advisory] [--workers N] \
        [--ignore-field NAME ...] [--fail-on-empty] [--mismatches-only] [--quiet]

Exit status: 0 pass (or nothing to check), 1 mismatches, 3 fatal contract
inconsistency, 4 unreadable or malformed artifacts, 5 nothing to check with
``--fail-on-empty``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from wirecheck.config import FORMATS, INCONSISTENCY_MODES, load_config
from wirecheck.errors import ArtifactError, ConfigError
from wirecheck.reporter import render
from wirecheck.runner import EXIT_ARTIFACT_ERROR, VerificationRun, exit_status

logger = logging.getLogger("wirecheck")

EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wirecheck",
        description="Check that consumer collaboration tests agree with provider contract tests",
    )
    sub = p.add_subparsers(dest="command", required=True)

    v = sub.add_parser("verify", help="Match consumer expectations against provider contracts")
    v.add_argument("--provider", action="append", default=[], required=True,
                   help="Provider artifact set: file, directory or URL (repeatable)")
    v.add_argument("--consumer", action="append", default=[], required=True,
                   help="Consumer artifact set: file, directory or URL (repeatable)")
    v.add_argument("--config", default=None, help="YAML config file (default: ./wirecheck.yaml)")
    v.add_argument("--format", choices=FORMATS, default=None)
    v.add_argument("--output", default=None, help="Write the report here instead of stdout")
    v.add_argument("--inconsistency", choices=INCONSISTENCY_MODES, default=None,
                   help="Whether contract inconsistencies abort the run")
    v.add_argument("--workers", type=int, default=None)
    v.add_argument("--ignore-field", action="append", default=None, dest="ignore_fields",
                   help="Field name skipped when comparing values (repeatable)")
    v.add_argument("--fail-on-empty", action="store_true", default=None,
                   help="Exit non-zero when no expectations were recorded")
    v.add_argument("--mismatches-only", action="store_true",
                   help="Leave Corresponds results out of the text report")
    v.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    return p


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "format": args.format,
        "inconsistency": args.inconsistency,
        "workers": args.workers,
        "ignore_fields": args.ignore_fields,
        "fail_on_empty": args.fail_on_empty,
    }
    if args.mismatches_only:
        overrides["show_corresponds"] = False
    return overrides


def run_verify(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config, cli_overrides(args))
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    logger.info(
        "Verifying %d consumer set(s) against %d provider set(s)",
        len(args.consumer),
        len(args.provider),
    )
    try:
        report = VerificationRun(config).execute(args.provider, args.consumer)
    except ArtifactError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ARTIFACT_ERROR

    text = render(report, config.format, show_corresponds=config.show_corresponds)
    if args.output:
        Path(args.output).write_text(text)
        logger.info("Report written to %s", args.output)
    else:
        sys.stdout.write(text)

    status = exit_status(report, fail_on_empty=config.fail_on_empty)
    logger.info("Verdict: %s (exit %d)", report.verdict.value, status)
    return status


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="  %(message)s",
        stream=sys.stderr,
    )
    if args.command == "verify":
        return run_verify(args)
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
