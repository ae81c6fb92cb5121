"""CLI entry point for the code reconciler."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from code_reconciler.config import ReconcilerSettings
from code_reconciler.extraction import (
    ExtractionError,
    ModelReextractor,
    StructuredExtractor,
    extract_with_fallback,
)
from code_reconciler.matching import PatchMatcher, apply_match
from code_reconciler.models import (
    ExtractionFailure,
    FileOperation,
    MatchNotFound,
    ReconciliationResult,
    StrategyMetrics,
)

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_EXTRACTION_FAILED = 2
EXIT_PATCH_NOT_FOUND = 3
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

STDIN_MARKER = "-"

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "response", "repo", "verbose", "dry_run", "output_json", "fallback", "settings",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="code-reconciler",
        description="Recover structured file edits from model output and check them against a repo",
    )
    parser.add_argument(
        "response",
        type=str,
        help=f"Path to a file holding the model response, or '{STDIN_MARKER}' for stdin",
    )
    parser.add_argument(
        "--repo",
        type=str,
        default="",
        help="Repository root to match patch edits against (never written to)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    parser.add_argument(
        "--fallback",
        action="store_true",
        help="Ask the model to re-emit the JSON when local extraction fails",
    )
    return parser


def validate_repo_path(raw_path: str) -> str:
    """Validate and resolve the repository path.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def read_response(source: str) -> Any:
    """Read the response from a file or stdin.

    JSON documents are decoded so envelope objects reach the extractor as
    objects; anything else is passed through as text.

    Raises:
        SystemExit: If the file cannot be read.
    """
    if source == STDIN_MARKER:
        text = sys.stdin.read()
    else:
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Error: cannot read '{source}': {exc}", file=sys.stderr)
            raise SystemExit(EXIT_INVALID_INPUT)
    try:
        return json.loads(text)
    except ValueError:
        return text


def check_patches(
    result: ReconciliationResult,
    repo_path: str,
    matcher: PatchMatcher,
) -> list[dict[str, Any]]:
    """Match every patch edit against the repo's current files, in memory only.

    Patches for one file are matched in order, each against the text left by
    the previous one, exactly as they would be applied.
    """
    reports: list[dict[str, Any]] = []
    root = Path(repo_path)
    for edit in result.files:
        if edit.operation != FileOperation.PATCH:
            continue
        target = root / edit.path
        if not target.is_file():
            reports.append({
                "path": edit.path,
                "patch": 0,
                "matched": False,
                "reason": "file does not exist",
            })
            continue
        try:
            text = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            reports.append({
                "path": edit.path,
                "patch": 0,
                "matched": False,
                "reason": f"cannot read file: {exc}",
            })
            continue
        for index, patch in enumerate(edit.patches or [], 1):
            outcome = matcher.match(text, patch)
            if isinstance(outcome, MatchNotFound):
                reports.append({
                    "path": edit.path,
                    "patch": index,
                    "matched": False,
                    "kind": outcome.kind.value,
                    "best_score": outcome.best_score,
                    "reason": outcome.reason,
                })
                # Later patches depend on this one
                break
            reports.append({
                "path": edit.path,
                "patch": index,
                "matched": True,
                "strategy": outcome.strategy.value,
                "similarity": round(outcome.similarity, 3),
                "lines": [outcome.matched_start + 1, outcome.matched_end],
            })
            text = apply_match(text, outcome, patch.replace)
    return reports


def format_result_json(payload: dict) -> str:
    """Serialize payload to JSON, dumping pydantic values."""

    def _serialize(obj):
        if obj is None:
            return None
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return obj

    prepared = {k: _serialize(v) for k, v in payload.items()}
    return json.dumps(prepared, indent=2, default=str)


def print_result_human(payload: dict) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("Code Reconciler Results")
    print(f"{'='*60}")

    outcome = payload["outcome"]
    if isinstance(outcome, ExtractionFailure):
        print(f"\nExtraction failed ({outcome.kind.value}): {outcome.message}")
        print(f"Attempted strategies: {', '.join(outcome.attempted_strategies)}")
        print(f"Sample: {outcome.sample[:200]!r}")
    else:
        print(f"\nSummary: {outcome.summary}")
        print(f"File edits: {len(outcome.files)}")
        for edit in outcome.files:
            print(f"  {edit.operation.value:<7} {edit.path}")

    patches = payload.get("patches") or []
    if patches:
        print(f"\nPatch checks ({len(patches)}):")
        for report in patches:
            if report["matched"]:
                print(
                    f"  ok   {report['path']} #{report['patch']} "
                    f"({report['strategy']}, similarity {report['similarity']})"
                )
            else:
                print(f"  MISS {report['path']} #{report['patch']}: {report['reason']}")

    print(f"\n{payload['metrics']}")
    print(f"{'='*60}")


def determine_exit_code(payload: dict) -> int:
    """Determine the exit code from the result payload."""
    if isinstance(payload["outcome"], ExtractionFailure):
        return EXIT_EXTRACTION_FAILED
    if any(not report["matched"] for report in payload.get("patches") or []):
        return EXIT_PATCH_NOT_FOUND
    return EXIT_SUCCESS


def print_config_human(config: dict) -> None:
    """Print configuration in human-readable format.

    Only prints keys in the safe allowlist to prevent secret leakage.
    """
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    repo_path = ""
    if args.repo:
        try:
            repo_path = validate_repo_path(args.repo)
        except SystemExit as exc:
            return exc.code

    try:
        settings = ReconcilerSettings.from_env()
    except ValueError as exc:
        return _handle_error("Invalid configuration", exc, args.verbose, EXIT_INVALID_INPUT)

    config = {
        "response": args.response,
        "repo": repo_path,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
        "fallback": args.fallback,
        "settings": settings.model_dump(),
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps(config, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    try:
        response = read_response(args.response)
    except SystemExit as exc:
        return exc.code

    try:
        extractor = StructuredExtractor(settings)
        metrics = StrategyMetrics()
        if args.fallback:
            outcome = extract_with_fallback(
                response, ModelReextractor(settings), extractor, metrics
            )
        else:
            outcome = extractor.extract(response, metrics)

        patches: list[dict[str, Any]] = []
        if repo_path and isinstance(outcome, ReconciliationResult):
            patches = check_patches(outcome, repo_path, PatchMatcher(settings))

        payload = {
            "outcome": outcome,
            "patches": patches,
            "metrics": metrics.summary(),
        }
        if args.output_json:
            print(format_result_json(payload))
        else:
            print_result_human(payload)
        return determine_exit_code(payload)

    except ExtractionError as exc:
        return _handle_error("Extraction error", exc, args.verbose, EXIT_EXTRACTION_FAILED)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)
