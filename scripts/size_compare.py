#!/usr/bin/env python3
"""Compare the encoded size of a JSON sample across encodings.

Usage:
  python3 scripts/size_compare.py sample.json schema.asn TypeName [--provider library]

Prints one row per encoding, in this order: json, json + gzip -n9, der, per, uper.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

if __package__:
    from .sizes.codecs import (
        ASN1TOOLS_ENV,
        GZIP_ENV,
        PROVIDERS,
        build_provider,
    )
    from .sizes.errors import MissingArgumentError, SizeCompareError
    from .sizes.measure import JSON_SIZE_UNITS, load_sample, measure_all
    from .sizes.report import REPORT_FORMATS, render
else:
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
    from scripts.sizes.codecs import (
        ASN1TOOLS_ENV,
        GZIP_ENV,
        PROVIDERS,
        build_provider,
    )
    from scripts.sizes.errors import MissingArgumentError, SizeCompareError
    from scripts.sizes.measure import JSON_SIZE_UNITS, load_sample, measure_all
    from scripts.sizes.report import REPORT_FORMATS, render

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number of seconds, got {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"timeout must be > 0, got {value}")
    return parsed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Measure a JSON sample as raw JSON, gzip, and ASN.1 DER/PER/UPER."
    )
    # Positionals are optional here so that resolve_arguments() reports them.
    parser.add_argument("path", nargs="?", help="Path to the JSON sample file.")
    parser.add_argument("schema", nargs="?", help="Path to the ASN.1 schema file.")
    parser.add_argument(
        "object_name",
        nargs="?",
        metavar="object",
        help="Name of the top-level ASN.1 type the sample encodes.",
    )
    parser.add_argument(
        "--provider",
        choices=PROVIDERS,
        default="cli",
        help="cli runs the gzip and asn1tools executables; library works in-process.",
    )
    parser.add_argument(
        "--asn1tools",
        default=None,
        help=f"asn1tools executable (default: ${ASN1TOOLS_ENV}, then PATH).",
    )
    parser.add_argument(
        "--gzip",
        default=None,
        help=f"gzip executable (default: ${GZIP_ENV}, then PATH).",
    )
    parser.add_argument(
        "--json-size",
        choices=JSON_SIZE_UNITS,
        default="bytes",
        help="Unit of the json row: file bytes, or line count as older reports used.",
    )
    parser.add_argument("--format", choices=REPORT_FORMATS, default="table")
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Report failing rows as errors instead of aborting the run.",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Seconds to wait for each external tool (default: no limit).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo external commands to stderr.",
    )
    return parser.parse_args(argv)


def resolve_arguments(
    path: str | None, schema: str | None, object_name: str | None
) -> tuple[Path, Path, str]:
    """Bind the three required inputs without touching the filesystem."""
    supplied = (("path", path), ("schema", schema), ("object", object_name))
    missing = [label for label, value in supplied if value is None or not value.strip()]
    if missing:
        raise MissingArgumentError(f"missing required argument(s): {', '.join(missing)}")
    return Path(path), Path(schema), object_name.strip()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        path, schema, object_name = resolve_arguments(args.path, args.schema, args.object_name)
    except MissingArgumentError as exc:
        print(f"size comparison failed: {exc}", file=sys.stderr)
        return EXIT_USAGE

    provider = build_provider(
        args.provider,
        asn1tools_bin=args.asn1tools,
        gzip_bin=args.gzip,
        timeout=args.timeout,
        verbose=args.verbose,
    )
    try:
        sample = load_sample(path)
        results = measure_all(
            sample,
            schema,
            object_name,
            provider,
            json_size_unit=args.json_size,
            keep_going=args.keep_going,
        )
    except SizeCompareError as exc:
        print(f"size comparison failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    sys.stdout.write(render(results, args.format, path, schema, object_name))
    if not all(r.ok for r in results):
        print("[warn] some encodings failed; see error rows", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
