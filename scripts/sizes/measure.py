#!/usr/bin/env python3
"""Size measurements for one JSON sample.

Each measurement returns an `EncodingResult`; `measure_all()` produces the
five rows in report order: json, json + gzip -n9, der, per, uper.
"""

from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if __package__:
    from .codecs import CodecProvider
    from .errors import ExternalToolError, InputFileError, InvalidInputFormatError, SizeCompareError
else:
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))
    from scripts.sizes.codecs import CodecProvider
    from scripts.sizes.errors import (
        ExternalToolError,
        InputFileError,
        InvalidInputFormatError,
        SizeCompareError,
    )

JSON_LABEL = "json"
GZIP_LABEL = "json + gzip -n9"
SOURCE_RULE = "jer"
ASN1_RULES = ("der", "per", "uper")
JSON_SIZE_UNITS = ("bytes", "lines")

HEX_RE = re.compile(r"[0-9A-Fa-f]*")


@dataclass(frozen=True)
class EncodingResult:
    encoding: str
    size: int | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Sample:
    path: Path
    raw: bytes
    value: Any
    compact: bytes


def reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON")


def load_sample(path: Path) -> Sample:
    """Read the sample once, parse it as strict JSON, and compact it."""
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise InputFileError(f"sample file not found: {path}") from exc
    except OSError as exc:
        raise InputFileError(f"could not read sample file {path}: {exc}") from exc
    try:
        value = json.loads(raw, parse_constant=reject_constant)
        compact = compact_json(value)
    except (ValueError, UnicodeError) as exc:
        raise InvalidInputFormatError(f"invalid json in sample file {path}: {exc}") from exc
    return Sample(path=path, raw=raw, value=value, compact=compact)


def compact_json(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def to_hex(data: bytes) -> str:
    return data.hex().upper()


def from_hex(text: str) -> bytes:
    return bytes.fromhex(text)


def hex_byte_count(hex_text: str, label: str) -> int:
    if len(hex_text) % 2 != 0 or not HEX_RE.fullmatch(hex_text):
        raise ExternalToolError(f"{label}: transcoder returned malformed hex output {hex_text[:64]!r}")
    return len(hex_text) // 2


def count_lines(raw: bytes) -> int:
    # Only "\n" ends a line; other Unicode separators may sit inside strings.
    return raw.count(b"\n") + (1 if raw and not raw.endswith(b"\n") else 0)


def measure_plain(sample: Sample, unit: str = "bytes") -> EncodingResult:
    if unit == "bytes":
        return EncodingResult(JSON_LABEL, len(sample.raw))
    if unit == "lines":
        return EncodingResult(JSON_LABEL, count_lines(sample.raw))
    raise ValueError(f"unknown json size unit: {unit}; expected one of {JSON_SIZE_UNITS}")


def measure_gzip(sample: Sample, provider: CodecProvider) -> EncodingResult:
    return EncodingResult(GZIP_LABEL, len(provider.compress(sample.path)))


def measure_asn1(
    sample: Sample,
    schema: Path,
    object_name: str,
    rule: str,
    provider: CodecProvider,
) -> EncodingResult:
    if rule not in ASN1_RULES:
        raise ValueError(f"unsupported encoding rule: {rule}; expected one of {ASN1_RULES}")
    hex_in = to_hex(sample.compact)
    hex_out = provider.transcode(SOURCE_RULE, rule, schema, object_name, hex_in)
    return EncodingResult(rule, hex_byte_count(hex_out, rule))


def failed_result(encoding: str, exc: SizeCompareError) -> EncodingResult:
    return EncodingResult(encoding, None, error=str(exc))


def measure_all(
    sample: Sample,
    schema: Path,
    object_name: str,
    provider: CodecProvider,
    json_size_unit: str = "bytes",
    keep_going: bool = False,
) -> list[EncodingResult]:
    """Measure every encoding in report order.

    With `keep_going`, a failing gzip or ASN.1 row is recorded as an error
    result instead of aborting the run.
    """
    results = [measure_plain(sample, json_size_unit)]

    try:
        results.append(measure_gzip(sample, provider))
    except SizeCompareError as exc:
        if not keep_going:
            raise
        results.append(failed_result(GZIP_LABEL, exc))

    for rule in ASN1_RULES:
        try:
            results.append(measure_asn1(sample, schema, object_name, rule, provider))
        except SizeCompareError as exc:
            if not keep_going:
                raise
            results.append(failed_result(rule, exc))
    return results
