#!/usr/bin/env python3
"""Codec providers: the compression and ASN.1 transcoding back ends.

`CliCodecProvider` shells out to the `gzip` and `asn1tools` executables.
`LibraryCodecProvider` does the same work in-process with the `asn1tools`
package and the `gzip` module. Both expose `compress()` and `transcode()`.
"""

from __future__ import annotations

import gzip
import os
import shutil
import subprocess
import sys
from pathlib import Path

import asn1tools

if __package__:
    from .errors import ExternalToolError, SchemaViolationError
else:
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))
    from scripts.sizes.errors import ExternalToolError, SchemaViolationError

ASN1TOOLS_ENV = "SIZE_COMPARE_ASN1TOOLS"
GZIP_ENV = "SIZE_COMPARE_GZIP"
DEFAULT_ASN1TOOLS = "asn1tools"
DEFAULT_GZIP = "gzip"

GZIP_FLAGS = ("-n9", "-k", "-f")
GZIP_SUFFIX = ".gz"
GZIP_LEVEL = 9

PROVIDERS = ("cli", "library")

# asn1tools reports every failure as "error: <message>"; these mark the ones
# caused by the schema or the tool rather than by the sample value.
TOOL_FAILURE_MARKERS = (
    "Invalid ASN.1 syntax",
    "not found in types dictionary",
    "not found in module",
    "No such file or directory",
)

# asn1tools codecs raise plain TypeError/KeyError/... when a JSON value has
# the wrong shape for the type, alongside their own errors.
VALUE_REJECTIONS = (asn1tools.Error, TypeError, ValueError, AttributeError, KeyError)


def gz_path_for(path: Path) -> Path:
    return path.with_name(path.name + GZIP_SUFFIX)


def warn_if_overwriting(gz_path: Path) -> None:
    if gz_path.exists():
        print(f"[warn] overwriting existing {gz_path}", file=sys.stderr)


def resolve_executable(explicit: str | None, env_var: str, default: str) -> str:
    """Resolve a tool from the flag value, then the env var, then PATH."""
    candidate = explicit or os.environ.get(env_var) or default
    found = shutil.which(candidate)
    if found is None:
        raise ExternalToolError(
            f"{candidate} not found or not executable; set {env_var} or install {default}"
        )
    return found


def run(
    cmd: list[str],
    input_text: str | None = None,
    timeout: float | None = None,
    verbose: bool = False,
) -> subprocess.CompletedProcess[str]:
    """Run a command to completion; the caller checks the return code."""
    if verbose:
        print(f"$ {' '.join(cmd)}", file=sys.stderr)
    try:
        return subprocess.run(
            cmd,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise ExternalToolError(
            f"command timed out after {timeout}s: {' '.join(cmd)}"
        ) from exc
    except OSError as exc:
        raise ExternalToolError(f"could not run {cmd[0]}: {exc}") from exc


def command_output(completed: subprocess.CompletedProcess[str]) -> str:
    return ((completed.stderr or "") + (completed.stdout or "")).strip()


def classify_transcode_failure(output: str) -> type[ExternalToolError] | type[SchemaViolationError]:
    if any(marker in output for marker in TOOL_FAILURE_MARKERS):
        return ExternalToolError
    if "error:" in output:
        return SchemaViolationError
    return ExternalToolError


class CompiledSchemas:
    """asn1tools specifications, compiled once per (schema, codec)."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._compiled: dict[tuple[str, str], asn1tools.compiler.Specification] = {}

    def compile(self, schema: Path, codec: str):
        key = (str(schema), codec)
        if key in self._compiled:
            return self._compiled[key]
        if self.verbose:
            print(f"$ asn1tools.compile_files({str(schema)!r}, codec={codec!r})", file=sys.stderr)
        try:
            compiled = asn1tools.compile_files(str(schema), codec=codec)
        except OSError as exc:
            raise ExternalToolError(f"could not read schema {schema}: {exc}") from exc
        except asn1tools.ParseError as exc:
            raise ExternalToolError(f"invalid ASN.1 schema {schema}: {exc}") from exc
        except asn1tools.Error as exc:
            raise ExternalToolError(f"could not compile {schema} for {codec}: {exc}") from exc
        self._compiled[key] = compiled
        return compiled

    def compile_type(self, schema: Path, object_name: str, codec: str):
        compiled = self.compile(schema, codec)
        if object_name not in compiled.types:
            raise ExternalToolError(f"type '{object_name}' not found in {schema}")
        return compiled

    def decode(self, schema: Path, object_name: str, codec: str, data: bytes):
        """Decode and constraint-check a value; rejections are schema violations."""
        compiled = self.compile_type(schema, object_name, codec)
        try:
            return compiled.decode(object_name, data, check_constraints=True)
        except VALUE_REJECTIONS as exc:
            raise SchemaViolationError(
                f"{object_name} in {schema} rejected the sample ({codec} decode): {exc}"
            ) from exc

    def encode(self, schema: Path, object_name: str, codec: str, value) -> bytes:
        compiled = self.compile_type(schema, object_name, codec)
        try:
            return compiled.encode(object_name, value, check_constraints=True)
        except VALUE_REJECTIONS as exc:
            raise SchemaViolationError(
                f"{object_name} in {schema} rejected the sample ({codec} encode): {exc}"
            ) from exc


class CodecProvider:
    """Interface shared by the real providers and test fakes."""

    def compress(self, path: Path) -> bytes:
        """Write `<path>.gz` at maximum compression and return its bytes."""
        raise NotImplementedError

    def transcode(
        self,
        rule_in: str,
        rule_out: str,
        schema: Path,
        object_name: str,
        hex_in: str,
    ) -> str:
        """Convert a hex-encoded value between two ASN.1 encoding rules."""
        raise NotImplementedError


class CliCodecProvider(CodecProvider):
    def __init__(
        self,
        asn1tools_bin: str | None = None,
        gzip_bin: str | None = None,
        timeout: float | None = None,
        verbose: bool = False,
    ):
        self.asn1tools_bin = asn1tools_bin
        self.gzip_bin = gzip_bin
        self.timeout = timeout
        self.verbose = verbose
        self.schemas = CompiledSchemas(verbose=verbose)

    def compress(self, path: Path) -> bytes:
        gzip_bin = resolve_executable(self.gzip_bin, GZIP_ENV, DEFAULT_GZIP)
        gz_path = gz_path_for(path)
        warn_if_overwriting(gz_path)
        completed = run(
            [gzip_bin, *GZIP_FLAGS, str(path)],
            timeout=self.timeout,
            verbose=self.verbose,
        )
        if completed.returncode != 0:
            raise ExternalToolError(
                f"gzip failed ({completed.returncode}) for {path}: {command_output(completed)}"
            )
        try:
            return gz_path.read_bytes()
        except OSError as exc:
            raise ExternalToolError(f"gzip produced no readable output at {gz_path}: {exc}") from exc

    def transcode(
        self,
        rule_in: str,
        rule_out: str,
        schema: Path,
        object_name: str,
        hex_in: str,
    ) -> str:
        # `asn1tools convert` does not check constraints and silently
        # truncates out-of-range values, so check them in-process first.
        self.schemas.decode(schema, object_name, rule_in, bytes.fromhex(hex_in))
        asn1tools_bin = resolve_executable(self.asn1tools_bin, ASN1TOOLS_ENV, DEFAULT_ASN1TOOLS)
        completed = run(
            [
                asn1tools_bin,
                "convert",
                "-i",
                rule_in,
                "-o",
                rule_out,
                str(schema),
                object_name,
                "-",
            ],
            input_text=hex_in + "\n",
            timeout=self.timeout,
            verbose=self.verbose,
        )
        if completed.returncode != 0:
            output = command_output(completed)
            error_cls = classify_transcode_failure(output)
            raise error_cls(
                f"asn1tools convert {rule_in} -> {rule_out} failed ({completed.returncode}) "
                f"for {object_name} in {schema}: {output}"
            )
        return "".join(completed.stdout.split())


class LibraryCodecProvider(CodecProvider):
    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.schemas = CompiledSchemas(verbose=verbose)

    def compress(self, path: Path) -> bytes:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ExternalToolError(f"could not read {path} for compression: {exc}") from exc
        compressed = gzip.compress(raw, compresslevel=GZIP_LEVEL, mtime=0)
        gz_path = gz_path_for(path)
        warn_if_overwriting(gz_path)
        try:
            gz_path.write_bytes(compressed)
        except OSError as exc:
            raise ExternalToolError(f"could not write {gz_path}: {exc}") from exc
        return compressed

    def transcode(
        self,
        rule_in: str,
        rule_out: str,
        schema: Path,
        object_name: str,
        hex_in: str,
    ) -> str:
        value = self.schemas.decode(schema, object_name, rule_in, bytes.fromhex(hex_in))
        encoded = self.schemas.encode(schema, object_name, rule_out, value)
        return encoded.hex().upper()


def build_provider(
    name: str,
    asn1tools_bin: str | None = None,
    gzip_bin: str | None = None,
    timeout: float | None = None,
    verbose: bool = False,
) -> CodecProvider:
    if name == "cli":
        return CliCodecProvider(asn1tools_bin, gzip_bin, timeout=timeout, verbose=verbose)
    if name == "library":
        return LibraryCodecProvider(verbose=verbose)
    raise ValueError(f"unknown codec provider: {name}; expected one of {PROVIDERS}")
