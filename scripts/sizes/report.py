#!/usr/bin/env python3
from __future__ import annotations

import json
import sys
from pathlib import Path

if __package__:
    from .measure import EncodingResult
else:
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))
    from scripts.sizes.measure import EncodingResult

HEADERS = ("Encoding", "Size")
REPORT_FORMATS = ("table", "markdown", "json")


def size_cell(result: EncodingResult) -> str:
    if result.error is not None:
        return f"error: {result.error}"
    return str(result.size)


def render_table(results: list[EncodingResult]) -> str:
    """Two aligned columns; sizes right-aligned, errors left as-is."""
    cells = [(r.encoding, size_cell(r)) for r in results]
    name_width = max([len(HEADERS[0])] + [len(name) for name, _ in cells])
    size_width = max(
        [len(HEADERS[1])] + [len(size) for (_, size), r in zip(cells, results) if r.ok]
    )

    lines = [
        f"{HEADERS[0]:<{name_width}} {HEADERS[1]:>{size_width}}",
        f"{'-' * len(HEADERS[0]):<{name_width}} {'-' * len(HEADERS[1]):>{size_width}}",
    ]
    for (name, size), result in zip(cells, results):
        if result.ok:
            lines.append(f"{name:<{name_width}} {size:>{size_width}}")
        else:
            lines.append(f"{name:<{name_width}} {size}")
    return "\n".join(lines) + "\n"


def render_markdown(results: list[EncodingResult]) -> str:
    lines = [
        "| " + " | ".join(HEADERS) + " |",
        "|" + "|".join(["---"] * len(HEADERS)) + "|",
    ]
    for result in results:
        size = size_cell(result).replace("|", "\\|")
        lines.append(f"| {result.encoding} | {size} |")
    return "\n".join(lines) + "\n"


def render_json(
    results: list[EncodingResult],
    path: Path,
    schema: Path,
    object_name: str,
) -> str:
    report = {
        "input": str(path),
        "schema": str(schema),
        "object": object_name,
        "results": [
            {"encoding": r.encoding, "size": r.size, "error": r.error} for r in results
        ],
    }
    return json.dumps(report, indent=2) + "\n"


def render(
    results: list[EncodingResult],
    fmt: str,
    path: Path,
    schema: Path,
    object_name: str,
) -> str:
    if fmt == "table":
        return render_table(results)
    if fmt == "markdown":
        return render_markdown(results)
    if fmt == "json":
        return render_json(results, path, schema, object_name)
    raise ValueError(f"unknown report format: {fmt}; expected one of {REPORT_FORMATS}")
