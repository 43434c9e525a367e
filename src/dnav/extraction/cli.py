from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

from dnav.extraction.config import CONFIG_PRESETS, get_config
from dnav.extraction.errors import DecisionExtractError
from dnav.extraction.pipeline import extract_document
from dnav.extraction.schema import ExtractionRequest, RequestOptions, parse_request
from dnav.extraction.types import PageText
from dnav.shared.logger import PipelineLogger

PATTERNS = ("*.json", "*.txt")
PAGE_BREAK = "\f"


def _collect_files(input_path: Path) -> list[Path]:
    if input_path.is_file():
        return [input_path]
    files: list[Path] = []
    for pattern in PATTERNS:
        files.extend(p for p in input_path.rglob(pattern) if not p.name.endswith(".decisions.json"))
    return sorted(set(files))


def load_request(path: Path) -> ExtractionRequest:
    """Read a request JSON file, or a text file whose pages are split by form feeds."""
    if path.suffix == ".json":
        return parse_request(json.loads(path.read_text(encoding="utf-8")))
    chunks = path.read_text(encoding="utf-8").split(PAGE_BREAK)
    pages = tuple(
        PageText(page=i, text=text, file_name=path.name)
        for i, text in enumerate(chunks, 1)
        if text.strip()
    )
    return ExtractionRequest(doc_name=path.name, page_count=len(chunks), pages=pages, options=RequestOptions())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Batch extract decision candidates from document pages.",
    )
    parser.add_argument("--input", required=True, type=Path,
                        help="Request JSON or form-feed paged .txt file, or a directory of them")
    parser.add_argument("--output", required=True, type=Path)
    parser.add_argument("--mode", choices=["local", "extract", "refine"], default="local")
    parser.add_argument("--preset", choices=sorted(CONFIG_PRESETS), default="default")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="INFO+ log file (readable summary)")
    parser.add_argument("--trace-file", type=Path, default=None,
                        help="TRACE+ log file (full detail, every line)")

    args = parser.parse_args(argv)

    if not args.input.exists():
        print(f"Error: Input does not exist: {args.input}", file=sys.stderr)
        return 1

    args.output.mkdir(parents=True, exist_ok=True)

    log = PipelineLogger(
        log_file=args.log_file,
        trace_file=args.trace_file,
        console=True,
        min_level="INFO",
    )
    log.install_stdlib_bridge(root_logger="dnav", level=10)
    log.install_stdlib_bridge(root_logger="", level=30)

    config = get_config(args.preset)

    log.section("D-NAV Decision Extraction")
    log.info(f"Input:   {args.input}")
    log.info(f"Output:  {args.output}")
    log.info(f"Mode:    {args.mode}")
    log.info(f"Preset:  {config.name}")

    files = _collect_files(args.input)
    if not files:
        log.warn(f"No request files found in {args.input}")
        log.close()
        return 0

    log.metric("files_found", len(files))
    errors: list[str] = []
    total_candidates = 0
    total_warnings = 0

    with log.timer("total_extraction"):
        for i, path in enumerate(files, 1):
            log.subsection(f"[{i}/{len(files)}] {path.name}")
            t0 = time.perf_counter()
            try:
                request = load_request(path)
                response = extract_document(request, mode=args.mode, config=config)
            except (DecisionExtractError, json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
                log.error(f"FAILED {path.name}: {e}")
                errors.append(path.name)
                continue

            n = len(response.candidates)
            hard = sum(1 for c in response.candidates if c.strength == "hard")
            warnings = response.meta.warnings or []
            total_candidates += n
            total_warnings += len(warnings)

            log.metric("pages", len(request.pages))
            log.metric("candidates", n)
            log.metric("hard", hard)
            log.metric("file_time_s", round(time.perf_counter() - t0, 3), "s")
            for w in warnings:
                log.warn(f"{path.name}: {w}")
            for c in response.candidates:
                log.trace(f"  p{c.evidence.page:<3} {c.strength:4} {c.category:20} {c.title}")

            out_path = args.output / f"{path.stem}.decisions.json"
            out_path.write_text(json.dumps(response.wire(), indent=2, ensure_ascii=False), encoding="utf-8")

    log.section("Extraction Summary")
    log.metric("files_processed", len(files) - len(errors))
    log.metric("files_errored", len(errors))
    log.metric("total_candidates", total_candidates)
    log.metric("total_warnings", total_warnings)

    if errors:
        log.subsection("Errors")
        for name in errors:
            log.error(f"  {name}")

    log.summary()
    log.close()
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
