"""
Handwriting Readability Analyzer — CLI Entry Point

Usage:
    python main.py -i sample.jpg
    python main.py -i sample.jpg -o results/ --docx --advanced
    python main.py -i page1.png page2.png -o results/ --workers 4 -v
"""

import argparse
import logging
import os
import sys
import time

from handwriting_analyzer.errors import AnalysisError, UploadValidationError
from handwriting_analyzer.image_loader import validate_upload
from handwriting_analyzer.models import AnalysisResult
from handwriting_analyzer.ocr_engine import ENGINES
from handwriting_analyzer.pipeline import analyze_batch, analyze_handwriting, analyze_handwriting_advanced
from handwriting_analyzer.report_builder import build_report, write_json


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")


def _banner(logger: logging.Logger, title: str):
    logger.info("")
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def load_upload(path: str) -> bytes:
    with open(path, "rb") as f:
        data = f.read()
    validate_upload(data)
    return data


def print_result(source: str, result: AnalysisResult):
    print(f"{source}")
    print(f"  Readability: {result.readability_score:.2f} ({result.label.label})")
    print(f"  Words: {result.word_count}, lines: {result.line_count}, confidence: {result.confidence:.2f}")
    for key, value in result.metrics.items():
        print(f"  {key}: {value:.2f}")
    for finding in result.findings:
        print(f"  [{finding.type.value}] {finding.message}")


def output_stems(paths: list[str]) -> list[str]:
    """Output file stems for the inputs; repeated names get -2, -3, ... suffixes."""
    stems, used = [], set()
    for path in paths:
        base = os.path.splitext(os.path.basename(path))[0]
        stem, n = base, 1
        while stem in used:
            n += 1
            stem = f"{base}-{n}"
        used.add(stem)
        stems.append(stem)
    return stems


def save_outputs(source: str, stem: str, result: AnalysisResult, output_dir: str | None, docx: bool):
    if not output_dir:
        return
    write_json(result, os.path.join(output_dir, f"{stem}.json"))
    if docx:
        build_report(result, os.path.join(output_dir, f"{stem}.docx"), source_name=source)


def run_single(path: str, engine: str, advanced: bool, preprocess: bool,
               output_dir: str | None, docx: bool) -> int:
    logger = logging.getLogger("pipeline")
    total_start = time.time()

    _banner(logger, "STAGE 1: Validating upload")
    try:
        data = load_upload(path)
    except (OSError, UploadValidationError) as e:
        logger.error(f"  {path}: {e}")
        return 1
    logger.info(f"  {os.path.basename(path)}: {len(data) / 1024:.1f}KB")

    _banner(logger, "STAGE 2: Analyzing handwriting")
    analyze = analyze_handwriting_advanced if advanced else analyze_handwriting
    last = {"step": -1}

    def on_progress(percent: float):
        step = int(percent // 25)
        if step > last["step"]:
            last["step"] = step
            logger.info(f"  Progress: {percent:.0f}%")

    try:
        result = analyze(data, on_progress=on_progress, engine=engine, preprocess=preprocess)
    except AnalysisError as e:
        logger.error(f"  {e}")
        return 1

    _banner(logger, "STAGE 3: Writing results")
    save_outputs(path, output_stems([path])[0], result, output_dir, docx)
    print_result(path, result)
    logger.info(f"  Total time: {time.time() - total_start:.1f}s")
    return 0


def run_many(paths: list[str], engine: str, advanced: bool, preprocess: bool,
             output_dir: str | None, docx: bool, workers: int) -> int:
    logger = logging.getLogger("pipeline")
    total_start = time.time()

    _banner(logger, f"STAGE 1: Validating {len(paths)} uploads")
    accepted, failures = [], 0
    for path in paths:
        try:
            load_upload(path)
            accepted.append(path)
        except (OSError, UploadValidationError) as e:
            logger.error(f"  {path}: {e}")
            failures += 1

    _banner(logger, "STAGE 2: Analyzing handwriting")
    report = analyze_batch(accepted, max_workers=workers, engine=engine,
                           preprocess=preprocess, advanced=advanced)

    _banner(logger, "STAGE 3: Writing results")
    for item, stem in zip(report.items, output_stems(accepted)):
        if item.ok:
            save_outputs(item.source, stem, item.result, output_dir, docx)
            print_result(item.source, item.result)
        else:
            print(f"{item.source}\n  ERROR: {item.error}")

    logger.info(f"  Analyzed: {report.succeeded}, failed: {report.failed + failures}")
    logger.info(f"  Total time: {time.time() - total_start:.1f}s")
    return 0 if report.failed + failures == 0 else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Score the readability of handwriting samples",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n  python main.py -i sample.jpg\n  python main.py -i a.png b.png -o results/ --docx")
    parser.add_argument("-i", "--input", nargs="+", required=True, help="Handwriting image(s), JPEG or PNG up to 10MB")
    parser.add_argument("-o", "--output-dir", help="Directory for <name>.json results (and .docx reports)")
    parser.add_argument("--docx", action="store_true", help="Also write a .docx report per image")
    parser.add_argument("--engine", choices=sorted(ENGINES), default="tesseract", help="OCR engine (default: tesseract)")
    parser.add_argument("--advanced", action="store_true", help="Include dysgraphia indicators")
    parser.add_argument("--preprocess", action="store_true", help="Clean up the image before OCR")
    parser.add_argument("--workers", type=int, default=4, help="Parallel analyses for multiple inputs (default: 4)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    missing = [p for p in args.input if not os.path.isfile(p)]
    if missing:
        print(f"Error: Input file not found: {', '.join(missing)}", file=sys.stderr)
        return 1
    if args.docx and not args.output_dir:
        print("Error: --docx requires --output-dir", file=sys.stderr)
        return 1

    if len(args.input) == 1:
        return run_single(args.input[0], engine=args.engine, advanced=args.advanced,
                          preprocess=args.preprocess, output_dir=args.output_dir, docx=args.docx)
    return run_many(args.input, engine=args.engine, advanced=args.advanced, preprocess=args.preprocess,
                    output_dir=args.output_dir, docx=args.docx, workers=args.workers)


if __name__ == "__main__":
    sys.exit(main())
