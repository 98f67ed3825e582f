"""Command line entry point: run one extraction in-process and print a summary."""
import argparse
import asyncio
import sys
from typing import List, Optional

from canonizer.agents.exceptions import PipelineError
from canonizer.app.config import get_settings
from canonizer.app.models import ExtractionResult, ProgressEvent
from canonizer.app.service import create_pipeline
from canonizer.app.storage import BrandStore


def print_progress(event: ProgressEvent):
    print(f"[{event.progress_percent:3d}%] {event.stage}: {event.message}")


def print_summary(result: ExtractionResult):
    evaluation = result.evaluation
    summary = result.trace.summary
    print()
    print(f"Brand:       {result.brand_name} ({result.brand_id})")
    print(f"Score:       {evaluation.overall_score:.2f}/5.0 ({evaluation.quality_band})")
    print(f"Refinement:  {result.refinement}")
    if summary:
        print(f"Duration:    {summary.total_duration_ms / 1000:.1f}s")
        print(f"Tokens:      {summary.total_tokens:,}")
        print(f"Cost:        ${summary.estimated_cost_usd:.4f}")

    print("\nDimensions:")
    for dim in evaluation.dimensions:
        print(f"  {dim.display_name:<22} {dim.score:.1f}  (weight {dim.weight:.2f})")

    if evaluation.recommendations:
        print("\nTop recommendations:")
        for rec in evaluation.recommendations[:3]:
            print(f"  [{rec.priority}] {rec.issue}")

    if summary and summary.warnings:
        print(f"\nWarnings ({len(summary.warnings)}):")
        for warning in summary.warnings:
            print(f"  - {warning}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="canonizer-extract",
        description="Extract a brand specification from a website",
    )
    parser.add_argument("url", help="Website URL to extract the brand from")
    parser.add_argument(
        "-a", "--adjective",
        dest="adjectives",
        action="append",
        default=[],
        help="Brand adjective hint (repeatable)",
    )
    parser.add_argument("--no-save", action="store_true", help="Do not persist artifacts to DATA_DIR")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    store = None if args.no_save or not settings.data_dir else BrandStore(settings.data_dir)
    pipeline = create_pipeline(settings, store)

    try:
        result = asyncio.run(pipeline.run(args.url, args.adjectives, progress=print_progress))
    except PipelineError as e:
        print(f"\nExtraction failed at {e.stage}: {e.message}", file=sys.stderr)
        return 1

    print_summary(result)
    if store is not None:
        print(f"\nSaved to {store.brand_dir(result.brand_id)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
