#!/usr/bin/env python3
"""
pixelate.py
Abstract images into low-resolution pixel art with a small adaptive palette.

Usage:
  python pixelate.py INPUT --width W --height H --colours K [--out OUTPUT] [--debug] [--frames DIR]
  python pixelate.py JOBS.json [--parallel N] [--debug] [--frames DIR]

Input:
  Any Pillow-readable image, or a JSON job list (see pixel_abstraction.jobs).

Output:
  Two PNGs: the pixel art block-upsampled back towards the input size at
  OUTPUT (default <stem>_pixel.png next to INPUT), and the output-resolution
  image next to it as <stem>_small.png.

Notes:
  CPU bound. ThreadPoolExecutor is used for RGB->Lab conversion and, with
  --parallel, for running batch jobs side by side with ordered output.
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import time
from contextlib import redirect_stdout
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

from pixel_abstraction.engine import RunConfig, pixelate_with_config
from pixel_abstraction.image_io import LabImage, upsample_ratio, write_outputs
from pixel_abstraction.jobs import JobConfig, load_jobs
from pixel_abstraction.utils import (
    # formatting
    format_seconds_compact,
    format_total_duration_compact,
    palette_usage_report,
    # pretty logging
    print_banner,
    log,
    debug_log,
    warn,
    error,
    print_config_line,
    key_value_pairs_to_string,
    enable_line_buffered_stdout,
)

# CLI args & small helpers


def _default_workers() -> int:
    """Leave a few cores free for the system; returns a sensible worker count."""
    n = os.cpu_count() or 4
    reserve = 1 if n <= 6 else 2 if n <= 12 else 3 if n <= 18 else 4
    return max(1, n - reserve)


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        src: image path or .json job list
        width, height: output grid size (single image only)
        colours: palette size (single image only)
        out: optional output path (single image only)
        parallel: jobs processed side by side
        workers: threads for RGB->Lab conversion
        debug: verbose per-iteration details
        frames: optional directory for intermediate frames; with --debug
          and no --frames, frames go to <output dir>/frames
    """
    parser = argparse.ArgumentParser(
        prog="pixelate",
        description="Turn image(s) into pixel art with an adaptive palette.",
    )
    parser.add_argument("src", type=Path, help="Input image or JSON job list")
    parser.add_argument("--width", type=int, default=None, help="Output width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Output height in pixels")
    parser.add_argument("--colours", type=int, default=None, help="Palette size (2-16)")
    parser.add_argument("--out", type=Path, default=None, help="Output PNG path")
    parser.add_argument(
        "--parallel", type=int, default=1, help="Batch jobs processed in parallel"
    )
    parser.add_argument(
        "--workers", type=int, default=_default_workers(), help="Colour conversion threads"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose iteration details")
    parser.add_argument(
        "--frames",
        type=Path,
        default=None,
        help="Write intermediate frames to this directory (default with --debug: <output dir>/frames)",
    )
    return parser.parse_args(argv)


def _single_job(args: argparse.Namespace) -> JobConfig:
    missing = [
        flag
        for flag, value in (
            ("--width", args.width),
            ("--height", args.height),
            ("--colours", args.colours),
        )
        if value is None
    ]
    if missing:
        raise ValueError(f"single image mode needs {', '.join(missing)}")
    return JobConfig(
        file=args.src,
        output_width=args.width,
        output_height=args.height,
        colours=args.colours,
        output_file=args.out,
        debug=args.debug,
    )


# Per-job processing


def _process_single_job(
    job: JobConfig,
    workers: int,
    debug: bool,
    frames_dir: Optional[Path],
    progress: bool,
) -> bool:
    """
    Run one job end-to-end:
      validate -> load -> anneal -> render -> save -> report.
    Returns False if the job failed; the failure is logged, not raised.
    """
    t_start = time.perf_counter()
    debug = debug or job.debug
    print_banner(job.file.name)

    if job.skip:
        log(f"Skipping {job.file}")
        return True

    try:
        config: RunConfig = job.run_config()
    except ValueError as e:
        error(f"{job.file.name}: {e}; job aborted")
        return False

    try:
        source = LabImage.from_path(job.file, workers)
    except (OSError, ValueError, TypeError) as e:
        error(f"{job.file.name}: cannot read image ({e})")
        return False
    t_loaded = time.perf_counter()
    if debug and frames_dir is None:
        frames_dir = job.output_path().parent / "frames"

    print_config_line(
        "job",
        [
            ("Input", f"{source.width}x{source.height}"),
            ("Output", f"{job.output_width}x{job.output_height}"),
            ("Colours", job.colours),
            ("Workers", workers),
        ],
        debug=False,
    )

    try:
        result = pixelate_with_config(
            source,
            config,
            debug=debug,
            frames_dir=frames_dir,
            stem=job.file.stem,
            progress=progress,
        )
    except ValueError as e:
        error(f"{job.file.name}: {e}; job aborted")
        return False
    except OSError as e:
        error(f"{job.file.name}: cannot write frame ({e})")
        return False
    t_after_run = time.perf_counter()

    ratio = upsample_ratio(source.size, config.output_size)
    try:
        big_path, small_path = write_outputs(result.raster, job.output_path(), ratio)
    except OSError as e:
        error(f"{job.file.name}: cannot write output ({e})")
        return False
    t_after_save = time.perf_counter()

    log(
        f"Wrote {big_path.name} and {small_path.name} | size={job.output_width}x{job.output_height} "
        f"| upsample={ratio}x | iterations={result.iterations}"
    )
    log("Colours used:")
    for key, hex_code, count in palette_usage_report(result.keys, result.palette):
        log(f"  {hex_code}  key {key}: {count:,}")
    if len(result.palette) < config.max_colours:
        warn(f"palette holds {len(result.palette)} of {config.max_colours} colours")

    if debug:
        debug_log(
            f"Total {format_total_duration_compact(t_after_save - t_start)}  "
            f"(load={format_seconds_compact(t_loaded - t_start)}, "
            f"anneal={format_seconds_compact(t_after_run - t_loaded)}, "
            f"save={format_seconds_compact(t_after_save - t_after_run)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(t_after_save - t_start)}")
    return True


def _process_one_captured(
    job: JobConfig, workers: int, debug: bool, frames_dir: Optional[Path]
) -> Tuple[bool, str]:
    """
    Process a single job with stdout capture.

    Useful for concurrent execution where output should be printed in order.
    """
    buf = io.StringIO()
    with redirect_stdout(buf):
        ok = _process_single_job(job, workers, debug, frames_dir, progress=False)
    return ok, buf.getvalue()


def _process_one_live(
    job: JobConfig, workers: int, debug: bool, frames_dir: Optional[Path]
) -> bool:
    """Process a single job and stream logs to stdout."""
    return _process_single_job(job, workers, debug, frames_dir, progress=True)


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Handles a single image or a JSON job list. Job lists support --parallel
    while preserving readable output ordering.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    cpu_cores = os.cpu_count() or 1
    print_config_line(
        "run",
        [("CPU cores", cpu_cores), ("Workers", args.workers), ("Parallel", args.parallel)],
        debug=False,
    )
    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [("Frames", str(args.frames) if args.frames else "-"), ("Debug", True)]
            )
        )

    src: Path = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2

    if src.suffix.lower() == ".json":
        try:
            jobs = load_jobs(src)
        except ValueError as e:
            error(str(e))
            return 2
        if args.debug:
            debug_log(
                key_value_pairs_to_string(
                    [("Jobs", len(jobs)), ("Skipped", sum(1 for j in jobs if j.skip))]
                )
            )

        if args.parallel <= 1:
            ok = [_process_one_live(j, args.workers, args.debug, args.frames) for j in jobs]
            failed = ok.count(False)
        else:
            with ThreadPoolExecutor(max_workers=args.parallel) as ex:
                futures = [
                    ex.submit(_process_one_captured, j, args.workers, args.debug, args.frames)
                    for j in jobs
                ]
                results = [f.result() for f in futures]
            print("".join(text for _, text in results), end="", flush=True)
            failed = sum(1 for ok, _ in results if not ok)
        if failed:
            warn(f"{failed} of {len(jobs)} job(s) failed")
        return 1 if failed else 0

    try:
        job = _single_job(args)
    except ValueError as e:
        error(str(e))
        return 2
    return 0 if _process_one_live(job, args.workers, args.debug, args.frames) else 1


if __name__ == "__main__":
    sys.exit(main())
