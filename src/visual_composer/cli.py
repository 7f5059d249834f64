"""Command-line interface for composing image slideshows."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from .config import settings
from .errors import ExportError, IncompleteTimeline, InvalidPlacement, InvalidRaster
from .models import (
    ExportFormat,
    ExportProfile,
    ExportQuality,
    FilterType,
    Raster,
    Timeline,
    TransformParameters,
    TransitionType,
    VisualAsset,
)
from .tools import ExportCoordinator, GapPolicy, PngSequenceEncoder
from .utils.logging_config import configure_logging


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="visual-composer",
        description="Compose still images into a timed frame sequence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Spread the images evenly over a 45 second track
  %(prog)s photos/*.jpg --audio-duration 45

  # Fixed 4 seconds per image with sliding transitions
  %(prog)s a.jpg b.jpg c.jpg --audio-duration 11 -s 4 -t slide-left

  # Vintage look at 720p, 24fps
  %(prog)s *.png --audio-duration 30 --filter vintage -q 720p --fps 24
        """
    )

    parser.add_argument(
        'images',
        nargs='+',
        help='Image files, in display order'
    )

    parser.add_argument(
        '-a', '--audio-duration',
        type=float,
        required=True,
        help='Duration of the audio track in seconds (the timeline target)'
    )

    parser.add_argument(
        '-s', '--seconds-per-image',
        type=float,
        help='Seconds each image stays on screen (default: fit the audio duration)'
    )

    parser.add_argument(
        '-t', '--transition',
        choices=[t.value for t in TransitionType],
        type=lambda v: TransitionType.from_string(v).value,
        default=TransitionType.FADE.value,
        help='Transition between images (default: fade)'
    )

    parser.add_argument(
        '--transition-duration',
        type=float,
        default=settings.default_transition_duration,
        help=f'Transition length in seconds (default: {settings.default_transition_duration})'
    )

    parser.add_argument(
        '--filter',
        choices=[f.value for f in FilterType],
        type=lambda v: FilterType.from_string(v).value,
        default=FilterType.NONE.value,
        help='Catalog filter applied to every image (default: none)'
    )

    parser.add_argument(
        '-f', '--format',
        choices=[f.value for f in ExportFormat],
        default=ExportFormat.MP4.value,
        help='Target container the frames are prepared for (default: mp4)'
    )

    parser.add_argument(
        '-q', '--quality',
        choices=[q.value for q in ExportQuality],
        default=ExportQuality.FULL_HD.value,
        help='Output resolution tier (default: 1080p)'
    )

    parser.add_argument(
        '--fps',
        type=int,
        default=settings.default_fps,
        help=f'Frames per second (default: {settings.default_fps})'
    )

    parser.add_argument(
        '--fill-gaps',
        action='store_true',
        help='Render uncovered time as background frames instead of failing'
    )

    parser.add_argument(
        '-o', '--output',
        default=settings.output_dir,
        help=f'Output directory (default: {settings.output_dir})'
    )

    parser.add_argument(
        '-n', '--name',
        help='Name of the export directory (default: generated)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def fit_seconds_per_image(count: int, audio_duration: float, transition_duration: float) -> float:
    """Per-image duration so that `count` images with overlapping transitions span the audio.

    n * s - (n - 1) * overlap = audio_duration
    """
    return (audio_duration + (count - 1) * transition_duration) / count


def load_assets(paths: List[str]) -> List[VisualAsset]:
    """Decode images, skipping files that cannot be read."""
    assets = []
    for path in paths:
        try:
            raster = Raster.from_file(path)
        except InvalidRaster as e:
            print(f"Warning: Skipping {path}: {e}")
            continue
        assets.append(VisualAsset.from_raster(raster, name=Path(path).name))
    return assets


def build_timeline(
    assets: List[VisualAsset],
    audio_duration: float,
    seconds_per_image: float,
    transition: TransitionType,
    transition_duration: float,
    params: TransformParameters,
) -> Timeline:
    """Append every asset in order, targeting the audio duration."""
    timeline = Timeline(target_duration=audio_duration)
    for index, asset in enumerate(assets):
        timeline = timeline.append(
            asset,
            duration=seconds_per_image,
            transition=transition if index > 0 else TransitionType.NONE,
            transition_duration=transition_duration,
            params=params,
        )
    return timeline


async def run_export(session) -> int:
    """Drive an export session, printing progress every 10%."""
    next_mark = 0.0
    async for progress in session:
        if progress.percent >= next_mark:
            print(f"Progress: {progress.percent:5.1f}% ({progress.frames_done}/{progress.frames_total} frames)")
            next_mark = (progress.percent // 10 + 1) * 10

    result = session.result
    if not result.succeeded:
        print("Export cancelled")
        return 1

    print(f"\nDone! {result.artifact.frame_count} frames written to: {result.artifact.location}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    configure_logging(level="DEBUG" if args.verbose else settings.effective_log_level)

    if args.audio_duration <= 0:
        print("Error: --audio-duration must be positive")
        return 1

    assets = load_assets(args.images)
    if not assets:
        print("Error: No readable images found")
        return 1

    transition = TransitionType(args.transition)
    overlap = args.transition_duration if transition != TransitionType.NONE else 0.0
    seconds_per_image = args.seconds_per_image or fit_seconds_per_image(
        len(assets), args.audio_duration, overlap
    )

    print(f"\nVisual Composer")
    print(f"{'='*50}")
    print(f"Images: {len(assets)}")
    print(f"Audio duration: {args.audio_duration:.2f} seconds")
    print(f"Seconds per image: {seconds_per_image:.2f}")
    print(f"Transition: {transition.value} ({overlap:.2f}s)")
    print(f"Filter: {args.filter}")
    print(f"Output: {args.format} {args.quality} @ {args.fps}fps")
    print(f"{'='*50}\n")

    try:
        timeline = build_timeline(
            assets,
            args.audio_duration,
            seconds_per_image,
            transition,
            args.transition_duration,
            TransformParameters(filter=args.filter),
        )
        profile = ExportProfile(format=args.format, quality=args.quality, fps=args.fps)
    except (InvalidPlacement, ValueError) as e:
        print(f"Error: {e}")
        return 1

    for issue in timeline.validate_continuity():
        print(f"Warning: {issue}")

    coordinator = ExportCoordinator(
        PngSequenceEncoder(output_dir=args.output, name=args.name),
        gap_policy=GapPolicy.BLACK if args.fill_gaps else None,
    )

    try:
        session = coordinator.export(timeline, profile)
        return asyncio.run(run_export(session))
    except IncompleteTimeline as e:
        print(f"Error: {e}")
        print("Add images, lengthen --seconds-per-image or pass --fill-gaps")
        return 1
    except ExportError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nProcess interrupted by user")
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
