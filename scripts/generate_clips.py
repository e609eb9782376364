#!/usr/bin/env python3
"""
generate_clips.py - Turn a long video into captioned vertical clips from the command line.

Runs the same pipeline as the web backend: content analysis, clip selection,
hook generation, then renders every clip with ffmpeg into one zip archive.

Usage examples
--------------
# Six 30-60s clips, default template, zipped next to the video
  python generate_clips.py talk.mp4

# Square Karaoke clips from the second half, written to a custom archive
  python generate_clips.py talk.mp4 --layout square --template karaoke --timeframe 50 100 -o out.zip

# Only list the selected clips as JSON (no rendering)
  python generate_clips.py talk.mp4 --list-only

The Gemini API key is read from CLIPCRAFT_GEMINI_API_KEY (or the .env file).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from clipcraft.errors import ClipCraftError
from clipcraft.models import (
    AnalysisMode,
    ClipLength,
    Language,
    ProcessingConfig,
    ProcessingStatus,
    VideoLayout,
)
from clipcraft.services import ClipGenerationService, ExportService, list_styles


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="generate_clips",
        description="Turn a long video into captioned vertical clips.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument("video", type=Path, metavar="VIDEO", help="Source video file.")
    p.add_argument(
        "-o", "--output",
        type=Path,
        metavar="OUTPUT",
        help="Zip archive to write (default: VIDEO_clips.zip next to the video).",
    )

    # --- Selection ---
    p.add_argument(
        "--clip-length",
        choices=[c.value for c in ClipLength],
        default=ClipLength.FROM_30_TO_60.value,
        help="Preferred clip length band (default: 30-60).",
    )
    p.add_argument(
        "--mode",
        choices=[m.value for m in AnalysisMode],
        default=AnalysisMode.SCENES.value,
        help="Rank analysed scenes, or segment and score a flat transcript (default: scenes).",
    )
    p.add_argument("--max-clips", type=int, default=6, help="Number of clips to keep (default: 6).")
    p.add_argument(
        "--timeframe",
        nargs=2,
        type=float,
        metavar=("START", "END"),
        default=(0.0, 100.0),
        help="Only use this part of the video, in percent (default: 0 100).",
    )
    p.add_argument("--source-language", choices=[l.value for l in Language], default="English")
    p.add_argument("--target-language", choices=[l.value for l in Language], default="English")

    # --- Rendering ---
    p.add_argument("--layout", choices=[l.value for l in VideoLayout], default=VideoLayout.FIT.value)
    p.add_argument(
        "--template",
        choices=[s.id for s in list_styles()],
        default="hormozi1",
        help="Caption template (default: hormozi1).",
    )
    p.add_argument("--words-per-caption", type=int, default=4, help="Words per caption chunk, 1-8.")
    p.add_argument("--no-hook", action="store_true", help="Do not burn in the hook title.")
    p.add_argument("--no-cta", action="store_true", help="Do not burn in the call to action.")
    p.add_argument("--cta-text", default="Take a look at my other videos")
    p.add_argument("--watermark", type=Path, metavar="IMAGE", help="Watermark image (bottom right).")
    p.add_argument("--music", type=Path, metavar="AUDIO", help="Background music, mixed under the voice.")

    p.add_argument(
        "--list-only",
        action="store_true",
        help="Print the selected clips as JSON and skip rendering.",
    )
    return p


def build_config(args: argparse.Namespace) -> ProcessingConfig:
    return ProcessingConfig(
        clip_length=args.clip_length,
        layout=args.layout,
        template=args.template,
        source_language=args.source_language,
        target_language=args.target_language,
        analysis_mode=args.mode,
        processing_timeframe=tuple(args.timeframe),
        max_clips=args.max_clips,
        hook_title=not args.no_hook,
        call_to_action=not args.no_cta,
        cta_text=args.cta_text,
        background_music=args.music is not None,
        background_music_path=args.music,
        watermark_path=args.watermark,
        words_per_caption=args.words_per_caption,
    )


async def run(args: argparse.Namespace, config: ProcessingConfig) -> int:
    service = ClipGenerationService()

    final = None
    async for progress in service.generate(args.video, config):
        print(f"[{progress.status.value:>12}] {progress.progress:5.1f}%  {progress.message}")
        final = progress

    if final is None or final.status is not ProcessingStatus.DONE:
        error = final.error if final else "no result"
        print(f"[ERROR] {error}", file=sys.stderr)
        return 1

    clips = final.clips or []
    if args.list_only:
        print(json.dumps([clip.model_dump(mode="json") for clip in clips], indent=2, ensure_ascii=False))
        return 0

    output = args.output or args.video.with_name(f"{args.video.stem}_clips.zip")
    archive = await ExportService().export_batch(args.video, clips, config)
    output.write_bytes(archive)
    print(f"Wrote {len(clips)} clip(s) → {output}")
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if not args.video.is_file():
        print(f"[ERROR] File not found: {args.video}", file=sys.stderr)
        sys.exit(1)

    try:
        config = build_config(args)
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "config"
            print(f"[ERROR] Invalid option {field}: {error['msg']}", file=sys.stderr)
        sys.exit(2)

    try:
        sys.exit(asyncio.run(run(args, config)))
    except ClipCraftError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
