from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path

from topicgraph.config import Settings
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.models.serializers import deserialize_transcript, serialize_transcript
from topicgraph.pipeline.factory import StepProviders, create_orchestrator, default_step_names, new_manifest
from topicgraph.pipeline.orchestrator import pending_steps
from topicgraph.providers.media.base import SOURCE_TYPES
from topicgraph.storage import get_storage
from topicgraph.storage.port import artifact_path
from topicgraph.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the topic graph pipeline on one video.")
    parser.add_argument("--source", default=None, help="Video URL or local file path")
    parser.add_argument(
        "--source-type",
        choices=list(SOURCE_TYPES),
        default="file",
        help="How to fetch --source",
    )
    parser.add_argument("--video-id", default=None, help="Video id (defaults to random uuid)")
    parser.add_argument(
        "--steps",
        default=None,
        help="Comma-separated step names (default: the full pipeline)",
    )
    parser.add_argument(
        "--export-format",
        default=None,
        help="Add the export step with this format (html, markdown, json)",
    )
    parser.add_argument(
        "--transcript",
        default=None,
        help="Existing transcript JSON; skips the video and asr steps",
    )
    parser.add_argument("--data-dir", default=None, help="Override DATA_DIR")
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    if not args.source and not args.transcript:
        raise SystemExit("--source or --transcript is required")

    overrides: dict[str, str] = {}
    if args.data_dir:
        overrides["data_dir"] = str(args.data_dir)
        overrides["work_dir"] = str(Path(args.data_dir) / "work")
    settings = Settings(**overrides)
    setup_logging(settings)

    video_id = str(args.video_id or uuid.uuid4().hex)
    storage = get_storage(settings)
    manifest = new_manifest(settings, video_id)

    if args.steps:
        step_names = [s.strip() for s in str(args.steps).split(",") if s.strip()]
    else:
        step_names = default_step_names(settings, args.export_format)

    if args.transcript:
        transcript_file = Path(args.transcript)
        if not transcript_file.exists():
            raise SystemExit(f"Transcript not found: {transcript_file}")
        segments = deserialize_transcript(json.loads(transcript_file.read_text(encoding="utf-8")))
        transcript_path = artifact_path(video_id, "transcripts", "transcript.json")
        await storage.write_json(transcript_path, serialize_transcript(segments))
        manifest = (
            manifest.with_paths({ArtifactKind.TRANSCRIPT: transcript_path})
            .with_metrics({"transcript_segments": len(segments)})
            .mark_completed(StepName.VIDEO.value)
            .mark_completed(StepName.ASR.value)
        )
        if not args.steps:
            # No video to clip without the video step.
            step_names = [n for n in step_names if n != StepName.SNIPPET.value]
        step_names = pending_steps(manifest, step_names)

    payload = {
        "source_url": str(args.source or ""),
        "source_type": str(args.source_type),
    }
    if args.export_format:
        payload["export_format"] = str(args.export_format)

    providers = StepProviders.from_settings(settings)
    orchestrator = create_orchestrator(settings, storage=storage, providers=providers)

    async def _progress(index: int, step: str, pct: int, message: str) -> None:
        print(f"[{index + 1}/{len(step_names)}] {step} {pct}% {message}", file=sys.stderr)

    try:
        result = await orchestrator.run(manifest, step_names, payload=payload, progress=_progress)
    finally:
        await providers.close()

    print(json.dumps(result.manifest.to_dict(), indent=2, ensure_ascii=False))
    if not result.success:
        print(f"failed_step={result.failed_step} error={result.error}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
