"""ASR step: transcript, word alignment and optional diarization."""

from __future__ import annotations

from topicgraph.config import ASRStepConfig
from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import StepExecutionError
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.models.serializers import (
    serialize_speaker_turns,
    serialize_transcript,
    serialize_word_alignment,
)
from topicgraph.pipeline.context import StepContext
from topicgraph.providers.asr.base import ASRProvider
from topicgraph.providers.asr.diarization import assign_speakers, count_speakers
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult
from topicgraph.storage.port import artifact_path


class ASRStep(PipelineStep):
    name = StepName.ASR.value
    description = "Transcribe the extracted audio"
    tags = ("asr", "transcript", "speech")
    required_inputs = (ArtifactKind.AUDIO_WAV,)
    produced_outputs = (
        ArtifactKind.TRANSCRIPT,
        ArtifactKind.WORD_ALIGNMENT,
        ArtifactKind.DIARIZATION,
    )

    def __init__(
        self,
        config: ASRStepConfig,
        asr: ASRProvider,
        *,
        retry: RetryPolicy | None = None,
    ) -> None:
        super().__init__(retry=retry)
        self.config = config
        self.asr = asr

    async def cleanup(self, ctx: StepContext) -> None:
        await self.remove_work_dir(ctx)

    async def execute(self, ctx: StepContext) -> StepResult:
        vid = ctx.video_id
        work = ctx.step_work_dir(self.name)
        audio_path = self.require_path(ctx, ArtifactKind.AUDIO_WAV)

        await ctx.report(5, "Fetching audio")
        local_audio = await ctx.storage.download_to(audio_path, work / "audio.wav")

        ctx.check_aborted()
        await ctx.report(15, "Transcribing")
        segments = await self.asr.transcribe(
            str(local_audio),
            self.config.language,
            word_timestamps=self.config.enable_word_alignment,
        )
        if not segments:
            raise StepExecutionError(
                self.name, "ASR returned no segments", video_id=vid, error_code=ErrorCode.ASR_FAILED
            )
        segments.sort(key=lambda s: (s.start, s.end))

        artifacts: dict[ArtifactKind, str] = {}
        if self.config.enable_diarization:
            ctx.check_aborted()
            if self.asr.supports_diarization:
                await ctx.report(70, "Diarizing speakers")
                turns = await self.asr.diarize(str(local_audio))
                segments = assign_speakers(segments, turns)
                diarization_path = artifact_path(vid, "transcripts", "diarization.json")
                await ctx.storage.write_json(diarization_path, serialize_speaker_turns(turns))
                artifacts[ArtifactKind.DIARIZATION] = diarization_path
            else:
                ctx.logger.warning("diarization requested but unsupported", provider=self.asr.provider)

        await ctx.report(85, "Writing transcript")
        transcript_path = artifact_path(vid, "transcripts", "transcript.json")
        await ctx.storage.write_json(transcript_path, serialize_transcript(segments))
        artifacts[ArtifactKind.TRANSCRIPT] = transcript_path

        if self.config.enable_word_alignment:
            alignment_path = artifact_path(vid, "transcripts", "word_alignment.json")
            await ctx.storage.write_json(alignment_path, serialize_word_alignment(segments))
            artifacts[ArtifactKind.WORD_ALIGNMENT] = alignment_path

        metrics = {
            "transcript_segments": len(segments),
            "speaker_count": count_speakers(segments),
        }
        ctx.logger.info("asr step done", **metrics)
        return self.result(artifacts, metrics)
