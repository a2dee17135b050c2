"""Decode pipeline orchestration."""

from seisview.core.pipeline.cancellation import CancellationToken
from seisview.core.pipeline.orchestrator import BufferFetcher, StateListener, WaveformPipeline
from seisview.core.pipeline.processing import process_buffer
from seisview.core.pipeline.state import PipelineState, PipelineStatus, WaveformResult

__all__ = [
    "BufferFetcher",
    "CancellationToken",
    "PipelineState",
    "PipelineStatus",
    "StateListener",
    "WaveformPipeline",
    "WaveformResult",
    "process_buffer",
]
