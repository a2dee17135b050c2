"""Waveform processing services."""

from seisview.core.services.assembler import DEFAULT_GAP_TOLERANCE, assemble_segments
from seisview.core.services.decimation import DEFAULT_BINS, decimate, envelope_indices
from seisview.core.services.scaling import demean, percentile_range, scale_for_display
from seisview.core.services.trace_builder import build_trace, select_channel

__all__ = [
    "DEFAULT_BINS",
    "DEFAULT_GAP_TOLERANCE",
    "assemble_segments",
    "build_trace",
    "decimate",
    "demean",
    "envelope_indices",
    "percentile_range",
    "scale_for_display",
    "select_channel",
]
