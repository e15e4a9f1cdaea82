"""Run filtering, line building, reading order and boilerplate learning."""

from .classifier import LineClassifierConfig, classify_line
from .columns import detect_two_columns, resolve_reading_order
from .front_matter import FrontMatterConfig, filter_front_matter
from .glyph_join import join_runs
from .header_footer import (
    HeaderFooterConfig,
    HeaderFooterSignatureSet,
    learn_signatures,
    remove_running_lines,
)
from .line_builder import build_lines
from .models import Exclusion, ExclusionReason, Line, LineKind, PageLines, TextSegment
from .noise_filter import NoiseFilterConfig, compute_stamp_keys, filter_runs

__all__ = [
    "Exclusion",
    "ExclusionReason",
    "Line",
    "LineKind",
    "PageLines",
    "TextSegment",
    "NoiseFilterConfig",
    "compute_stamp_keys",
    "filter_runs",
    "join_runs",
    "build_lines",
    "detect_two_columns",
    "resolve_reading_order",
    "LineClassifierConfig",
    "classify_line",
    "HeaderFooterConfig",
    "HeaderFooterSignatureSet",
    "learn_signatures",
    "remove_running_lines",
    "FrontMatterConfig",
    "filter_front_matter",
]
