"""
Top-level package for reading ABIF sequencing trace files.

This package collects the ABIF container parser, typed payload decoding,
named accessors for common trace tags, and read-quality metrics (clear range,
CRL, LOR) computed from per-base quality values.
"""

from .abif import (
    ABIFFile,
    ABIFFormatError,
    ABIFHeader,
    DirectoryEntry,
    ElementType,
    NotABIFError,
    UnsupportedLegacyVariantError,
)
from .decode import DecodeError, Template, TemplateKind, decode, decode_float32
from .quality import (
    avg_signal_to_noise_ratio,
    clear_range_start,
    clear_range_stop,
    contiguous_read_length,
    length_of_read,
    num_high_quality_bases,
    num_low_quality_bases,
    num_medium_quality_bases,
    sample_score,
)
from .trace import ABIFTrace

__all__ = [
    "__version__",
    "ABIFFile",
    "ABIFHeader",
    "ABIFTrace",
    "DirectoryEntry",
    "ElementType",
    "ABIFFormatError",
    "NotABIFError",
    "UnsupportedLegacyVariantError",
    "DecodeError",
    "Template",
    "TemplateKind",
    "decode",
    "decode_float32",
    "clear_range_start",
    "clear_range_stop",
    "sample_score",
    "num_high_quality_bases",
    "num_medium_quality_bases",
    "num_low_quality_bases",
    "contiguous_read_length",
    "length_of_read",
    "avg_signal_to_noise_ratio",
]

__version__ = "0.0.1"
