"""Named accessors for the commonly used tags of sequencing trace files."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Tuple, TypeVar

from . import quality
from .abif import ABIFFile
from .decode import (
    CHARS,
    CSTRING,
    FLOAT32,
    PSTRING,
    Template,
    UINT8_ARRAY,
    UINT16,
    UINT16_ARRAY,
)

T = TypeVar("T")

BASES = "ACGT"
RAW_CHANNEL_5_TAG = 105
ANALYZED_CHANNEL_OFFSET = 8
ANALYZED_CHANNEL_5_TAG = 205


class ABIFTrace:
    """
    Sequencing-trace view of an :class:`ABIFFile`.

    Each accessor decodes its tag on first use and caches the result. A tag
    that is absent from the file yields an empty value (``""``, ``0``,
    ``[]`` or ``{}``) rather than an error.
    """

    def __init__(self, abif: ABIFFile) -> None:
        self.abif = abif
        self._cache: Dict[Tuple[str, int, Template], object] = {}

    @classmethod
    def open(cls, path: Path | str, *, debug: bool = False) -> "ABIFTrace":
        return cls(ABIFFile.open(path, debug=debug))

    def close(self) -> None:
        self._cache.clear()
        self.abif.close()

    def __enter__(self) -> "ABIFTrace":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _cached(self, key: Tuple[str, int, Template], loader: Callable[[], T]) -> T:
        if key not in self._cache:
            self._cache[key] = loader()
        return self._cache[key]  # type: ignore[return-value]

    def _first(self, tag: str, number: int, template: Template, default):
        def load():
            values = self.abif.get_data_item(tag, number, template)
            return values[0] if values else default

        return self._cached((tag, number, template), load)

    def _all(self, tag: str, number: int, template: Template) -> list:
        def load():
            return self.abif.get_data_item(tag, number, template) or []

        return list(self._cached((tag, number, template), load))

    # Run and instrument metadata

    def sample_name(self) -> str:
        return self._first("SMPL", 1, PSTRING, "")

    def data_collection_software_version(self) -> str:
        return self._first("SVER", 1, PSTRING, "")

    def basecaller_version(self) -> str:
        return self._first("SVER", 2, PSTRING, "")

    def data_collection_firmware_version(self) -> str:
        return self._first("SVER", 3, PSTRING, "")

    def official_instrument_name(self) -> str:
        return self._first("HCFG", 3, PSTRING, "")

    def well_id(self) -> str:
        return self._first("TUBE", 1, PSTRING, "")

    def capillary_number(self) -> int:
        return self._first("LANE", 1, UINT16, 0)

    def user(self) -> str:
        return self._first("User", 1, PSTRING, "")

    def instrument_name_and_serial_number(self) -> str:
        return self._first("MCHN", 1, PSTRING, "")

    def sequencing_analysis_param_filename(self) -> str:
        return self._first("APFN", 2, PSTRING, "")

    def comment(self) -> str:
        return self._first("CMNT", 1, PSTRING, "")

    def num_capillaries(self) -> int:
        return self._first("NLNE", 1, UINT16, 0)

    def sample_tracking_id(self) -> str:
        return self._first("LIMS", 1, PSTRING, "")

    def analysis_protocol_xml(self) -> str:
        return self._first("APrX", 1, CHARS, "")

    def analysis_protocol_settings_name(self) -> str:
        return self._first("APrN", 1, CSTRING, "")

    def analysis_protocol_settings_version(self) -> str:
        return self._first("APrV", 1, CSTRING, "")

    def analysis_protocol_xml_schema_version(self) -> str:
        return self._first("APXV", 1, CSTRING, "")

    def results_group(self) -> str:
        return self._first("RGNm", 1, CSTRING, "")

    def run_module_name(self) -> str:
        return self._first("RMdN", 1, CSTRING, "")

    def run_module_version(self) -> str:
        return self._first("RMdV", 1, CSTRING, "")

    def container_owner(self) -> str:
        return self._first("CTOw", 1, CSTRING, "")

    def num_dyes(self) -> int:
        return self._first("Dye#", 1, UINT16, 0)

    def dye_name(self, n: int) -> str:
        if not 1 <= n <= 4:
            return ""
        return self._first("DyeN", n, PSTRING, "")

    # Base order and traces

    def base_order(self) -> List[str]:
        """Bases in channel order, e.g. ``['G', 'A', 'T', 'C']``."""
        return list(self._first("FWO_", 1, CHARS, ""))

    def order_base(self) -> Dict[str, int]:
        """Inverse of :meth:`base_order`: base -> zero-based channel index."""
        return {base: i for i, base in enumerate(self.base_order())}

    def raw_data_for_channel(self, channel: int) -> List[int]:
        """Raw samples for channel 1..4, or the optional channel 5."""
        if not 1 <= channel <= 5:
            return []
        number = RAW_CHANNEL_5_TAG if channel == 5 else channel
        return self._all("DATA", number, UINT16_ARRAY)

    def analyzed_data_for_channel(self, channel: int) -> List[int]:
        if not 1 <= channel <= 5:
            return []
        number = (
            ANALYZED_CHANNEL_5_TAG if channel == 5 else channel + ANALYZED_CHANNEL_OFFSET
        )
        return self._all("DATA", number, UINT16_ARRAY)

    def _channel_for_base(self, base: str) -> int | None:
        base = base.upper()
        if len(base) != 1 or base not in BASES:
            return None
        index = self.order_base().get(base)
        return None if index is None else index + 1

    def raw_trace(self, base: str) -> List[int]:
        channel = self._channel_for_base(base)
        return self.raw_data_for_channel(channel) if channel else []

    def trace(self, base: str) -> List[int]:
        channel = self._channel_for_base(base)
        return self.analyzed_data_for_channel(channel) if channel else []

    # Base calls

    def quality_values(self) -> List[int]:
        return self._all("PCON", 2, UINT8_ARRAY)

    def edited_quality_values(self) -> List[int]:
        return self._all("PCON", 1, UINT8_ARRAY)

    def sequence(self) -> str:
        return self._first("PBAS", 2, CHARS, "")

    def sequence_length(self) -> int:
        return len(self.sequence())

    def edited_sequence(self) -> str:
        return self._first("PBAS", 1, CHARS, "")

    def edited_sequence_length(self) -> int:
        return len(self.edited_sequence())

    def peak1_location_orig(self) -> int:
        return self._first("B1Pt", 1, UINT16, 0)

    def peak1_location(self) -> int:
        return self._first("B1Pt", 2, UINT16, 0)

    def base_spacing(self) -> float:
        return self._first("SPAC", 3, FLOAT32, 0.0)

    def basecaller_bcp_dll(self) -> str:
        return self._first("SPAC", 2, PSTRING, "")

    def base_locations(self) -> List[int]:
        return self._all("PLOC", 2, UINT16_ARRAY)

    def base_locations_edited(self) -> List[int]:
        return self._all("PLOC", 1, UINT16_ARRAY)

    def _by_base(self, values: list) -> Dict[str, float]:
        return dict(zip(self.base_order(), values))

    def signal_level(self) -> Dict[str, int]:
        """Signal level per base, keyed by base letter."""
        return self._by_base(self._all("S/N%", 1, UINT16_ARRAY))

    def noise(self) -> Dict[str, float]:
        """Estimated noise per base (KB basecaller only)."""
        return self._by_base(self._all("NOIS", 1, FLOAT32))

    # Quality metrics over this trace's quality values

    def avg_signal_to_noise_ratio(self) -> float:
        return quality.avg_signal_to_noise_ratio(self.signal_level(), self.noise())

    def clear_range_start(self, *args, **kwargs) -> int:
        return quality.clear_range_start(self.quality_values(), *args, **kwargs)

    def clear_range_stop(self, *args, **kwargs) -> int:
        return quality.clear_range_stop(self.quality_values(), *args, **kwargs)

    def sample_score(self, *args, **kwargs) -> float:
        return quality.sample_score(self.quality_values(), *args, **kwargs)

    def num_high_quality_bases(self, *args, **kwargs) -> int:
        return quality.num_high_quality_bases(self.quality_values(), *args, **kwargs)

    def num_medium_quality_bases(self, *args, **kwargs) -> int:
        return quality.num_medium_quality_bases(self.quality_values(), *args, **kwargs)

    def num_low_quality_bases(self, *args, **kwargs) -> int:
        return quality.num_low_quality_bases(self.quality_values(), *args, **kwargs)

    def contiguous_read_length(self, *args, **kwargs) -> Tuple[int, int]:
        return quality.contiguous_read_length(self.quality_values(), *args, **kwargs)

    def length_of_read(self, *args, **kwargs) -> int:
        return quality.length_of_read(self.quality_values(), *args, **kwargs)


__all__ = ["ABIFTrace", "BASES"]
