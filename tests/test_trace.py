from __future__ import annotations

from pathlib import Path

import pytest

from conftest import build_abif, f32s, trace_entries
from abif_tool.abif import ABIFFile
from abif_tool.trace import ABIFTrace


@pytest.fixture
def trace(trace_bytes: bytes) -> ABIFTrace:
    return ABIFTrace(ABIFFile.from_bytes(trace_bytes))


def test_metadata_accessors(trace: ABIFTrace) -> None:
    assert trace.sample_name() == "sample-01"
    assert trace.well_id() == "A1"
    assert trace.capillary_number() == 7
    assert trace.instrument_name_and_serial_number() == "3730xl-1234"
    assert trace.basecaller_version() == "KB 1.4.0"
    assert trace.analysis_protocol_settings_name() == "Protocol"
    assert trace.num_dyes() == 4
    assert trace.dye_name(1) == "6-FAM"


def test_absent_tags_give_empty_values(trace: ABIFTrace) -> None:
    assert trace.comment() == ""
    assert trace.user() == ""
    assert trace.container_owner() == ""
    assert trace.run_module_name() == ""
    assert trace.num_capillaries() == 0
    assert trace.peak1_location() == 0
    assert trace.edited_sequence() == ""
    assert trace.edited_sequence_length() == 0
    assert trace.edited_quality_values() == []
    assert trace.base_locations_edited() == []
    assert trace.raw_data_for_channel(5) == []
    assert trace.analyzed_data_for_channel(5) == []
    assert trace.dye_name(2) == ""


def test_out_of_range_arguments_give_empty_values(trace: ABIFTrace) -> None:
    assert trace.dye_name(0) == ""
    assert trace.dye_name(5) == ""
    assert trace.raw_data_for_channel(0) == []
    assert trace.analyzed_data_for_channel(6) == []
    assert trace.raw_trace("N") == []
    assert trace.trace("AC") == []


def test_base_order_and_traces(trace: ABIFTrace) -> None:
    assert trace.base_order() == ["G", "A", "T", "C"]
    assert trace.order_base() == {"G": 0, "A": 1, "T": 2, "C": 3}
    assert trace.raw_data_for_channel(1) == [100, 101, 102, 103, 104, 105]
    # A is the second channel; raw data lives in DATA2, analyzed in DATA10.
    assert trace.raw_trace("a") == [200, 201, 202, 203, 204, 205]
    assert trace.trace("A") == [20, 21, 22, 23, 24, 25]
    assert trace.trace("c") == trace.analyzed_data_for_channel(4)


def test_base_calls(trace: ABIFTrace) -> None:
    qv = trace.quality_values()
    assert qv == [5, 8] + [40] * 30 + [12, 6]
    assert trace.sequence_length() == len(qv)
    assert trace.sequence().startswith("ACGTACGT")
    assert trace.base_locations()[:3] == [10, 22, 34]
    assert trace.base_spacing() == pytest.approx(12.5)


def test_returned_lists_are_copies(trace: ABIFTrace) -> None:
    qv = trace.quality_values()
    qv.append(99)
    assert 99 not in trace.quality_values()


def test_signal_and_noise(trace: ABIFTrace) -> None:
    assert trace.signal_level() == {"G": 100, "A": 200, "T": 300, "C": 400}
    assert trace.noise() == {"G": 10.0, "A": 20.0, "T": 30.0, "C": 40.0}
    assert trace.avg_signal_to_noise_ratio() == pytest.approx(10.0)


def test_signal_to_noise_without_noise_tag() -> None:
    data = build_abif(trace_entries(with_noise=False))
    trace = ABIFTrace(ABIFFile.from_bytes(data))
    assert trace.noise() == {}
    assert trace.avg_signal_to_noise_ratio() == 0


def test_zero_noise_base_is_skipped() -> None:
    entries = trace_entries(with_noise=False)
    entries.append(("NOIS", 1, 7, 4, f32s([0.0, 20.0, 30.0, 40.0])))
    trace = ABIFTrace(ABIFFile.from_bytes(build_abif(entries)))
    assert trace.noise()["G"] == 0.0
    assert trace.avg_signal_to_noise_ratio() == pytest.approx(10.0)


def test_quality_metrics_use_trace_values(trace: ABIFTrace) -> None:
    assert trace.clear_range_start() == 0
    assert trace.clear_range_stop() == 33
    assert trace.num_high_quality_bases(20) == 30
    assert trace.num_low_quality_bases(10) == 3
    assert trace.num_medium_quality_bases(10, 20) == 1
    assert trace.contiguous_read_length() == (2, 32)
    assert trace.length_of_read(20, 20) == 34
    assert trace.length_of_read(20, 20, "GoodQualityWindows") == 15
    assert trace.sample_score() == pytest.approx(sum(trace.quality_values()) / 34)


def test_metrics_on_trace_without_quality_values() -> None:
    entries = [e for e in trace_entries() if e[0] != "PCON"]
    trace = ABIFTrace(ABIFFile.from_bytes(build_abif(entries)))
    assert trace.quality_values() == []
    assert trace.clear_range_start() == -1
    assert trace.sample_score() == 0
    assert trace.num_high_quality_bases(20) == -1
    assert trace.contiguous_read_length() == (0, 0)
    assert trace.length_of_read(20, 20) == 0


def test_open_and_close(trace_file: Path) -> None:
    with ABIFTrace.open(trace_file) as trace:
        assert trace.sample_name() == "sample-01"
    assert trace.abif.closed
