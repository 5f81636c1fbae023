import pytest

from abif_tool.quality import (
    GOOD_QUALITY_WINDOWS,
    SEQUENCING_ANALYSIS,
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


def test_clear_range_needs_a_full_window() -> None:
    qv = [30] * 19
    assert clear_range_start(qv) == -1
    assert clear_range_stop(qv) == -1
    assert clear_range_start(qv, 5, 2, 20) == 0
    assert clear_range_stop(qv, 5, 2, 20) == 18


@pytest.mark.parametrize("qv", [None, []])
def test_clear_range_without_quality_values(qv) -> None:
    assert clear_range_start(qv) == -1
    assert clear_range_stop(qv) == -1
    assert sample_score(qv) == 0


def test_clear_range_start_slides_past_low_quality_bases() -> None:
    qv = [5, 5, 30, 30, 30, 30, 30, 30]
    assert clear_range_start(qv, window=5, bad_bases=2, threshold=20) == 1
    assert clear_range_stop(qv, window=5, bad_bases=2, threshold=20) == 7


def test_clear_range_stop_slides_past_low_quality_bases() -> None:
    qv = [30] * 6 + [5, 5]
    assert clear_range_start(qv, window=5, bad_bases=2, threshold=20) == 0
    assert clear_range_stop(qv, window=5, bad_bases=2, threshold=20) == 6


def test_clear_range_when_no_window_qualifies() -> None:
    qv = [0] * 6
    assert clear_range_start(qv, 5, 2, 20) == 1
    assert clear_range_stop(qv, 5, 2, 20) == 4


def test_clear_range_on_exactly_one_bad_window() -> None:
    qv = [0] * 5
    assert clear_range_start(qv, 5, 2, 20) == 0
    assert clear_range_stop(qv, 5, 2, 20) == 4


def test_default_clear_range() -> None:
    qv = [10] * 10 + [35] * 60 + [10] * 10
    start = clear_range_start(qv)
    stop = clear_range_stop(qv)
    assert qv[start : start + 20].count(10) < 4
    assert qv[start - 1 : start + 19].count(10) >= 4
    assert (start, stop) == (7, 72)


def test_sample_score_averages_the_clear_range() -> None:
    qv = [5, 5, 30, 30, 30, 30, 30, 30]
    assert sample_score(qv, 5, 2, 20) == pytest.approx(185 / 7)
    assert sample_score([30] * 3) == 0


def test_base_counts_over_whole_sequence() -> None:
    qv = [10, 20, 30, 5, 25]
    assert num_high_quality_bases(qv, 20) == 3
    assert num_medium_quality_bases(qv, 10, 20) == 2
    assert num_low_quality_bases(qv, 10) == 2


def test_base_counts_over_inclusive_range() -> None:
    qv = [10, 20, 30, 5, 25]
    assert num_high_quality_bases(qv, 20, 1, 2) == 2
    assert num_medium_quality_bases(qv, 5, 25, 3, 4) == 2
    assert num_low_quality_bases(qv, 10, 0, 0) == 1
    # start > stop means "no range given"
    assert num_high_quality_bases(qv, 20, 4, 1) == 3


def test_base_counts_negative_stop_counts_everything() -> None:
    qv = [30] * 10
    assert num_high_quality_bases(qv, 20, -5, -2) == 10
    assert num_high_quality_bases(qv, 20, -3, -1) == 10
    assert num_low_quality_bases(qv, 30, -2, 3) == 4


@pytest.mark.parametrize("qv", [None, []])
def test_base_counts_without_quality_values(qv) -> None:
    assert num_high_quality_bases(qv, 20) == -1
    assert num_medium_quality_bases(qv, 15, 19) == -1
    assert num_low_quality_bases(qv, 14) == -1


def test_crl_short_region_below_ten_is_discarded() -> None:
    assert contiguous_read_length([5, 5, 5], window=2, threshold=2) == (0, 0)


def test_crl_short_clean_region_is_kept() -> None:
    assert contiguous_read_length([30, 30, 30], window=2, threshold=20) == (0, 2)


def test_crl_needs_a_full_window() -> None:
    assert contiguous_read_length([40] * 19) == (0, 0)
    assert contiguous_read_length(None) == (0, 0)
    assert contiguous_read_length([]) == (0, 0)


def test_crl_finds_and_trims_the_good_region() -> None:
    qv = [0] * 5 + [30] * 20 + [0] * 5
    assert contiguous_read_length(qv, window=5, threshold=20) == (5, 24)


def test_crl_ties_keep_the_earliest_region() -> None:
    qv = [30, 30, 0, 0, 0, 30, 30]
    assert contiguous_read_length(qv, window=2, threshold=20) == (0, 1)


def test_crl_prefers_the_longest_region() -> None:
    qv = [30] * 4 + [0] * 4 + [30] * 10
    start, stop = contiguous_read_length(qv, window=2, threshold=20)
    assert (start, stop) == (8, 17)


def test_crl_trims_low_bases_inside_the_edges() -> None:
    qv = [40, 5] + [40] * 30 + [5, 40]
    assert contiguous_read_length(qv, window=5, threshold=20) == (2, 31)


def test_lor_good_quality_windows() -> None:
    qv = [10, 20, 30, 5]
    assert length_of_read(qv, 2, 15, GOOD_QUALITY_WINDOWS) == 3
    assert length_of_read(qv, 2, 20, GOOD_QUALITY_WINDOWS) == 1
    assert length_of_read(qv, 4, 15, GOOD_QUALITY_WINDOWS) == 1


def test_lor_sequencing_analysis() -> None:
    assert length_of_read([10, 20, 30, 5], 2, 15) == 4
    assert length_of_read([0, 0, 30, 30, 30, 0, 0], 2, 20, SEQUENCING_ANALYSIS) == 3


def test_lor_is_zero_when_no_window_passes() -> None:
    assert length_of_read([1] * 30, 20, 20) == 0
    assert length_of_read([1] * 30, 20, 20, GOOD_QUALITY_WINDOWS) == 0


def test_lor_single_window_span_is_zero() -> None:
    # One passing window starting and ending at the same base.
    assert length_of_read([30], 1, 20) == 0


def test_lor_needs_a_full_window() -> None:
    assert length_of_read([40] * 5, 6, 20) == 0
    assert length_of_read(None, 2, 20) == 0
    assert length_of_read([], 2, 20, GOOD_QUALITY_WINDOWS) == 0


def test_lor_rejects_unknown_method() -> None:
    with pytest.raises(ValueError, match="unknown LOR method"):
        length_of_read([40] * 30, 20, 20, "Bogus")


def test_avg_signal_to_noise_ratio() -> None:
    signal = {"A": 10, "C": 20, "G": 30, "T": 40}
    noise = {"A": 2.0, "C": 4.0, "G": 5.0, "T": 8.0}
    assert avg_signal_to_noise_ratio(signal, noise) == pytest.approx(5.25)


def test_avg_signal_to_noise_ratio_missing_data() -> None:
    signal = {"A": 10, "C": 20, "G": 30, "T": 40}
    assert avg_signal_to_noise_ratio(signal, {}) == 0
    assert avg_signal_to_noise_ratio({}, {"A": 1.0}) == 0
    assert avg_signal_to_noise_ratio(None, None) == 0
    assert avg_signal_to_noise_ratio(signal, {"A": 0.0}) == 0
