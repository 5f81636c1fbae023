"""
Read-quality metrics computed from per-base quality values.

Every function takes the quality sequence ``qv`` as its first argument and
never mutates it. Missing data (``None`` or an empty sequence) and sequences
shorter than the requested window are normal for files without the optional
quality tags, so they produce sentinel values instead of raising. Positions
are counted from zero.

The defaults (window 20, 4 bad bases, threshold 20) are the ones used by the
Sequencing Analysis software, which counts bases from one: add one to the
returned positions to compare with its output.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Tuple

DEFAULT_WINDOW = 20
DEFAULT_BAD_BASES = 4
DEFAULT_THRESHOLD = 20

SEQUENCING_ANALYSIS = "SequencingAnalysis"
GOOD_QUALITY_WINDOWS = "GoodQualityWindows"
LOR_METHODS = (SEQUENCING_ANALYSIS, GOOD_QUALITY_WINDOWS)

CRL_TRIM_SPAN = 5
CRL_MIN_QV = 10

QualityValues = Optional[Sequence[int]]


def clear_range_start(
    qv: QualityValues,
    window: int = DEFAULT_WINDOW,
    bad_bases: int = DEFAULT_BAD_BASES,
    threshold: int = DEFAULT_THRESHOLD,
) -> int:
    """
    Start of the clear range, or ``-1`` when it cannot be computed.

    Bases are trimmed from the 5' end until fewer than ``bad_bases`` of the
    ``window`` bases have a quality value below ``threshold``. If no window
    qualifies the start of the last window is returned.
    """
    if not qv or len(qv) < window:
        return -1
    n_bases = len(qv)
    low = sum(1 for q in qv[:window] if q < threshold)
    if low < bad_bases:
        return 0

    j = window
    while low >= bad_bases and j < n_bases:
        if qv[j - window] < threshold:
            low -= 1
        if qv[j] < threshold:
            low += 1
        j += 1
    return j - window


def clear_range_stop(
    qv: QualityValues,
    window: int = DEFAULT_WINDOW,
    bad_bases: int = DEFAULT_BAD_BASES,
    threshold: int = DEFAULT_THRESHOLD,
) -> int:
    """Mirror image of :func:`clear_range_start`, trimming from the 3' end."""
    if not qv or len(qv) < window:
        return -1
    n_bases = len(qv)
    low = sum(1 for q in qv[n_bases - window :] if q < threshold)
    if low < bad_bases:
        return n_bases - 1

    j = n_bases - window - 1
    while low >= bad_bases and j >= 0:
        if qv[j + window] < threshold:
            low -= 1
        if qv[j] < threshold:
            low += 1
        j -= 1
    return j + window


def sample_score(
    qv: QualityValues,
    window: int = DEFAULT_WINDOW,
    bad_bases: int = DEFAULT_BAD_BASES,
    threshold: int = DEFAULT_THRESHOLD,
) -> float:
    """Average quality value inside the clear range; ``0`` if there is none."""
    start = clear_range_start(qv, window, bad_bases, threshold)
    stop = clear_range_stop(qv, window, bad_bases, threshold)
    if not qv or start < 0 or stop < 0 or stop < start:
        return 0
    return sum(qv[start : stop + 1]) / (stop - start + 1)


def _count_matching(qv: QualityValues, predicate, start: int, stop: int) -> int:
    if not qv:
        return -1
    # A negative stop means no range was given.
    if 0 <= stop and start <= stop:
        values = qv[max(start, 0) : stop + 1]
    else:
        values = qv
    return sum(1 for q in values if predicate(q))


def num_high_quality_bases(
    qv: QualityValues, threshold: int, start: int = 0, stop: int = -1
) -> int:
    """Bases with quality ``>= threshold`` in ``[start, stop]`` (or everywhere)."""
    return _count_matching(qv, lambda q: q >= threshold, start, stop)


def num_medium_quality_bases(
    qv: QualityValues, min_qv: int, max_qv: int, start: int = 0, stop: int = -1
) -> int:
    """Bases with ``min_qv <= quality <= max_qv`` in ``[start, stop]`` (or everywhere)."""
    return _count_matching(qv, lambda q: min_qv <= q <= max_qv, start, stop)


def num_low_quality_bases(
    qv: QualityValues, threshold: int, start: int = 0, stop: int = -1
) -> int:
    """Bases with quality ``<= threshold`` in ``[start, stop]`` (or everywhere)."""
    return _count_matching(qv, lambda q: q <= threshold, start, stop)


def _longest_good_run(
    qv: Sequence[int], window: int, threshold: int
) -> Tuple[int, int]:
    limit = window * threshold
    total = sum(qv[:window])
    in_run = total >= limit
    start = stop = new_start = 0

    for i in range(window, len(qv)):
        total += qv[i] - qv[i - window]
        if in_run and total < limit:
            in_run = False
            if stop - start < i - new_start - 1:
                start, stop = new_start, i - 1
        elif not in_run and total >= limit:
            in_run = True
            new_start = i - window + 1

    if in_run and stop - start < len(qv) - new_start - 1:
        start, stop = new_start, len(qv) - 1
    return start, stop


def contiguous_read_length(
    qv: QualityValues,
    window: int = DEFAULT_WINDOW,
    threshold: int = DEFAULT_THRESHOLD,
) -> Tuple[int, int]:
    """
    Bounds ``(start, stop)`` of the Contiguous Read Length.

    The CRL is the longest stretch in which every window of ``window`` bases
    averages at least ``threshold``; the first one wins ties. Its ends are
    then trimmed until the first and last five bases hold no quality value
    below 10. ``(0, 0)`` means no usable region.
    """
    if not qv or len(qv) < window:
        return (0, 0)
    start, stop = _longest_good_run(qv, window, threshold)

    j = 0
    while start + CRL_TRIM_SPAN - 1 <= stop and j < CRL_TRIM_SPAN:
        if qv[start + j] < CRL_MIN_QV:
            start += j + 1
            j = 0
        else:
            j += 1

    j = 0
    while start + CRL_TRIM_SPAN - 1 <= stop and j < CRL_TRIM_SPAN:
        if qv[stop - j] < CRL_MIN_QV:
            stop -= j + 1
            j = 0
        else:
            j += 1

    if stop - start < CRL_TRIM_SPAN - 1:
        if any(q < CRL_MIN_QV for q in qv[start : stop + 1]):
            return (0, 0)
    return (start, stop)


def _first_good_window(qv: Sequence[int], window: int, limit: int) -> int | None:
    total = sum(qv[:window])
    i = window
    while total < limit and i < len(qv):
        total += qv[i] - qv[i - window]
        i += 1
    if total < limit:
        return None
    return i - window


def _last_good_window_end(qv: Sequence[int], window: int, limit: int) -> int | None:
    n_bases = len(qv)
    total = sum(qv[n_bases - window :])
    i = n_bases - window - 1
    while total < limit and i >= 0:
        total += qv[i] - qv[i + window]
        i -= 1
    if total < limit:
        return None
    return i + window


def length_of_read(
    qv: QualityValues,
    window: int = DEFAULT_WINDOW,
    threshold: int = DEFAULT_THRESHOLD,
    method: str = SEQUENCING_ANALYSIS,
) -> int:
    """
    Length Of Read score.

    ``SequencingAnalysis`` measures the widest range that starts and ends with
    a window whose average quality is at least ``threshold``.
    ``GoodQualityWindows`` counts the windows whose average quality is at
    least ``threshold``. Returns ``0`` when there are fewer than ``window``
    quality values.
    """
    if method not in LOR_METHODS:
        raise ValueError(
            f"unknown LOR method {method!r}; expected one of {', '.join(LOR_METHODS)}"
        )
    if not qv or len(qv) < window:
        return 0
    limit = window * threshold

    if method == GOOD_QUALITY_WINDOWS:
        total = sum(qv[:window])
        lor = 1 if total >= limit else 0
        for i in range(window, len(qv)):
            total += qv[i] - qv[i - window]
            if total >= limit:
                lor += 1
        return lor

    start = _first_good_window(qv, window, limit)
    stop = _last_good_window_end(qv, window, limit)
    if start is None or stop is None or stop <= start:
        return 0
    return stop - start + 1


def avg_signal_to_noise_ratio(
    signal: Optional[Mapping[str, float]], noise: Optional[Mapping[str, float]]
) -> float:
    """Mean of ``signal[base] / noise[base]``; ``0`` when either map is missing."""
    if not signal or not noise:
        return 0
    ratios = [signal[base] / noise[base] for base in signal if noise.get(base)]
    if not ratios:
        return 0
    return sum(ratios) / len(ratios)


__all__ = [
    "DEFAULT_BAD_BASES",
    "DEFAULT_THRESHOLD",
    "DEFAULT_WINDOW",
    "GOOD_QUALITY_WINDOWS",
    "LOR_METHODS",
    "SEQUENCING_ANALYSIS",
    "avg_signal_to_noise_ratio",
    "clear_range_start",
    "clear_range_stop",
    "contiguous_read_length",
    "length_of_read",
    "num_high_quality_bases",
    "num_low_quality_bases",
    "num_medium_quality_bases",
    "sample_score",
]
