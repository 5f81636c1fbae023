"""Quality control reporting for ABIF sequencing traces."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from . import quality
from .trace import ABIFTrace

logger = logging.getLogger(__name__)

QC_VERSION = 1

DEFAULT_MIN_LOR = 100
DEFAULT_MIN_CRL = 100
HIGH_QV = 20
MEDIUM_QV = (15, 19)
LOW_QV = 14

_STATUS_ORDER = {"PASS": 0, "WARN": 1, "FAIL": 2}


def _worse_status(current: str, candidate: str) -> str:
    return candidate if _STATUS_ORDER[candidate] > _STATUS_ORDER[current] else current


def _hash_file(path: Path) -> str:
    hasher = hashlib.sha1()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _base_report(path: Path, params: dict) -> dict:
    return {
        "tool": "abif_tool",
        "qc_version": QC_VERSION,
        "input": {"type": "abif", "path": str(path)},
        "params": params,
        "overall": {"status": "PASS", "reasons": [], "suggestions": []},
        "header": None,
        "sample": None,
        "metrics": None,
    }


def _flag(report: dict, status: str, reason: str, suggestion: str | None = None) -> None:
    overall = report["overall"]
    overall["status"] = _worse_status(overall["status"], status)
    overall["reasons"].append(reason)
    if suggestion and suggestion not in overall["suggestions"]:
        overall["suggestions"].append(suggestion)


def _sample_section(trace: ABIFTrace) -> dict:
    return {
        "sample_name": trace.sample_name(),
        "well_id": trace.well_id(),
        "capillary": trace.capillary_number(),
        "instrument": trace.instrument_name_and_serial_number(),
        "basecaller": trace.basecaller_version(),
        "base_order": "".join(trace.base_order()),
        "sequence_length": trace.sequence_length(),
    }


def _window_qualifies(
    qv: list[int], start: int, window: int, bad_bases: int, threshold: int
) -> bool:
    if start < 0:
        return False
    low = sum(1 for q in qv[start : start + window] if q < threshold)
    return low < bad_bases


def compute_metrics(
    qv: list[int],
    *,
    window: int = quality.DEFAULT_WINDOW,
    bad_bases: int = quality.DEFAULT_BAD_BASES,
    threshold: int = quality.DEFAULT_THRESHOLD,
) -> dict:
    """Every quality metric for one quality sequence, as a plain dict."""
    crl_start, crl_stop = quality.contiguous_read_length(qv, window, threshold)
    clear_start = quality.clear_range_start(qv, window, bad_bases, threshold)
    clear_stop = quality.clear_range_stop(qv, window, bad_bases, threshold)
    score = quality.sample_score(qv, window, bad_bases, threshold)
    # Without a qualifying window the clear range bounds are only scan limits.
    if not _window_qualifies(qv, clear_start, window, bad_bases, threshold):
        clear_start = clear_stop = -1
        score = 0
    crl_length = crl_stop - crl_start + 1 if crl_stop > crl_start else 0
    return {
        "num_quality_values": len(qv),
        "mean_quality": (sum(qv) / len(qv)) if qv else 0,
        "clear_range": {"start": clear_start, "stop": clear_stop},
        "sample_score": score,
        "high_quality_bases": quality.num_high_quality_bases(qv, HIGH_QV),
        "medium_quality_bases": quality.num_medium_quality_bases(qv, *MEDIUM_QV),
        "low_quality_bases": quality.num_low_quality_bases(qv, LOW_QV),
        "crl": {"start": crl_start, "stop": crl_stop, "length": crl_length},
        "lor": {
            quality.SEQUENCING_ANALYSIS: quality.length_of_read(
                qv, window, threshold, quality.SEQUENCING_ANALYSIS
            ),
            quality.GOOD_QUALITY_WINDOWS: quality.length_of_read(
                qv, window, threshold, quality.GOOD_QUALITY_WINDOWS
            ),
        },
    }


def _evaluate(report: dict, min_lor: int, min_crl: int) -> None:
    metrics = report["metrics"]
    if not metrics["num_quality_values"]:
        _flag(
            report,
            "FAIL",
            "no quality values (PCON2) in file",
            "re-run base calling with quality values enabled",
        )
        return

    clear = metrics["clear_range"]
    if clear["start"] < 0 or clear["stop"] < 0 or clear["stop"] < clear["start"]:
        _flag(
            report,
            "FAIL",
            "no clear range found",
            "check sample preparation; the read may be too short or too noisy",
        )

    lor = metrics["lor"][quality.SEQUENCING_ANALYSIS]
    if lor < min_lor:
        _flag(report, "WARN", f"LOR {lor} below {min_lor}")

    crl_length = metrics["crl"]["length"]
    if crl_length < min_crl:
        _flag(report, "WARN", f"CRL {crl_length} below {min_crl}")

    if report["overall"]["status"] == "WARN":
        report["overall"]["suggestions"].append(
            "inspect the trace ends; consider re-sequencing if the read is short"
        )


def qc_from_abif(
    path: Path | str,
    *,
    window: int = quality.DEFAULT_WINDOW,
    bad_bases: int = quality.DEFAULT_BAD_BASES,
    threshold: int = quality.DEFAULT_THRESHOLD,
    min_lor: int = DEFAULT_MIN_LOR,
    min_crl: int = DEFAULT_MIN_CRL,
    debug: bool = False,
) -> dict:
    path = Path(path)
    params = {
        "window": window,
        "bad_bases": bad_bases,
        "threshold": threshold,
        "min_lor": min_lor,
        "min_crl": min_crl,
    }
    report = _base_report(path, params)
    report["input"]["sha1"] = _hash_file(path)

    with ABIFTrace.open(path, debug=debug) as trace:
        header = trace.abif.header
        report["header"] = {
            "version": header.version,
            "num_entries": header.num_entries,
            "dir_offset": header.dir_offset,
        }
        report["sample"] = _sample_section(trace)
        qv = trace.quality_values()
        report["metrics"] = compute_metrics(
            qv, window=window, bad_bases=bad_bases, threshold=threshold
        )
        report["metrics"]["avg_signal_to_noise"] = trace.avg_signal_to_noise_ratio()

    _evaluate(report, min_lor, min_crl)
    if not report["overall"]["reasons"]:
        report["overall"]["reasons"].append("all checks passed")
    logger.debug("QC %s: %s", path, report["overall"]["status"])
    return report


def summarize_qc(report: dict) -> str:
    overall = report.get("overall", {})
    status = overall.get("status", "PASS")
    reasons = overall.get("reasons") or []
    reason = reasons[0] if reasons else "no issues detected"
    return f"QC: {status} — {reason}"


def _summarize_metrics_line(report: dict) -> str:
    metrics = report.get("metrics") or {}
    if not metrics.get("num_quality_values"):
        return "Quality: no quality values."
    clear = metrics.get("clear_range") or {}
    crl = metrics.get("crl") or {}
    lor = (metrics.get("lor") or {}).get(quality.SEQUENCING_ANALYSIS, 0)
    return (
        f"Quality: {metrics['num_quality_values']} bases, "
        f"clear range {clear.get('start')}-{clear.get('stop')}, "
        f"sample score {metrics.get('sample_score', 0):.1f}, "
        f"CRL {crl.get('length', 0)}, LOR {lor}"
    )


def _format_detail_lines(report: dict) -> list[str]:
    metrics = report.get("metrics") or {}
    sample = report.get("sample") or {}
    lines = [
        f"Sample: {sample.get('sample_name') or '(unnamed)'}"
        f" well {sample.get('well_id') or '?'}"
        f" capillary {sample.get('capillary') or '?'}",
        f"Basecaller: {sample.get('basecaller') or 'unknown'}",
        f"Bases: high {metrics.get('high_quality_bases', -1)}"
        f" / medium {metrics.get('medium_quality_bases', -1)}"
        f" / low {metrics.get('low_quality_bases', -1)}",
    ]
    crl = metrics.get("crl") or {}
    lines.append(f"CRL region: {crl.get('start', 0)}-{crl.get('stop', 0)}")
    lor = metrics.get("lor") or {}
    lines.append(
        "LOR: "
        + ", ".join(f"{method} {value}" for method, value in sorted(lor.items()))
    )
    snr = metrics.get("avg_signal_to_noise")
    if snr:
        lines.append(f"Avg signal/noise: {snr:.2f}")
    suggestions = (report.get("overall") or {}).get("suggestions") or []
    for suggestion in suggestions:
        lines.append(f"Suggestion: {suggestion}")
    return lines


def format_detail_summary(report: dict, *, detail: bool = False) -> str:
    lines = [summarize_qc(report), _summarize_metrics_line(report)]
    if detail:
        lines.append("")
        lines.extend(_format_detail_lines(report))
    return "\n".join(lines)


def default_output_path(input_path: Path | str) -> Path:
    base = Path(input_path).name
    return Path(f"qc_{base}").with_suffix(".json")


__all__ = [
    "compute_metrics",
    "default_output_path",
    "format_detail_summary",
    "qc_from_abif",
    "summarize_qc",
]
