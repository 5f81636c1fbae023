from __future__ import annotations

import importlib.util
import struct
import sys
from pathlib import Path
from typing import Iterable, Sequence, Tuple

import pytest


def repo_src_path() -> Path:
    """Return the repository's ``src`` directory."""

    return Path(__file__).resolve().parents[1] / "src"


def _ensure_repo_on_path() -> None:
    if importlib.util.find_spec("abif_tool") is None:
        sys.path.insert(0, str(repo_src_path()))


_ensure_repo_on_path()

HEADER_SIZE = 128

# (tag name, tag number, element type code, element size, payload)
Entry = Tuple[str, int, int, int, bytes]


def build_abif(
    entries: Iterable[Entry], *, signature: bytes = b"ABIF", version: int = 101
) -> bytes:
    """Lay out a minimal big-endian ABIF file: header, data area, directory."""

    entries = list(entries)
    body = bytearray(HEADER_SIZE)
    records = []
    for name, number, type_code, element_size, payload in entries:
        size = len(payload)
        count = size // element_size if element_size else 0
        if size <= 4:
            field = payload.ljust(4, b"\x00")
        else:
            field = struct.pack(">I", len(body))
            body.extend(payload)
        records.append(
            struct.pack(
                ">4sIHHII4sI",
                name.encode("latin-1"),
                number,
                type_code,
                element_size,
                count,
                size,
                field,
                0,
            )
        )
    dir_offset = len(body)
    for record in records:
        body.extend(record)

    header = struct.pack(
        ">4sH4sIHHIII",
        signature,
        version,
        b"tdir",
        1,
        1023,
        28,
        len(entries),
        len(entries) * 28,
        dir_offset,
    )
    body[: len(header)] = header
    return bytes(body)


def pstring(text: str) -> bytes:
    raw = text.encode("ascii")
    return bytes([len(raw)]) + raw


def u16s(values: Sequence[int]) -> bytes:
    return struct.pack(f">{len(values)}H", *values)


def f32s(values: Sequence[float]) -> bytes:
    return struct.pack(f">{len(values)}f", *values)


def trace_entries(qv: Sequence[int] | None = None, *, with_noise: bool = True) -> list:
    """Tags of a small but complete sequencing trace."""

    if qv is None:
        qv = [5, 8] + [40] * 30 + [12, 6]
    sequence = ("ACGT" * ((len(qv) // 4) + 1))[: len(qv)]
    entries = [
        ("SMPL", 1, 18, 1, pstring("sample-01")),
        ("TUBE", 1, 18, 1, pstring("A1")),
        ("LANE", 1, 4, 2, u16s([7])),
        ("MCHN", 1, 18, 1, pstring("3730xl-1234")),
        ("SVER", 2, 18, 1, pstring("KB 1.4.0")),
        ("FWO_", 1, 2, 1, b"GATC"),
        ("PBAS", 2, 2, 1, sequence.encode("ascii")),
        ("PCON", 2, 2, 1, bytes(qv)),
        ("PLOC", 2, 4, 2, u16s(list(range(10, 10 + 12 * len(qv), 12)))),
        ("S/N%", 1, 4, 2, u16s([100, 200, 300, 400])),
        ("SPAC", 3, 7, 4, f32s([12.5])),
        ("APrN", 1, 19, 1, b"Protocol\x00"),
        ("Dye#", 1, 4, 2, u16s([4])),
        ("DyeN", 1, 18, 1, pstring("6-FAM")),
    ]
    for channel in range(1, 5):
        entries.append(("DATA", channel, 4, 2, u16s([channel * 100 + i for i in range(6)])))
        entries.append(("DATA", channel + 8, 4, 2, u16s([channel * 10 + i for i in range(6)])))
    if with_noise:
        entries.append(("NOIS", 1, 7, 4, f32s([10.0, 20.0, 30.0, 40.0])))
    return entries


@pytest.fixture
def trace_bytes() -> bytes:
    return build_abif(trace_entries())


@pytest.fixture
def trace_file(tmp_path: Path, trace_bytes: bytes) -> Path:
    path = tmp_path / "sample.ab1"
    path.write_bytes(trace_bytes)
    return path
