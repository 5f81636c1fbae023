"""
ABIF container parser.

An ABIF file starts with a fixed header followed, somewhere in the file, by a
directory of 28-byte entries. Each entry describes one data item, keyed by a
four-character tag name and a tag number. Items of four bytes or less live in
the entry itself; larger items are stored elsewhere and the entry holds their
absolute offset.

All multi-byte values are big-endian. The little-endian ``FIBA`` variant is
deprecated and rejected on open.
"""

from __future__ import annotations

import enum
import io
import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple

from .decode import Template, decode

logger = logging.getLogger(__name__)

SIGNATURE = b"ABIF"
LEGACY_SIGNATURE = b"FIBA"
HEADER_SIZE = 30
DIR_ENTRY_SIZE = 28
USER_TYPE_MIN = 1024

TagKey = Tuple[str, int]


class ABIFFormatError(ValueError):
    """Structural problem with an ABIF container."""


class NotABIFError(ABIFFormatError):
    """The source does not start with the ABIF signature."""


class UnsupportedLegacyVariantError(ABIFFormatError):
    """The source is a byte-reversed (little-endian) ABIF file."""


class ElementType(enum.Enum):
    BYTE = 1
    CHAR = 2
    WORD = 3
    SHORT = 4
    LONG = 5
    RATIONAL = 6
    FLOAT = 7
    DOUBLE = 8
    BCD = 9
    DATE = 10
    TIME = 11
    THUMB = 12
    BOOL = 13
    POINT = 14
    RECT = 15
    VPOINT = 16
    VRECT = 17
    PSTRING = 18
    CSTRING = 19
    TAG = 20
    DELTA_COMP = 128
    LZW_COMP = 256
    DELTA_LZW = 384
    USER = -1
    UNKNOWN = -2

    @classmethod
    def from_code(cls, code: int) -> "ElementType":
        """Map a directory type code onto a member; never raises."""
        if code >= USER_TYPE_MIN:
            return cls.USER
        if code < 0:
            return cls.UNKNOWN
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS = {
    ElementType.BYTE: "byte",
    ElementType.CHAR: "char",
    ElementType.WORD: "word",
    ElementType.SHORT: "short",
    ElementType.LONG: "long",
    ElementType.RATIONAL: "rational",
    ElementType.FLOAT: "float",
    ElementType.DOUBLE: "double",
    ElementType.BCD: "BCD",
    ElementType.DATE: "date",
    ElementType.TIME: "time",
    ElementType.THUMB: "thumb",
    ElementType.BOOL: "bool",
    ElementType.POINT: "point",
    ElementType.RECT: "rect",
    ElementType.VPOINT: "vPoint",
    ElementType.VRECT: "vRect",
    ElementType.PSTRING: "pString",
    ElementType.CSTRING: "cString",
    ElementType.TAG: "tag",
    ElementType.DELTA_COMP: "deltaComp",
    ElementType.LZW_COMP: "LZWComp",
    ElementType.DELTA_LZW: "deltaLZW",
    ElementType.USER: "user",
    ElementType.UNKNOWN: "unknown",
}


@dataclass(frozen=True)
class ABIFHeader:
    signature: bytes
    version_raw: int
    num_entries: int
    dir_offset: int

    @property
    def version(self) -> float:
        return self.version_raw / 100


@dataclass(frozen=True)
class DirectoryEntry:
    tag_name: str
    tag_number: int
    element_type: ElementType
    type_code: int
    element_size: int
    num_elements: int
    data_size: int
    data_offset: int
    # None when the entry was decoded without reading an out-of-line payload.
    data_item: Optional[bytes]
    offset: int

    @property
    def key(self) -> TagKey:
        return (self.tag_name, self.tag_number)

    @property
    def is_inline(self) -> bool:
        return self.data_size <= 4


def _decode_tag_name(raw: bytes) -> str:
    # Trailing NULs and spaces are padding.
    return raw.decode("latin-1").rstrip(" \x00")


class ABIFFile:
    """
    Random-access reader over one ABIF container.

    The tag index is built by a full directory scan when the file is opened
    and is read-only afterwards. Every read seeks the shared handle, so one
    instance must not be used from several threads at once; open a second
    instance instead.
    """

    def __init__(
        self,
        handle: BinaryIO,
        header: ABIFHeader,
        source_size: int,
        *,
        name: str | None = None,
        owns_handle: bool = True,
        debug: bool = False,
    ) -> None:
        self._handle: Optional[BinaryIO] = handle
        self.header = header
        self.source_size = source_size
        self.name = name or "<stream>"
        self.debug = debug
        self._owns_handle = owns_handle
        self._tag_index: Dict[TagKey, int] = {}
        self._tag_order: List[TagKey] = []

    @classmethod
    def open(cls, path: Path | str, *, debug: bool = False) -> "ABIFFile":
        handle = Path(path).open("rb")
        try:
            return cls.from_handle(handle, name=str(path), debug=debug)
        except BaseException:
            handle.close()
            raise

    @classmethod
    def from_bytes(
        cls, data: bytes, *, name: str | None = None, debug: bool = False
    ) -> "ABIFFile":
        return cls.from_handle(io.BytesIO(data), name=name, debug=debug)

    @classmethod
    def from_handle(
        cls,
        handle: BinaryIO,
        *,
        name: str | None = None,
        owns_handle: bool = True,
        debug: bool = False,
    ) -> "ABIFFile":
        """Validate the header of a seekable binary source and index its tags."""
        handle.seek(0, os.SEEK_END)
        source_size = handle.tell()
        handle.seek(0)
        raw = handle.read(HEADER_SIZE)

        signature = raw[:4]
        if signature == LEGACY_SIGNATURE:
            raise UnsupportedLegacyVariantError(
                "little-endian ABIF file (FIBA signature) is deprecated and unsupported"
            )
        if signature != SIGNATURE:
            raise NotABIFError("Not an ABIF file (missing ABIF signature)")
        if len(raw) < HEADER_SIZE:
            raise ABIFFormatError(
                f"truncated ABIF header: {len(raw)} of {HEADER_SIZE} bytes"
            )

        (version_raw,) = struct.unpack(">H", raw[4:6])
        (num_entries,) = struct.unpack(">I", raw[18:22])
        (dir_offset,) = struct.unpack(">I", raw[26:30])
        dir_end = dir_offset + num_entries * DIR_ENTRY_SIZE
        if dir_end > source_size:
            raise ABIFFormatError(
                f"directory ({num_entries} entries at offset {dir_offset}) "
                f"extends past end of file ({source_size} bytes)"
            )

        header = ABIFHeader(
            signature=signature,
            version_raw=version_raw,
            num_entries=num_entries,
            dir_offset=dir_offset,
        )
        abif = cls(
            handle,
            header,
            source_size,
            name=name,
            owns_handle=owns_handle,
            debug=debug,
        )
        abif._scan_tags()
        abif._log(
            "opened %s: ABIF v%.2f, %d directory entries at offset %d",
            abif.name,
            header.version,
            num_entries,
            dir_offset,
        )
        return abif

    def _log(self, msg: str, *args: object) -> None:
        logger.log(logging.INFO if self.debug else logging.DEBUG, msg, *args)

    def _require_handle(self) -> BinaryIO:
        if self._handle is None:
            raise ValueError("I/O operation on closed ABIF file")
        return self._handle

    def _iter_prefixes(self) -> Iterator[Tuple[TagKey, int]]:
        handle = self._require_handle()
        for i in range(self.header.num_entries):
            offset = self.header.dir_offset + i * DIR_ENTRY_SIZE
            handle.seek(offset)
            raw = handle.read(8)
            if len(raw) < 8:
                raise ABIFFormatError(f"truncated directory entry at offset {offset}")
            (number,) = struct.unpack(">I", raw[4:8])
            yield (_decode_tag_name(raw[:4]), number), offset

    def _scan_tags(self) -> None:
        index: Dict[TagKey, int] = {}
        order: List[TagKey] = []
        for key, offset in self._iter_prefixes():
            if key not in index:
                order.append(key)
            index[key] = offset
        self._tag_index = index
        self._tag_order = order

    @property
    def closed(self) -> bool:
        return self._handle is None

    @property
    def version(self) -> float:
        return self.header.version

    @property
    def num_dir_entries(self) -> int:
        return self.header.num_entries

    @property
    def data_offset(self) -> int:
        return self.header.dir_offset

    def tags(self) -> List[TagKey]:
        return list(self._tag_order)

    def lookup(self, tag_name: str, tag_number: int) -> int | None:
        """Return the directory offset of a tag from the index, or ``None``."""
        self._require_handle()
        return self._tag_index.get((tag_name, tag_number))

    def lookup_linear(self, tag_name: str, tag_number: int) -> int | None:
        """Scan the directory on disk for a tag; ignores the index."""
        for key, offset in self._iter_prefixes():
            if key == (tag_name, tag_number):
                return offset
        return None

    def search_tag(self, tag_name: str, tag_number: int) -> int | None:
        offset = self.lookup(tag_name, tag_number)
        if offset is not None:
            return offset
        logger.debug(
            "%s: tag %s%d not indexed, falling back to linear scan",
            self.name,
            tag_name,
            tag_number,
        )
        return self.lookup_linear(tag_name, tag_number)

    def _read_at(self, offset: int, size: int) -> bytes:
        if offset + size > self.source_size:
            raise ABIFFormatError(
                f"{size} bytes at offset {offset} extend past end of file "
                f"({self.source_size} bytes)"
            )
        handle = self._require_handle()
        handle.seek(offset)
        return handle.read(size)

    def _decode_entry(
        self, tag_name: str, tag_number: int, offset: int, *, with_payload: bool = True
    ) -> DirectoryEntry:
        handle = self._require_handle()
        handle.seek(offset + 8)
        raw = handle.read(16)
        if len(raw) < 16:
            raise ABIFFormatError(f"truncated directory entry at offset {offset}")
        type_code, element_size, num_elements, data_size = struct.unpack(
            ">HHII", raw[:12]
        )
        field = raw[12:16]
        if data_size > 4:
            (data_offset,) = struct.unpack(">I", field)
            data_item = self._read_at(data_offset, data_size) if with_payload else None
        else:
            # Payload is the field itself; no second seek.
            data_offset = offset + 20
            data_item = field[:data_size]

        return DirectoryEntry(
            tag_name=tag_name,
            tag_number=tag_number,
            element_type=ElementType.from_code(type_code),
            type_code=type_code,
            element_size=element_size,
            num_elements=num_elements,
            data_size=data_size,
            data_offset=data_offset,
            data_item=data_item,
            offset=offset,
        )

    def get_directory(self, tag_name: str, tag_number: int) -> DirectoryEntry | None:
        """Decode the directory entry for ``(tag_name, tag_number)``."""
        offset = self.search_tag(tag_name, tag_number)
        if offset is None:
            return None
        return self._decode_entry(tag_name, tag_number, offset)

    read_entry = get_directory

    def get_raw_data_item(self, tag_name: str, tag_number: int) -> bytes | None:
        entry = self.get_directory(tag_name, tag_number)
        return entry.data_item if entry is not None else None

    def get_data_item(
        self, tag_name: str, tag_number: int, template: Template
    ) -> list | None:
        """
        Fetch a data item and decode it with ``template``.

        Returns ``None`` when the tag is absent. Raises ``DecodeError`` when the
        payload does not fit the template.
        """
        raw = self.get_raw_data_item(tag_name, tag_number)
        if raw is None:
            return None
        return decode(raw, template)

    def directory(self, *, with_payload: bool = True) -> List[DirectoryEntry]:
        """
        Decode every directory entry in file order.

        With ``with_payload=False`` out-of-line payloads are neither read nor
        bounds-checked, so one bad offset does not hide the other entries.
        """
        entries = []
        for (tag_name, tag_number), offset in list(self._iter_prefixes()):
            entries.append(
                self._decode_entry(
                    tag_name, tag_number, offset, with_payload=with_payload
                )
            )
        return entries

    def close(self) -> None:
        if self._handle is None:
            return
        if self._owns_handle:
            self._handle.close()
        self._handle = None
        self._tag_index = {}
        self._tag_order = []
        self._log("closed %s", self.name)

    def __enter__(self) -> "ABIFFile":
        return self

    def __exit__(self, *args) -> None:
        self.close()


__all__ = [
    "ABIFFile",
    "ABIFFormatError",
    "ABIFHeader",
    "DirectoryEntry",
    "ElementType",
    "NotABIFError",
    "UnsupportedLegacyVariantError",
    "DIR_ENTRY_SIZE",
]
