"""Read-only navigation over an offline Windows registry hive.

Cell and bin decoding is left to ``python-registry`` (``Registry.RegistryParse``).
This module wraps its records in an immutable, index-addressed key tree that
lives exactly as long as the hive buffer it was parsed from.
"""
from __future__ import annotations

import struct
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence, Union

from Registry import RegistryParse

REG_SZ = RegistryParse.RegSZ
REG_BINARY = RegistryParse.RegBin
REG_DWORD = RegistryParse.RegDWord
REG_QWORD = RegistryParse.RegQWord

_FIRST_HBIN_OFFSET = 0x1000
_HBINS_SIZE_OFFSET = 0x28
# Value data lengths above this are stored as a "db" segment list.
_BIG_DATA_LIMIT = 0x3FD8
# High bit of the data length marks data stored inside the value record itself.
_RESIDENT_FLAG = 0x80000000


class HiveParseError(ValueError):
    """Raised when a buffer is not a structurally valid registry hive."""


@dataclass(frozen=True)
class Inline:
    data: bytes


@dataclass(frozen=True)
class Segmented:
    chunks: tuple[bytes, ...]


HiveValue = Union[Inline, Segmented]


@dataclass(frozen=True)
class RegistryKeyNode:
    """A key in the hive tree, addressed by its slot in the hive arena."""

    hive: "Hive" = field(repr=False, compare=False)
    index: int
    name: str

    def subkeys(self) -> Iterator[tuple[str, "RegistryKeyNode"]]:
        return self.hive.subkeys(self)

    def subpath(self, segments: Union[str, Sequence[str]]) -> Optional["RegistryKeyNode"]:
        return self.hive.subpath(self, segments)

    def value(self, name: str, accept: Sequence[int] = (REG_BINARY,)) -> Optional[HiveValue]:
        return self.hive.value(self, name, accept=accept)


@dataclass
class _KeySlot:
    record: RegistryParse.NKRecord
    name: str
    children: Optional[tuple[int, ...]] = None


@contextmanager
def _decoding(what: str):
    try:
        yield
    except (RegistryParse.RegistryException, struct.error, IndexError, UnicodeDecodeError) as exc:
        raise HiveParseError(f"Corrupt registry hive while reading {what}: {exc}") from exc


def _split_path(segments: Union[str, Sequence[str]]) -> list[str]:
    if isinstance(segments, str):
        segments = segments.split("\\")
    return [s for s in segments if s]


class Hive:
    """A parsed hive buffer with lazily materialized key slots."""

    def __init__(self, buffer: bytes):
        self._buf = bytes(buffer)

        with _decoding("hive header"):
            regf = RegistryParse.REGFBlock(self._buf, 0, False)
            declared = _FIRST_HBIN_OFFSET + regf.unpack_dword(_HBINS_SIZE_OFFSET)
            if len(self._buf) < declared:
                raise HiveParseError(
                    f"Truncated registry hive: {len(self._buf)} bytes, header declares {declared}"
                )
            root_record = regf.first_key()
            root_name = root_record.name()

        self._arena: list[_KeySlot] = [_KeySlot(record=root_record, name=root_name)]

    def root(self) -> RegistryKeyNode:
        return RegistryKeyNode(self, 0, self._arena[0].name)

    def _node(self, index: int) -> RegistryKeyNode:
        return RegistryKeyNode(self, index, self._arena[index].name)

    def _children(self, index: int) -> tuple[int, ...]:
        slot = self._arena[index]
        if slot.children is not None:
            return slot.children

        new_slots: list[_KeySlot] = []
        with _decoding(f"subkeys of {slot.name!r}"):
            if slot.record.subkey_number() > 0:
                for record in slot.record.subkey_list().keys():
                    new_slots.append(_KeySlot(record=record, name=record.name()))

        start = len(self._arena)
        self._arena.extend(new_slots)
        slot.children = tuple(range(start, start + len(new_slots)))
        return slot.children

    def subkeys(self, node: RegistryKeyNode) -> Iterator[tuple[str, RegistryKeyNode]]:
        """Yield ``(name, node)`` for each child of ``node`` in on-disk order."""

        for index in self._children(node.index):
            child = self._node(index)
            yield child.name, child

    def subkey(self, node: RegistryKeyNode, name: str) -> Optional[RegistryKeyNode]:
        wanted = name.lower()
        for child_name, child in self.subkeys(node):
            if child_name.lower() == wanted:
                return child
        return None

    def subpath(
        self, node: RegistryKeyNode, segments: Union[str, Sequence[str]]
    ) -> Optional[RegistryKeyNode]:
        """Walk ``segments`` below ``node``; ``None`` if any segment is missing."""

        current: Optional[RegistryKeyNode] = node
        for segment in _split_path(segments):
            current = self.subkey(current, segment)
            if current is None:
                return None
        return current

    def value_names(self, node: RegistryKeyNode) -> list[str]:
        return [vk.name() for vk in self._value_records(node)]

    def _value_records(self, node: RegistryKeyNode) -> list[RegistryParse.VKRecord]:
        record = self._arena[node.index].record
        with _decoding(f"values of {node.name!r}"):
            if record.values_number() == 0:
                return []
            return list(record.values_list().values())

    def value(
        self,
        node: RegistryKeyNode,
        name: str,
        accept: Sequence[int] = (REG_BINARY,),
    ) -> Optional[HiveValue]:
        """Return the payload of value ``name``.

        A value whose declared type is not listed in ``accept`` is reported as
        absent, the same as a value that does not exist.
        """

        wanted = name.lower()
        for vk in self._value_records(node):
            with _decoding(f"value {name!r} of {node.name!r}"):
                if vk.name().lower() != wanted:
                    continue
                if vk.data_type() not in accept:
                    return None
                return self._payload(vk)
        return None

    def _payload(self, vk: RegistryParse.VKRecord) -> HiveValue:
        length = vk.raw_data_length()
        if _BIG_DATA_LIMIT < length < _RESIDENT_FLAG:
            cell = RegistryParse.HBINCell(self._buf, vk.data_offset(), vk)
            if cell.data_id() == b"db":
                return Segmented(tuple(self._segments(cell, length)))
        return Inline(bytes(vk.raw_data()))

    def _segments(self, cell: RegistryParse.HBINCell, length: int) -> Iterator[bytes]:
        db = RegistryParse.DBRecord(self._buf, cell.data_offset(), cell)
        count = db.unpack_word(0x2)
        list_cell = RegistryParse.HBINCell(
            self._buf, db.abs_offset_from_hbin_offset(db.unpack_dword(0x4)), db
        )

        remaining = length
        for i in range(count):
            if remaining <= 0:
                break
            offset = list_cell.abs_offset_from_hbin_offset(list_cell.unpack_dword(0x4 + 4 * i))
            segment = RegistryParse.HBINCell(self._buf, offset, list_cell)
            size = min(_BIG_DATA_LIMIT, remaining)
            yield bytes(segment.raw_data()[:size])
            remaining -= size


def open_hive(buffer: bytes) -> Hive:
    """Parse ``buffer`` as a registry hive, raising :class:`HiveParseError`."""

    return Hive(buffer)


def load_hive(path: str) -> Hive:
    try:
        with open(path, "rb") as f:
            buffer = f.read()
    except OSError as exc:
        raise HiveParseError(f"Failed to read hive {path}: {exc}") from exc
    return open_hive(buffer)


def decode_uint(value: Optional[HiveValue], size: int) -> Optional[int]:
    """Decode an inline little-endian unsigned integer of exactly ``size`` bytes."""

    if not isinstance(value, Inline) or len(value.data) != size:
        return None
    return int.from_bytes(value.data, "little", signed=False)


def decode_qword(value: Optional[HiveValue]) -> Optional[int]:
    return decode_uint(value, 8)


def decode_dword(value: Optional[HiveValue]) -> Optional[int]:
    return decode_uint(value, 4)


__all__ = [
    "REG_BINARY",
    "REG_DWORD",
    "REG_QWORD",
    "REG_SZ",
    "Hive",
    "HiveParseError",
    "HiveValue",
    "Inline",
    "RegistryKeyNode",
    "Segmented",
    "decode_dword",
    "decode_qword",
    "decode_uint",
    "load_hive",
    "open_hive",
]
