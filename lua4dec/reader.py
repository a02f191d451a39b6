"""Width and endianness parameterised primitive decoders.

Every multi-byte value inside a chunk is encoded according to the header:
``int`` and ``size_t`` widths, the instruction word width, the floating
point width and a single byte order flag.  :class:`ChunkReader` walks a byte
buffer with a cursor and picks the matching decoder for each logical type.
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING, Callable, Dict, Tuple

from .errors import MalformedChunk, UnsupportedEncoding

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .header import ChunkHeader


BIG_ENDIAN = 0
LITTLE_ENDIAN = 1

BYTE_ORDERS = {BIG_ENDIAN: "big", LITTLE_ENDIAN: "little"}

INT_SIZES = (2, 4)
SIZE_T_SIZES = (2, 4, 8)
INSTRUCTION_SIZES = (2, 4, 8)
NUMBER_SIZES = (4, 8)

_NUMBER_FORMATS: Dict[Tuple[int, int], str] = {
    (4, BIG_ENDIAN): ">f",
    (4, LITTLE_ENDIAN): "<f",
    (8, BIG_ENDIAN): ">d",
    (8, LITTLE_ENDIAN): "<d",
}


def _integer_decoder(size: int, endianness: int, *, signed: bool) -> Callable[[bytes], int]:
    byteorder = BYTE_ORDERS[endianness]

    def decode(blob: bytes) -> int:
        return int.from_bytes(blob, byteorder, signed=signed)

    return decode


def _build_table(sizes: Tuple[int, ...], *, signed: bool) -> Dict[Tuple[int, int], Callable[[bytes], int]]:
    return {
        (size, endianness): _integer_decoder(size, endianness, signed=signed)
        for size in sizes
        for endianness in BYTE_ORDERS
    }


_INT_DECODERS = _build_table(INT_SIZES, signed=True)
_SIZE_T_DECODERS = _build_table(SIZE_T_SIZES, signed=False)
_INSTRUCTION_DECODERS = _build_table(INSTRUCTION_SIZES, signed=False)


def _select(table: Dict[Tuple[int, int], Callable], kind: str, size: int, endianness: int) -> Callable:
    decoder = table.get((size, endianness))
    if decoder is None:
        raise UnsupportedEncoding(
            f"no {kind} decoder for size={size} endianness={endianness}"
        )
    return decoder


def decode_number(blob: bytes, endianness: int) -> float:
    """Decode an IEEE float of ``len(blob)`` bytes into a Python float."""

    fmt = _NUMBER_FORMATS.get((len(blob), endianness))
    if fmt is None:
        raise UnsupportedEncoding(
            f"no number decoder for size={len(blob)} endianness={endianness}"
        )
    return float(struct.unpack(fmt, blob)[0])


def check_encoding(header: "ChunkHeader") -> None:
    """Reject headers whose primitive widths have no decoder."""

    endianness = header.endianness
    _select(_INT_DECODERS, "int", header.sizeof_int, endianness)
    _select(_SIZE_T_DECODERS, "size_t", header.sizeof_size_t, endianness)
    _select(_INSTRUCTION_DECODERS, "instruction", header.sizeof_instruction, endianness)
    if (header.sizeof_number, endianness) not in _NUMBER_FORMATS:
        raise UnsupportedEncoding(
            f"no number decoder for size={header.sizeof_number} endianness={endianness}"
        )


class ChunkReader:
    """Cursor over a chunk buffer decoding values per the chunk header."""

    def __init__(self, data: bytes, header: "ChunkHeader", offset: int = 0) -> None:
        self._data = bytes(data)
        self._offset = offset
        self.header = header

        check_encoding(header)
        endianness = header.endianness
        self._read_int = _INT_DECODERS[(header.sizeof_int, endianness)]
        self._read_size_t = _SIZE_T_DECODERS[(header.sizeof_size_t, endianness)]
        self._read_word = _INSTRUCTION_DECODERS[(header.sizeof_instruction, endianness)]

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read_bytes(self, length: int) -> bytes:
        if length < 0:
            raise MalformedChunk(f"negative read length {length}", offset=self._offset)
        end = self._offset + length
        if end > len(self._data):
            raise MalformedChunk(
                f"unexpected end of chunk: need {length} byte(s), {self.remaining} left",
                offset=self._offset,
            )
        blob = self._data[self._offset : end]
        self._offset = end
        return blob

    def read_byte(self) -> int:
        return self.read_bytes(1)[0]

    def read_int(self) -> int:
        return self._read_int(self.read_bytes(self.header.sizeof_int))

    def read_size_t(self) -> int:
        return self._read_size_t(self.read_bytes(self.header.sizeof_size_t))

    def read_instruction_word(self) -> int:
        return self._read_word(self.read_bytes(self.header.sizeof_instruction))

    def read_number(self) -> float:
        return decode_number(self.read_bytes(self.header.sizeof_number), self.header.endianness)

    def read_count(self, what: str) -> int:
        """Read an ``int`` element count, rejecting negative values."""

        offset = self._offset
        count = self.read_int()
        if count < 0:
            raise MalformedChunk(f"negative {what} count {count}", offset=offset)
        return count

    def read_string(self) -> str:
        """Read a ``size_t`` prefixed string and strip its trailing NUL.

        A zero length prefix encodes the empty (or absent) string and is not
        followed by a terminator.
        """

        offset = self._offset
        length = self.read_size_t()
        if length == 0:
            return ""
        blob = self.read_bytes(length)
        if blob[-1] != 0:
            raise MalformedChunk("string is not NUL terminated", offset=offset)
        return blob[:-1].decode("utf-8", "surrogateescape")
