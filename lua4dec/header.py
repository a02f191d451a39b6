"""Parser for the Lua 4.0 chunk preamble."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import HeaderError, UnsupportedEncoding
from .reader import BYTE_ORDERS, check_encoding, decode_number


logger = logging.getLogger(__name__)

ID_CHUNK = 0x1B
SIGNATURE = "Lua"
VERSION = 0x40
TEST_NUMBER = 314159265.358979

# id byte, signature, version and the eight encoding parameters
FIXED_SIZE = 13


@dataclass(frozen=True)
class ChunkHeader:
    """Encoding parameters shared by every value stored in the chunk."""

    id_chunk: int
    signature: str
    version: int
    endianness: int
    sizeof_int: int
    sizeof_size_t: int
    sizeof_instruction: int
    size_instruction: int
    size_op: int
    size_b: int
    sizeof_number: int
    test_number: bytes = b""

    @property
    def byteorder(self) -> str:
        return BYTE_ORDERS[self.endianness]

    @property
    def header_size(self) -> int:
        return FIXED_SIZE + self.sizeof_number

    @property
    def size_a(self) -> int:
        return self.size_instruction - self.size_op - self.size_b

    def describe(self) -> str:
        return (
            f"Lua {self.version >> 4}.{self.version & 0xF} {self.byteorder}-endian "
            f"int={self.sizeof_int} size_t={self.sizeof_size_t} "
            f"instruction={self.sizeof_instruction} ({self.size_instruction} bits: "
            f"op={self.size_op} b={self.size_b} a={self.size_a}) number={self.sizeof_number}"
        )


def read_header(data: bytes) -> ChunkHeader:
    """Decode and validate the preamble at the start of ``data``."""

    if len(data) < FIXED_SIZE:
        raise HeaderError(f"chunk too short for a header: {len(data)} byte(s)", 0)

    if data[0] != ID_CHUNK:
        raise HeaderError(f"bad chunk id 0x{data[0]:02X}, expected 0x{ID_CHUNK:02X}", 0)
    signature = data[1:4].decode("latin-1")
    if signature != SIGNATURE:
        raise HeaderError(f"bad signature {signature!r}", 1)
    if data[4] != VERSION:
        raise HeaderError(f"unsupported version 0x{data[4]:02X}, expected 0x{VERSION:02X}", 4)

    (
        endianness,
        sizeof_int,
        sizeof_size_t,
        sizeof_instruction,
        size_instruction,
        size_op,
        size_b,
        sizeof_number,
    ) = data[5:FIXED_SIZE]

    test_number = bytes(data[FIXED_SIZE : FIXED_SIZE + sizeof_number])
    if len(test_number) != sizeof_number:
        raise HeaderError(
            f"truncated test number: need {sizeof_number} byte(s), {len(test_number)} left",
            FIXED_SIZE,
        )

    header = ChunkHeader(
        id_chunk=data[0],
        signature=signature,
        version=data[4],
        endianness=endianness,
        sizeof_int=sizeof_int,
        sizeof_size_t=sizeof_size_t,
        sizeof_instruction=sizeof_instruction,
        size_instruction=size_instruction,
        size_op=size_op,
        size_b=size_b,
        sizeof_number=sizeof_number,
        test_number=test_number,
    )
    _validate_encoding(header)

    sample = decode_number(test_number, endianness)
    if abs(sample - TEST_NUMBER) > 1e-3 * TEST_NUMBER:
        logger.warning("header test number %r does not match %r", sample, TEST_NUMBER)

    logger.debug("chunk header: %s", header.describe())
    return header


def _validate_encoding(header: ChunkHeader) -> None:
    try:
        check_encoding(header)
    except UnsupportedEncoding as exc:
        raise UnsupportedEncoding(str(exc), 5) from None

    if header.size_op <= 0 or header.size_b <= 0:
        raise UnsupportedEncoding(
            f"opcode and B fields must be non-empty (op={header.size_op}, b={header.size_b})", 9
        )
    if header.size_instruction > 8 * header.sizeof_instruction:
        raise UnsupportedEncoding(
            f"{header.size_instruction}-bit instructions do not fit in "
            f"{header.sizeof_instruction} byte(s)",
            8,
        )
    if header.size_op + header.size_b >= header.size_instruction:
        raise UnsupportedEncoding(
            f"op={header.size_op} and b={header.size_b} leave no room for the A field "
            f"in {header.size_instruction}-bit instructions",
            9,
        )
