"""
Packet framing for the binary half of a VobSub pair.

The stream is a sequence of physical packets. Each packet has a fixed seven byte header:

    00 00 01 BD     private stream start code
    LL LL           payload length, big-endian
    FF              flags, bit 0 set when more fragments of the same subtitle follow

followed by the payload. One subtitle image is a run of consecutive packets ending with a packet
whose continuation flag is clear. Cues address runs by the byte offset of their first packet.
"""
import os
import struct

from PySubparse.Helpers.Localization import _
from PySubparse.SubtitleError import InvalidConfigurationError, TruncatedStreamError

START_CODE = b'\x00\x00\x01\xbd'
# Every MPEG start code, private stream or pack header, begins with this prefix
START_CODE_PREFIX = START_CODE[:3]
CONTINUATION_FLAG = 0x01

_HEADER = struct.Struct('>4sHB')
HEADER_SIZE = _HEADER.size
MAX_PACKET_SIZE = 0xFFFF

# A full physical packet fills one 2048 byte DVD sector
DEFAULT_PACKET_SIZE = int(os.getenv('SUBPARSE_PACKET_SIZE', str(2048 - HEADER_SIZE)))

def ValidatePacketSize(packet_size : int|None) -> int:
    if packet_size is None:
        return DEFAULT_PACKET_SIZE
    if isinstance(packet_size, bool) or not isinstance(packet_size, int) or not 0 < packet_size <= MAX_PACKET_SIZE:
        raise InvalidConfigurationError(_("Packet size must be between 1 and {max}, got {size}").format(max=MAX_PACKET_SIZE, size=packet_size))
    return packet_size

def PackPayload(payload : bytes, packet_size : int|None = None) -> bytes:
    """
    Split a payload into physical packets of at most packet_size payload bytes.

    The continuation flag is set on every packet except the last. A payload that is an exact
    multiple of the packet size does not get a trailing empty packet, but an empty payload is
    written as a single empty packet so that it can still be addressed.
    """
    packet_size = ValidatePacketSize(packet_size)

    chunks = [payload[i:i + packet_size] for i in range(0, len(payload), packet_size)] or [b'']

    output = bytearray()
    for index, chunk in enumerate(chunks):
        flags = CONTINUATION_FLAG if index < len(chunks) - 1 else 0
        output += _HEADER.pack(START_CODE, len(chunk), flags)
        output += chunk

    return bytes(output)

def UnpackPayload(stream : bytes, offset : int) -> tuple[bytes, int]:
    """
    Reassemble the payload of the packet run starting at offset.

    Returns the payload and the number of physical bytes the run occupies.
    Raises TruncatedStreamError if the framing is inconsistent with the stream length.
    """
    if offset < 0 or offset >= len(stream):
        raise TruncatedStreamError(_("Packet offset is outside the stream ({size} bytes)").format(size=len(stream)), offset=offset)

    payload = bytearray()
    position = offset
    while True:
        if position + HEADER_SIZE > len(stream):
            if position > offset:
                raise TruncatedStreamError(_("Continuation flag set but no packet follows"), offset=offset)
            raise TruncatedStreamError(_("Packet header is truncated"), offset=offset)

        start_code, length, flags = _HEADER.unpack_from(stream, position)
        if start_code != START_CODE:
            raise TruncatedStreamError(_("Invalid packet start code at 0x{position:x}").format(position=position), offset=offset)

        payload_start = position + HEADER_SIZE
        payload_end = payload_start + length
        if payload_end > len(stream):
            raise TruncatedStreamError(_("Packet length {length} exceeds the remaining {remaining} bytes").format(length=length, remaining=len(stream) - payload_start), offset=offset)

        payload += stream[payload_start:payload_end]
        position = payload_end

        if not flags & CONTINUATION_FLAG:
            return bytes(payload), position - offset

def IsPacketStream(data : bytes) -> bool:
    """True if the data starts with an MPEG start code, as a VobSub .sub stream does"""
    return bytes(data[:len(START_CODE_PREFIX)]) == START_CODE_PREFIX
