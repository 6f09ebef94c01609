"""
MockAPI Binary Payloads

Small but well-formed binary documents for {{binary.<kind>}} placeholders,
plus helpers to recognise base64 payloads and pick a content type.

Kinds:
- excel: single-entry OOXML-style zip ([Content_Types].xml)
- pdf: one-page PDF 1.4 document with a valid xref table
- image: 1x1 PNG
- zip: single empty entry deflate archive
- csv: header row plus three freshly generated rows
"""

import base64
import binascii
import csv
import io
import re
import struct
import zlib
from datetime import timezone
from typing import Dict, Optional

from faker import Faker

from ..common import isoformat_utc


BINARY_CONTENT_TYPES: Dict[str, str] = {
    'excel': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'pdf': 'application/pdf',
    'image': 'image/png',
    'zip': 'application/zip',
    'csv': 'text/csv',
}

DEFAULT_BINARY_CONTENT_TYPE = 'application/octet-stream'

# Shorter strings are treated as text even if they happen to be valid base64
MIN_BINARY_LENGTH = 50

CSV_HEADER = ['id', 'name', 'email', 'created_at']

_BINARY_PLACEHOLDER = re.compile(r'\{\{\s*binary\.(\w+)\s*\}\}')

# DOS date for 1980-01-01, time 00:00
_DOS_TIME = 0x0000
_DOS_DATE = 0x0021


def _zip_single_empty_entry(filename: str, flags: int) -> bytes:
    """
    Build a zip archive holding one empty, deflated entry.

    An empty deflate stream is the two bytes 03 00 and its CRC-32 is zero,
    so the archive is fully determined by the filename and flag bits.
    """
    name = filename.encode('utf-8')
    data = b'\x03\x00'
    crc = 0

    local_header = struct.pack(
        '<4sHHHHHIIIHH',
        b'PK\x03\x04', 20, flags, 8, _DOS_TIME, _DOS_DATE,
        crc, len(data), 0, len(name), 0
    ) + name

    central_directory = struct.pack(
        '<4sHHHHHHIIIHHHHHII',
        b'PK\x01\x02', 20, 20, flags, 8, _DOS_TIME, _DOS_DATE,
        crc, len(data), 0, len(name), 0, 0, 0, 0, 0, 0
    ) + name

    cd_offset = len(local_header) + len(data)
    end_of_central_directory = struct.pack(
        '<4sHHHHIIH',
        b'PK\x05\x06', 0, 0, 1, 1, len(central_directory), cd_offset, 0
    )

    return local_header + data + central_directory + end_of_central_directory


def build_excel() -> bytes:
    """Zip container with Office's local header flags (0x0006)."""
    return _zip_single_empty_entry('[Content_Types].xml', flags=0x0006)


def build_zip() -> bytes:
    return _zip_single_empty_entry('empty.txt', flags=0x0000)


def build_pdf() -> bytes:
    """Minimal single-page PDF 1.4 document."""
    content = b'BT /F1 24 Tf 72 720 Td (Mock PDF Document) Tj ET'
    objects = [
        b'<< /Type /Catalog /Pages 2 0 R >>',
        b'<< /Type /Pages /Kids [3 0 R] /Count 1 >>',
        b'<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] '
        b'/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>',
        b'<< /Length ' + str(len(content)).encode('ascii') + b' >>\nstream\n'
        + content + b'\nendstream',
        b'<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>',
    ]

    out = io.BytesIO()
    out.write(b'%PDF-1.4\n')
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(f'{number} 0 obj\n'.encode('ascii') + body + b'\nendobj\n')

    xref_offset = out.tell()
    out.write(f'xref\n0 {len(objects) + 1}\n'.encode('ascii'))
    out.write(b'0000000000 65535 f \n')
    for offset in offsets:
        out.write(f'{offset:010d} 00000 n \n'.encode('ascii'))
    out.write(
        f'trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n'
        f'startxref\n{xref_offset}\n%%EOF\n'.encode('ascii')
    )
    return out.getvalue()


def _png_chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xffffffff
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


def build_png() -> bytes:
    """1x1 opaque white RGB PNG."""
    ihdr = struct.pack('>IIBBBBB', 1, 1, 8, 2, 0, 0, 0)
    scanline = b'\x00\xff\xff\xff'  # filter byte + one RGB pixel
    return (
        b'\x89PNG\r\n\x1a\n'
        + _png_chunk(b'IHDR', ihdr)
        + _png_chunk(b'IDAT', zlib.compress(scanline))
        + _png_chunk(b'IEND', b'')
    )


class BinaryGenerator:
    """
    Generator for {{binary.<kind>}} payloads.

    Fixed documents are built once; csv rows are regenerated on every call.

    Example:
        generator = BinaryGenerator()
        encoded = generator.encode('pdf')
        assert base64.b64decode(encoded).startswith(b'%PDF')
    """

    def __init__(self, fake: Optional[Faker] = None):
        self.fake = fake or Faker()
        self._fixed = {
            'excel': build_excel(),
            'pdf': build_pdf(),
            'image': build_png(),
            'zip': build_zip(),
        }

    @property
    def kinds(self):
        return list(BINARY_CONTENT_TYPES)

    def build_csv(self, rows: int = 3) -> bytes:
        """CSV document with a header row and freshly generated rows."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(CSV_HEADER)
        for row_id in range(1, rows + 1):
            writer.writerow([
                row_id,
                self.fake.name(),
                self.fake.email(),
                isoformat_utc(self.fake.past_datetime(start_date='-365d', tzinfo=timezone.utc))
            ])
        return buffer.getvalue().encode('utf-8')

    def generate(self, kind: str) -> bytes:
        """
        Raw bytes for a payload kind.

        Raises:
            KeyError: If the kind is unknown
        """
        if kind == 'csv':
            return self.build_csv()
        return self._fixed[kind]

    def encode(self, kind: str) -> str:
        """Base64 text for a payload kind."""
        return base64.b64encode(self.generate(kind)).decode('ascii')


def is_base64_payload(value: str, min_length: int = MIN_BINARY_LENGTH) -> bool:
    """
    Check whether a string looks like a base64-encoded binary payload.

    The string must be longer than min_length and survive a strict
    decode/re-encode round trip unchanged.
    """
    if not isinstance(value, str) or len(value) <= min_length:
        return False
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return base64.b64encode(decoded).decode('ascii') == value


def detect_binary_kind(template) -> Optional[str]:
    """Return the first known binary.<kind> placeholder in a string template."""
    if not isinstance(template, str):
        return None
    for match in _BINARY_PLACEHOLDER.finditer(template):
        if match.group(1) in BINARY_CONTENT_TYPES:
            return match.group(1)
    return None


def content_type_for(template) -> str:
    """MIME type for a binary response, inferred from its original template."""
    kind = detect_binary_kind(template)
    return BINARY_CONTENT_TYPES.get(kind, DEFAULT_BINARY_CONTENT_TYPE)
