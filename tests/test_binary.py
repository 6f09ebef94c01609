"""
Tests for MockAPI Binary Payloads

Tests generated binary documents and detection helpers including:
- File signatures for each payload kind
- Base64 payload detection
- Content type inference from templates
"""

import base64
import struct
import zlib

import pytest

from mockapi.mock.binary import (
    BinaryGenerator,
    BINARY_CONTENT_TYPES,
    build_excel,
    build_pdf,
    build_png,
    build_zip,
    content_type_for,
    detect_binary_kind,
    is_base64_payload
)


@pytest.fixture
def generator():
    return BinaryGenerator()


class TestPayloads:
    """Test generated binary documents."""

    def test_excel_signature(self):
        data = build_excel()

        assert data[:16] == bytes.fromhex('504B0304140006000800000021000000')
        assert data[-22:-18] == b'PK\x05\x06'

    def test_zip_signature_and_eocd(self):
        data = build_zip()

        assert data[:10] == bytes.fromhex('504B0304140000000800')
        assert data[-22:-18] == b'PK\x05\x06'

    def test_zip_central_directory_offset(self):
        """Test the EOCD points at the central directory header."""
        data = build_zip()
        cd_size, cd_offset = struct.unpack('<II', data[-10:-2])

        assert data[cd_offset:cd_offset + 4] == b'PK\x01\x02'
        assert cd_offset + cd_size == len(data) - 22

    def test_pdf_structure(self):
        data = build_pdf()

        assert data.startswith(b'%PDF-1.4')
        assert b'xref' in data
        assert b'trailer' in data
        assert data.rstrip().endswith(b'%%EOF')

    def test_pdf_startxref_points_at_xref(self):
        data = build_pdf()
        offset = int(data.rsplit(b'startxref\n', 1)[1].split(b'\n')[0])

        assert data[offset:offset + 4] == b'xref'

    def test_png_structure(self):
        data = build_png()

        assert data[:8] == bytes.fromhex('89504E470D0A1A0A')
        assert data[12:16] == b'IHDR'
        assert struct.unpack('>II', data[16:24]) == (1, 1)
        assert data[-8:-4] == b'IEND'

    def test_png_chunk_crc(self):
        data = build_png()
        length = struct.unpack('>I', data[8:12])[0]
        chunk = data[12:16 + length]
        crc = struct.unpack('>I', data[16 + length:20 + length])[0]

        assert zlib.crc32(chunk) & 0xffffffff == crc


class TestBinaryGenerator:
    """Test BinaryGenerator."""

    def test_kinds(self, generator):
        assert set(generator.kinds) == {'excel', 'pdf', 'image', 'zip', 'csv'}

    def test_encode_decodes_to_generate(self, generator):
        assert base64.b64decode(generator.encode('image')) == generator.generate('image')

    def test_csv_header_and_rows(self, generator):
        lines = generator.build_csv(rows=5).decode('utf-8').strip().split('\n')

        assert lines[0] == 'id,name,email,created_at'
        assert len(lines) == 6
        assert lines[1].startswith('1,')

    def test_unknown_kind(self, generator):
        with pytest.raises(KeyError):
            generator.generate('docx')

    @pytest.mark.parametrize('kind', ['excel', 'pdf', 'image', 'zip', 'csv'])
    def test_encoded_payloads_detected_as_binary(self, generator, kind):
        assert is_base64_payload(generator.encode(kind))


class TestIsBase64Payload:
    """Test base64 payload detection."""

    def test_short_strings_are_text(self):
        assert not is_base64_payload('aGVsbG8=')

    def test_exactly_min_length_is_text(self):
        value = base64.b64encode(b'x' * 36).decode('ascii')

        assert len(value) == 48
        assert not is_base64_payload(value, min_length=48)

    def test_plain_text_not_binary(self):
        assert not is_base64_payload('This is a long ordinary sentence with spaces and punctuation!')

    def test_non_canonical_padding(self):
        value = base64.b64encode(b'y' * 60).decode('ascii') + '=='

        assert not is_base64_payload(value)

    def test_non_string(self):
        assert not is_base64_payload(None)


class TestContentType:
    """Test content type inference."""

    @pytest.mark.parametrize('kind', list(BINARY_CONTENT_TYPES))
    def test_known_kinds(self, kind):
        assert content_type_for('{{binary.' + kind + '}}') == BINARY_CONTENT_TYPES[kind]

    def test_excel_mime(self):
        assert content_type_for('{{binary.excel}}') == (
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )

    def test_unknown_template(self):
        assert content_type_for('SGVsbG8=') == 'application/octet-stream'

    def test_non_string_template(self):
        assert content_type_for({'file': '{{binary.pdf}}'}) == 'application/octet-stream'

    def test_detect_kind(self):
        assert detect_binary_kind('{{binary.zip}}') == 'zip'
        assert detect_binary_kind('{{binary.mp3}}') is None
