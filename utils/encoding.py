"""Encoding detection utilities"""

import codecs

import chardet


FALLBACK_ENCODINGS = ['utf-8', 'utf-8-sig', 'cp1252', 'latin-1']
SAMPLE_BYTES = 65536


def detect_encoding(raw: bytes) -> str:
    """
    Detect the encoding of a byte buffer

    Args:
        raw: Raw source bytes

    Returns:
        Detected encoding string
    """
    sample = raw[:SAMPLE_BYTES]

    # Check for BOM
    if sample.startswith(b'\xef\xbb\xbf'):
        return 'utf-8-sig'

    # A multibyte character cut at the sample boundary is not an error
    decoder = codecs.getincrementaldecoder('utf-8')()
    try:
        decoder.decode(sample, final=len(raw) <= SAMPLE_BYTES)
        return 'utf-8'
    except UnicodeDecodeError:
        pass

    result = chardet.detect(sample)
    if result['encoding'] and result['confidence'] > 0.7:
        return result['encoding']

    for encoding in FALLBACK_ENCODINGS:
        try:
            sample.decode(encoding)
            return encoding
        except (UnicodeDecodeError, LookupError):
            continue

    # latin-1 decodes any byte sequence
    return 'latin-1'


def decode_bytes(raw: bytes) -> str:
    """Decode bytes with the detected encoding, replacing invalid characters"""
    return raw.decode(detect_encoding(raw), errors="replace")
