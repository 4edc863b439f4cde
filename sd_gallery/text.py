"""Text helpers: unicode de-interleaving, LoRA tags and key/value scanning"""

import re
import string

from .record import LoraData

UNICODE_MARKER = 'UNICODE'
PADDING_CHARS = string.whitespace + '\x00'
PADDING_BYTES = PADDING_CHARS.encode('ascii')

# Odd offsets below this bound are sampled by the interleave heuristic
SAMPLE_LIMIT = 100
INTERLEAVE_RATIO = 0.8
MIN_DETECT_LENGTH = 10

LORA_PATTERN = re.compile(r'<lora:([^:]+):([^>]+)>')
WHITESPACE_PATTERN = re.compile(r'\s+')


def decode_text(raw):
    """
    Normalize text that some tools store UTF-16 style or "W o r d" spaced.

    Accepts str or bytes. The check is a heuristic: short or naturally
    alternating text can be misdetected. For str input the sampled offsets
    are character offsets, not byte offsets, so non-ASCII text may be
    judged differently than the same text given as bytes.
    """
    if isinstance(raw, (bytes, bytearray)):
        data = bytes(raw)
        marker = UNICODE_MARKER.encode('ascii')
        if data.startswith(marker):
            data = data[len(marker):]
        # One pass over NUL and whitespace together, so the first kept byte
        # is always the first byte of a UTF-16 code unit
        data = data.strip(PADDING_BYTES)
        return _deinterleave(data, b'\x00', b' ').strip().decode('utf-8', errors='replace')

    text = raw
    if text.startswith(UNICODE_MARKER):
        text = text[len(UNICODE_MARKER):]
    text = text.strip(PADDING_CHARS)
    return _deinterleave(text, '\x00', ' ').strip()


def _deinterleave(seq, null, space):
    # seq is str or bytes, slicing keeps the type
    empty = seq[:0]
    if len(seq) <= MIN_DETECT_LENGTH:
        return seq.replace(null, empty)

    sample = seq[1:SAMPLE_LIMIT:2]
    if not sample:
        return seq

    # Null-separated text, common in EXIF UserComment
    if sample.count(null) / len(sample) > INTERLEAVE_RATIO:
        return seq[::2].replace(null, empty)

    if sample.count(space) / len(sample) > INTERLEAVE_RATIO:
        return seq[::2]

    return seq


def extract_loras(text):
    """Pull <lora:name:weight> tags out of text, return (cleaned_text, loras)"""
    loras = []
    for name, weight in LORA_PATTERN.findall(text):
        try:
            value = float(weight)
        except ValueError:
            continue
        loras.append(LoraData(name=name, weight=float(f'{value:.2f}')))

    cleaned = LORA_PATTERN.sub('', text)
    cleaned = WHITESPACE_PATTERN.sub(' ', cleaned).strip()
    return cleaned, loras


def extract_param(text, prefix, suffix=','):
    """Value after the first `prefix`, up to the next `suffix` or end of text"""
    start = text.find(prefix)
    if start == -1:
        return ''
    start += len(prefix)

    end = text.find(suffix, start)
    if end == -1:
        return text[start:].strip()
    return text[start:end].strip()
