"""
Container readers: locate the metadata blobs inside PNG and JPEG files and
feed them to the generation parameter parsers.
"""

import logging
import os
import struct

from PIL import ExifTags, Image

from .errors import VideoFileError
from .parsers import parse_generation_params
from .record import GenerationRecord

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
JPEG_SIGNATURE = b'\xff\xd8\xff'
WEBM_SIGNATURE = b'\x1a\x45\xdf\xa3'

# UserComment character code prefix; the UNICODE variant is handled by decode_text
ASCII_CHARSET_HEADER = b'ASCII\x00\x00\x00'

# Enough to see every signature we check
HEADER_SIZE = 12

# tEXt/iTXt keywords used by AI image generators
PARAMETER_KEYWORDS = {'parameters', 'workflow', 'prompt', 'generation_data', 'usercomment', 'description'}

EXIF_TEXT_TAGS = (
    ('ImageDescription', ExifTags.Base.ImageDescription),
    ('Software', ExifTags.Base.Software),
    ('Artist', ExifTags.Base.Artist),
    ('Copyright', ExifTags.Base.Copyright),
)


def detect_file_type(header, filename=None):
    """
    Detect the container from its magic bytes, never from the extension.

    Returns 'png', 'jpeg' or 'unknown'. Raises VideoFileError for video
    containers, which must not be treated as images.
    """
    if len(header) >= 8:
        if header[4:8] == b'ftyp':
            raise VideoFileError('MP4', filename)
        if header[4:8] in (b'moov', b'mdat'):
            raise VideoFileError('MOV', filename)
    if header[:4] == WEBM_SIGNATURE:
        raise VideoFileError('WebM', filename)
    if header[:4] == b'RIFF' and header[8:12] == b'AVI ':
        raise VideoFileError('AVI', filename)

    if header[:8] == PNG_SIGNATURE:
        return 'png'
    if header[:3] == JPEG_SIGNATURE:
        return 'jpeg'
    return 'unknown'


def _chunk_text(raw):
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


def iter_png_text_chunks(fp):
    """
    Yield (chunk_type, keyword, text) for the text chunks of a PNG stream.

    Reading stops at IEND or at the first truncated chunk. iTXt sub-fields
    after the keyword are not parsed: the whole remainder is the text.
    zTXt chunks are not decompressed.
    """
    start = fp.tell()
    size = fp.seek(0, os.SEEK_END)
    fp.seek(start)

    if fp.read(8) != PNG_SIGNATURE:
        return

    while True:
        header = fp.read(8)
        if len(header) < 8:
            break
        length, chunk_type = struct.unpack('>I4s', header)
        chunk_type = chunk_type.decode('latin-1')

        # chunk data must fit in what is left of the stream
        if length > size - fp.tell():
            logger.warning('Truncated PNG %s chunk, stopping', chunk_type)
            break

        data = fp.read(length)
        if len(data) < length:
            logger.warning('Truncated PNG %s chunk, stopping', chunk_type)
            break
        fp.read(4)  # CRC

        if chunk_type == 'IEND':
            break

        if chunk_type in ('tEXt', 'iTXt'):
            keyword, sep, text = data.partition(b'\x00')
            if not sep:
                continue
            keyword = keyword.decode('latin-1')
            text = _chunk_text(text)
            logger.debug('PNG %s chunk - %s: %.200s', chunk_type, keyword, text)
            yield chunk_type, keyword, text
        elif chunk_type == 'zTXt':
            logger.debug('Found zTXt chunk, skipping compressed text parsing')


def png_text_sources(fp):
    """Yield (keyword, text) for the PNG text chunks worth parsing"""
    for _, keyword, text in iter_png_text_chunks(fp):
        name = keyword.lower()
        if name in PARAMETER_KEYWORDS:
            yield keyword, text
        elif name == 'software' and 'comfyui' in text.lower():
            # ComfyUI often stores params alongside its software tag
            yield keyword, text


def exif_sources(fp):
    """Yield (tag_name, value) for the EXIF fields that may hold parameters"""
    try:
        with Image.open(fp) as img:
            exif = img.getexif()
            exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
            values = [('UserComment', exif_ifd.get(ExifTags.Base.UserComment) or exif.get(ExifTags.Base.UserComment))]
            values.extend((name, exif.get(tag)) for name, tag in EXIF_TEXT_TAGS)
    except Exception as e:
        logger.warning('Error reading EXIF data: %s', e)
        return

    for name, value in values:
        if isinstance(value, bytes) and value.startswith(ASCII_CHARSET_HEADER):
            value = value[len(ASCII_CHARSET_HEADER):]
        if isinstance(value, (str, bytes)) and value:
            yield name, value


def iter_metadata_sources(fp, filename=None):
    """
    Yield (source, text) for every candidate metadata blob in an image stream.

    Raises VideoFileError before anything is yielded when the stream is
    actually a video.
    """
    header = fp.read(HEADER_SIZE)
    fp.seek(0)
    file_type = detect_file_type(header, filename)

    if file_type == 'png':
        yield from png_text_sources(fp)
    elif file_type == 'jpeg':
        yield from exif_sources(fp)
    else:
        logger.debug('No metadata reader for %s', filename or 'stream')


def read_generation_record(fp, filename=None):
    """Build the GenerationRecord for one image stream"""
    record = GenerationRecord()
    for source, text in iter_metadata_sources(fp, filename):
        logger.debug('Parsing metadata from %s', source)
        parse_generation_params(text, record)
    return record


def extract_image_metadata(image_path):
    """Extract generation metadata from an image file on disk"""
    with open(image_path, 'rb') as f:
        return read_generation_record(f, os.path.basename(image_path))
