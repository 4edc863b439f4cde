import io
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from sd_gallery.app import create_app

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


def png_bytes(text=None, itxt=None, ztxt=None):
    """Small PNG carrying the given tEXt, iTXt and zTXt chunks, in that order"""
    info = PngInfo()
    for key, value in (text or {}).items():
        info.add_text(key, value)
    for key, value in (itxt or {}).items():
        info.add_itxt(key, value)
    for key, value in (ztxt or {}).items():
        info.add_text(key, value, zip=True)

    buf = io.BytesIO()
    Image.new('RGB', (16, 8), 'white').save(buf, format='PNG', pnginfo=info)
    return buf.getvalue()


def jpeg_bytes(tags=None):
    """Small JPEG with the given IFD0 EXIF tags"""
    exif = Image.Exif()
    for tag, value in (tags or {}).items():
        exif[tag] = value

    buf = io.BytesIO()
    Image.new('RGB', (16, 8), 'white').save(buf, format='JPEG', exif=exif.tobytes())
    return buf.getvalue()


def png_chunk(chunk_type, data):
    """Raw PNG chunk: length, type, data, CRC"""
    crc = zlib.crc32(chunk_type + data) & 0xffffffff
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


@pytest.fixture
def write_file(tmp_path):
    def _write(name, data):
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write


@pytest.fixture
def app(tmp_path):
    images = tmp_path / 'images'
    images.mkdir()
    return create_app({'TESTING': True, 'IMAGES_FOLDER': str(images), 'DEBUG_PREVIEW_CHARS': 40})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def images_dir(app):
    return Path(app.config['IMAGES_FOLDER'])
