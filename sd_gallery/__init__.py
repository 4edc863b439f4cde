"""
Stable Diffusion Image Gallery
Generation metadata extraction for images imported into the gallery
"""

from .containers import detect_file_type, extract_image_metadata, read_generation_record
from .errors import GalleryError, MediaRejected, VideoFileError
from .parsers import parse_generation_params
from .record import GenerationRecord, LoraData

__all__ = [
    'GalleryError',
    'GenerationRecord',
    'LoraData',
    'MediaRejected',
    'VideoFileError',
    'detect_file_type',
    'extract_image_metadata',
    'parse_generation_params',
    'read_generation_record',
]

__version__ = '0.1.0'
