"""Default configuration, overridable through SD_GALLERY_* environment variables"""

import logging

# Configuration
IMAGES_FOLDER = 'images'
MAX_CONTENT_LENGTH = 64 * 1024 * 1024
DEBUG_PREVIEW_CHARS = 500
LOG_LEVEL = 'INFO'

ENV_PREFIX = 'SD_GALLERY'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def default_config():
    return {
        'IMAGES_FOLDER': IMAGES_FOLDER,
        'MAX_CONTENT_LENGTH': MAX_CONTENT_LENGTH,
        'DEBUG_PREVIEW_CHARS': DEBUG_PREVIEW_CHARS,
        'LOG_LEVEL': LOG_LEVEL,
    }


def configure_logging(level=LOG_LEVEL):
    """Console logging for the standalone server"""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
