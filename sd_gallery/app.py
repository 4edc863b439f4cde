#!/usr/bin/env python3
"""
Stable Diffusion Image Gallery
Flask endpoints that hand image files to the metadata pipeline
"""

import io
import logging
import os

from PIL import Image
from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.utils import safe_join

from .config import ENV_PREFIX, configure_logging, default_config
from .containers import HEADER_SIZE, detect_file_type, iter_metadata_sources, read_generation_record
from .errors import VideoFileError
from .text import decode_text

logger = logging.getLogger(__name__)

metadata_bp = Blueprint('metadata', __name__)


def create_app(config=None):
    """Build the Flask app; later sources override earlier ones"""
    app = Flask(__name__)
    app.config.from_mapping(default_config())
    app.config.from_prefixed_env(ENV_PREFIX)
    if config:
        app.config.from_mapping(config)

    app.register_blueprint(metadata_bp)
    return app


def image_dimensions(fp):
    """Width and height via Pillow, (None, None) when it cannot decode the file"""
    try:
        with Image.open(fp) as img:
            return img.size
    except Exception as e:
        logger.debug('Could not read image dimensions: %s', e)
        return None, None


def describe_image(fp, filename):
    """Detect, parse and measure one image stream"""
    file_type = detect_file_type(fp.read(HEADER_SIZE), filename)
    fp.seek(0)

    record = read_generation_record(fp, filename)

    fp.seek(0)
    width, height = image_dimensions(fp)

    return {
        'filename': filename,
        'file_type': file_type,
        'width': width,
        'height': height,
        'metadata': record.to_dict(),
    }


def _gallery_path(filename):
    """Absolute path of a file inside the images folder, None if not there"""
    folder = os.path.abspath(current_app.config['IMAGES_FOLDER'])
    path = safe_join(folder, filename)
    if path is None or not os.path.isfile(path):
        return None
    return path


def _rejected(error):
    logger.info('Rejected %s: %s', error.filename, error)
    return jsonify({'error': str(error), 'kind': error.kind}), 415


@metadata_bp.route('/api/metadata', methods=['POST'])
def upload_metadata():
    """Extract metadata from an uploaded image"""
    if 'file' not in request.files:
        return jsonify({'error': 'No file selected'}), 400

    file = request.files['file']
    if file.filename == '':
        return jsonify({'error': 'No file selected'}), 400

    data = io.BytesIO(file.read())
    try:
        return jsonify(describe_image(data, file.filename))
    except VideoFileError as e:
        return _rejected(e)


@metadata_bp.route('/api/metadata/<path:filename>')
def image_metadata(filename):
    """Extract metadata from an image in the gallery folder"""
    path = _gallery_path(filename)
    if path is None:
        return jsonify({'error': 'Image not found'}), 404

    with open(path, 'rb') as f:
        try:
            return jsonify(describe_image(f, filename))
        except VideoFileError as e:
            return _rejected(e)


@metadata_bp.route('/debug-metadata/<path:filename>')
def debug_metadata(filename):
    """Debug route to show the raw metadata sources next to the parsed record"""
    path = _gallery_path(filename)
    if path is None:
        return jsonify({'error': 'Image not found'}), 404

    limit = current_app.config['DEBUG_PREVIEW_CHARS']
    debug_info = {
        'filename': filename,
        'file_size': os.path.getsize(path),
        'sources': [],
    }

    with open(path, 'rb') as f:
        try:
            for source, value in iter_metadata_sources(f, filename):
                raw = value if isinstance(value, str) else value.decode('utf-8', errors='replace')
                debug_info['sources'].append({
                    'source': source,
                    'text': raw[:limit],
                    'decoded': decode_text(value)[:limit],
                })
            f.seek(0)
            debug_info.update(describe_image(f, filename))
        except VideoFileError as e:
            return _rejected(e)

    return jsonify(debug_info)


if __name__ == '__main__':
    app = create_app()
    configure_logging(app.config['LOG_LEVEL'])
    app.run(debug=True, host='0.0.0.0', port=5000)
