import io
import json

from conftest import png_bytes
from sd_gallery.app import create_app

SWARM = json.dumps({'sui_image_params': {
    'prompt': 'koi pond, ukiyo-e style <lora:woodblock:0.85>',
    'negativeprompt': 'photo',
    'model': 'animagineXL_v3',
    'steps': 30,
    'cfgscale': 7.5,
    'seed': 1234,
    'sampler': 'dpmpp_2m',
    'scheduler': 'karras',
}})

MP4_HEADER = b'\x00\x00\x00\x18ftypmp42' + b'\x00' * 32


def upload(client, data, filename):
    return client.post('/api/metadata', data={'file': (io.BytesIO(data), filename)},
                       content_type='multipart/form-data')


def test_upload_returns_record(client):
    response = upload(client, png_bytes(text={'parameters': SWARM}), 'koi.jpeg')
    assert response.status_code == 200

    payload = response.get_json()
    assert payload['filename'] == 'koi.jpeg'
    assert payload['file_type'] == 'png'
    assert (payload['width'], payload['height']) == (16, 8)

    metadata = payload['metadata']
    assert metadata['prompt'] == 'koi pond, ukiyo-e style'
    assert metadata['negative_prompt'] == 'photo'
    assert metadata['model_name'] == 'animagineXL_v3'
    assert metadata['scheduler'] == 'karras'
    assert metadata['cfg_scale'] == 7.5
    assert metadata['loras'] == [{'name': 'woodblock', 'weight': 0.85}]


def test_upload_without_file(client):
    response = client.post('/api/metadata', data={}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_upload_video_is_rejected(client):
    response = upload(client, MP4_HEADER, 'clip.png')
    assert response.status_code == 415
    assert response.get_json()['kind'] == 'MP4'


def test_unreadable_image_has_no_dimensions(client):
    response = upload(client, b'not an image at all', 'notes.png')
    assert response.status_code == 200
    payload = response.get_json()
    assert payload['file_type'] == 'unknown'
    assert payload['width'] is None
    assert payload['metadata']['prompt'] == ''


def test_gallery_image(client, images_dir):
    (images_dir / '42.png').write_bytes(png_bytes(text={'parameters': SWARM}))
    response = client.get('/api/metadata/42.png')
    assert response.status_code == 200
    assert response.get_json()['metadata']['steps'] == 30


def test_gallery_image_missing(client):
    assert client.get('/api/metadata/nope.png').status_code == 404


def test_gallery_path_cannot_escape_folder(client, images_dir):
    (images_dir.parent / 'secret.png').write_bytes(png_bytes(text={'parameters': SWARM}))
    assert client.get('/api/metadata/../secret.png').status_code == 404


def test_gallery_video_is_rejected(client, images_dir):
    (images_dir / 'clip.jpg').write_bytes(MP4_HEADER)
    assert client.get('/api/metadata/clip.jpg').status_code == 415


def test_debug_metadata_lists_sources(client, images_dir):
    (images_dir / '7.png').write_bytes(png_bytes(text={'parameters': SWARM, 'Software': 'GIMP'}))
    response = client.get('/debug-metadata/7.png')
    assert response.status_code == 200

    payload = response.get_json()
    assert [source['source'] for source in payload['sources']] == ['parameters']
    assert payload['sources'][0]['text'] == SWARM[:40]
    assert payload['metadata']['seed'] == 1234
    assert payload['file_size'] > 0


def test_config_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('SD_GALLERY_IMAGES_FOLDER', str(tmp_path))
    monkeypatch.setenv('SD_GALLERY_DEBUG_PREVIEW_CHARS', '10')
    app = create_app()
    assert app.config['IMAGES_FOLDER'] == str(tmp_path)
    assert app.config['DEBUG_PREVIEW_CHARS'] == 10
