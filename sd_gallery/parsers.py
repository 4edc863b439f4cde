"""
Generation parameter parsers for the metadata dialects seen in the wild:
SwarmUI JSON, Civitai/ComfyUI workflow JSON and AUTOMATIC1111-style text.
"""

import json
import logging

from .text import decode_text, extract_loras, extract_param

logger = logging.getLogger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# Markers that flag a WebUI parameter block
PARAMETER_MARKERS = ('Steps:', 'CFG scale:', 'Sampler:')

# A line containing any of these ends the positive prompt
PROMPT_STOP_MARKERS = ('Steps:', 'CFG scale:', 'Sampler:', 'Model:', 'Seed:', 'Size:', 'Version:')

NEGATIVE_PROMPT_MARKER = 'Negative prompt:'


# JSON fields of the wrong type read as absent one field at a time; the rest
# of the blob is still used instead of rejecting the whole dialect.
def _as_str(value):
    return value if isinstance(value, str) else ''


def _as_int(value, lower=None, upper=None):
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        return 0
    if (lower is not None and value < lower) or (upper is not None and value > upper):
        return 0
    return value


def _as_float(value):
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def _load_object(text):
    """Parse a JSON object, None for anything else"""
    try:
        data = json.loads(text)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _prompt_fields(prompt, negative_prompt):
    """Run both prompts through the LoRA extractor"""
    fields = {'loras': []}
    if prompt:
        fields['prompt'], loras = extract_loras(prompt)
        fields['loras'].extend(loras)
    if negative_prompt:
        fields['negative_prompt'], loras = extract_loras(negative_prompt)
        fields['loras'].extend(loras)
    return fields


def swarmui_fields(json_text):
    """Partial record from SwarmUI `sui_image_params`, None if not that dialect"""
    data = _load_object(json_text)
    if data is None:
        return None

    params = data.get('sui_image_params')
    if not isinstance(params, dict):
        return None

    prompt = _as_str(params.get('prompt'))
    if not prompt:
        return None

    fields = _prompt_fields(prompt, _as_str(params.get('negativeprompt')))

    model = _as_str(params.get('model'))
    if model:
        fields['model_name'] = model

    steps = _as_int(params.get('steps'))
    if steps > 0:
        fields['steps'] = steps

    cfg_scale = _as_float(params.get('cfgscale'))
    if cfg_scale > 0:
        fields['cfg_scale'] = cfg_scale

    sampler = _as_str(params.get('sampler'))
    if sampler:
        fields['sampler'] = sampler

    scheduler = _as_str(params.get('scheduler'))
    if scheduler:
        fields['scheduler'] = scheduler

    seed = _as_int(params.get('seed'), INT64_MIN, INT64_MAX)
    if seed != 0:
        fields['seed'] = seed

    logger.debug('Parsed SwarmUI parameters: prompt=%.50s, model=%s, steps=%s',
                 fields.get('prompt', ''), model, steps)
    return fields


def comfyui_fields(json_text):
    """Partial record from a workflow's nested `extraMetadata` document"""
    data = _load_object(json_text)
    if data is None:
        return None

    extra = data.get('extraMetadata')
    if not isinstance(extra, str) or not extra:
        return None

    meta = _load_object(extra)
    if meta is None:
        logger.debug('Failed to parse ComfyUI extraMetadata: %.100s', extra)
        return None

    fields = _prompt_fields(_as_str(meta.get('prompt')), _as_str(meta.get('negativePrompt')))

    steps = _as_int(meta.get('steps'))
    if steps > 0:
        fields['steps'] = steps

    cfg_scale = _as_float(meta.get('cfgScale'))
    if cfg_scale > 0:
        fields['cfg_scale'] = cfg_scale

    sampler = _as_str(meta.get('sampler'))
    if sampler:
        fields['sampler'] = sampler

    seed = _as_int(meta.get('seed'), INT64_MIN, INT64_MAX)
    if seed != 0:
        fields['seed'] = seed

    logger.debug('Parsed ComfyUI workflow: prompt=%.50s, steps=%s', fields.get('prompt', ''), steps)
    return fields


# Tried in order, the first match wins
JSON_DIALECTS = (
    ('swarmui', swarmui_fields),
    ('comfyui', comfyui_fields),
)


def parse_swarmui_params(json_text, record):
    """Merge SwarmUI parameters into record, True if the dialect matched"""
    fields = swarmui_fields(json_text)
    if fields is None:
        return False
    record.merge(fields)
    return True


def parse_comfyui_workflow(json_text, record):
    """Merge ComfyUI extraMetadata into record, True if the dialect matched"""
    fields = comfyui_fields(json_text)
    if fields is None:
        return False
    record.merge(fields)
    return True


def try_parse_json(text, record):
    """Try the JSON dialects in priority order, True once one of them matched"""
    trimmed = text.strip()
    if not (trimmed.startswith('{') and trimmed.endswith('}')):
        return False

    for name, candidate in JSON_DIALECTS:
        fields = candidate(trimmed)
        if fields is not None:
            logger.debug('Detected %s metadata', name)
            record.merge(fields)
            return True

    logger.debug("Found JSON but couldn't parse it as known format: %.100s", trimmed)
    return False


def _parse_int(value, lower=None, upper=None):
    try:
        number = int(value)
    except ValueError:
        return 0
    if lower is not None and number < lower:
        return 0
    if upper is not None and number > upper:
        return 0
    return number


def _parse_float(value):
    try:
        return float(value)
    except ValueError:
        return 0.0


def _prompt_lines(text):
    """Lines before the negative prompt or the first parameter line"""
    lines = []
    for line in text.split('\n'):
        stripped = line.strip()
        if not stripped:
            # keep paragraph breaks
            lines.append(stripped)
            continue
        if stripped.startswith(NEGATIVE_PROMPT_MARKER):
            break
        if any(marker in stripped for marker in PROMPT_STOP_MARKERS):
            break
        lines.append(stripped)
    return lines


def _negative_prompt(text):
    index = text.find(NEGATIVE_PROMPT_MARKER)
    if index == -1:
        return None

    start = index + len(NEGATIVE_PROMPT_MARKER)
    end = text.find('\n', start)
    if end == -1:
        end = text.find('Steps:', start)
    if end == -1:
        return text[start:].strip()
    return text[start:end].strip()


def parse_traditional_params(text, record):
    """Parse AUTOMATIC1111-style "parameters" text into record"""
    fields = {'loras': []}

    if any(marker in text for marker in PARAMETER_MARKERS):
        # LoRAs always count, the prompt itself only lands if still unset
        lines = _prompt_lines(text)
        if lines:
            fields['prompt'], loras = extract_loras('\n'.join(lines))
            fields['loras'].extend(loras)

        negative_prompt = _negative_prompt(text)
        if negative_prompt is not None:
            fields['negative_prompt'], loras = extract_loras(negative_prompt)
            fields['loras'].extend(loras)
    elif not record.prompt:
        # No parameter block, the whole text is the prompt
        fields['prompt'], loras = extract_loras(text)
        fields['loras'].extend(loras)

    fields['steps'] = _parse_int(extract_param(text, 'Steps:'))
    fields['cfg_scale'] = _parse_float(extract_param(text, 'CFG scale:'))
    fields['sampler'] = extract_param(text, 'Sampler:')
    if 'Schedule type:' in text:
        fields['scheduler'] = extract_param(text, 'Schedule type:')
    else:
        fields['scheduler'] = extract_param(text, 'Scheduler:')
    fields['model_name'] = extract_param(text, 'Model:')
    fields['model_hash'] = extract_param(text, 'Model hash:')
    fields['seed'] = _parse_int(extract_param(text, 'Seed:'), INT64_MIN, INT64_MAX)

    record.merge(fields)


def parse_generation_params(text, record):
    """
    Decode one metadata blob and fold whatever it carries into record.

    JSON dialects are tried first and short-circuit; anything else goes to
    the WebUI text parser. Unrecognised input leaves the record unchanged
    apart from the whole-text prompt fallback.
    """
    clean_text = decode_text(text)

    if try_parse_json(clean_text, record):
        return

    parse_traditional_params(clean_text, record)
