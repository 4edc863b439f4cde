"""Generation metadata record shared by every parser pass over one image"""

from dataclasses import dataclass, field

# Fields that only the first successful source may set
FIRST_WINS_FIELDS = (
    'prompt',
    'steps',
    'cfg_scale',
    'sampler',
    'scheduler',
    'seed',
    'model_name',
    'model_hash',
)


@dataclass(frozen=True)
class LoraData:
    """A LoRA reference found in prompt text"""
    name: str
    weight: float

    def to_dict(self):
        return {'name': self.name, 'weight': self.weight}


@dataclass
class GenerationRecord:
    """
    Accumulator for the generation parameters of one image.

    Empty strings and zeros mean "not found". A genuine seed, step count or
    CFG scale of 0 is therefore recorded as missing.
    """
    prompt: str = ''
    negative_prompt: str = ''
    steps: int = 0
    cfg_scale: float = 0.0
    sampler: str = ''
    scheduler: str = ''
    seed: int = 0
    model_name: str = ''
    model_hash: str = ''
    loras: list = field(default_factory=list)

    def merge(self, fields):
        """Fold a partial result from one dialect parser into the record"""
        self.loras.extend(fields.get('loras') or ())

        negative_prompt = fields.get('negative_prompt')
        if negative_prompt:
            self.negative_prompt = negative_prompt

        for name in FIRST_WINS_FIELDS:
            value = fields.get(name)
            if value and not getattr(self, name):
                setattr(self, name, value)

    def is_empty(self):
        return not (self.loras or self.negative_prompt or
                    any(getattr(self, name) for name in FIRST_WINS_FIELDS))

    def to_dict(self):
        """JSON-ready view handed to the persistence layer"""
        return {
            'prompt': self.prompt,
            'negative_prompt': self.negative_prompt,
            'steps': self.steps,
            'cfg_scale': self.cfg_scale,
            'sampler': self.sampler,
            'scheduler': self.scheduler,
            'seed': self.seed,
            'model_name': self.model_name,
            'model_hash': self.model_hash,
            'loras': [lora.to_dict() for lora in self.loras],
        }
