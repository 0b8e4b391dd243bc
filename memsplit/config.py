"""
Chunking policy, loaded from YAML with .env overrides.

The three numbers that decide how a memory gets split live in
config/chunking.yaml so they can be tuned without touching code:

    max_section_size:        10000   # target size of size-based chunks
    min_section_length:      100     # header sections this short are dropped
    max_header_section_size: 15000   # header sections longer than this are split again

Any of them can be overridden from the environment (or .env) with
MEMSPLIT_MAX_SECTION_SIZE, MEMSPLIT_MIN_SECTION_LENGTH and
MEMSPLIT_MAX_HEADER_SECTION_SIZE.
"""

import os
from dataclasses import dataclass

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_MAX_SECTION_SIZE = 10000
DEFAULT_MIN_SECTION_LENGTH = 100
DEFAULT_MAX_HEADER_SECTION_SIZE = 15000

DEFAULT_CONFIG_PATH = "config/chunking.yaml"

_ENV_KEYS = {
    "max_section_size": "MEMSPLIT_MAX_SECTION_SIZE",
    "min_section_length": "MEMSPLIT_MIN_SECTION_LENGTH",
    "max_header_section_size": "MEMSPLIT_MAX_HEADER_SECTION_SIZE",
}


@dataclass
class ChunkingConfig:
    max_section_size: int = DEFAULT_MAX_SECTION_SIZE
    min_section_length: int = DEFAULT_MIN_SECTION_LENGTH
    max_header_section_size: int = DEFAULT_MAX_HEADER_SECTION_SIZE

    def __post_init__(self):
        for name in _ENV_KEYS:
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")


def load_chunking_config(path: str = DEFAULT_CONFIG_PATH) -> ChunkingConfig:
    """
    Build a ChunkingConfig from the YAML file (if present) and environment.

    Precedence: environment > YAML > defaults. Unknown YAML keys are ignored.
    """
    values = {}

    if os.path.exists(path):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        values.update({k: data[k] for k in _ENV_KEYS if k in data})

    for name, env_key in _ENV_KEYS.items():
        raw = os.getenv(env_key)
        if raw:
            try:
                values[name] = int(raw)
            except ValueError:
                raise ValueError(f"{env_key} must be an integer, got {raw!r}")

    return ChunkingConfig(**values)
