"""Default configuration values for voxintent."""

from typing import Final

SAMPLE_RATE: Final = 16_000
FRAME_LENGTH: Final = 512
DEFAULT_SENSITIVITY: Final = 0.5

# Search
DEFAULT_BEAM_WIDTH: Final = 64
DEFAULT_PRUNE_MARGIN: Final = 40.0
SCORE_FLOOR: Final = 1e-3

# Endpointing (milliseconds; converted to whole frames)
DEFAULT_SILENCE_THRESHOLD: Final = 0.5
DEFAULT_ENDPOINT_SILENCE_MS: Final = 480
DEFAULT_INCOMPLETE_SILENCE_MS: Final = 1500
DEFAULT_MAX_IDLE_MS: Final = 4000
DEFAULT_MAX_UTTERANCE_MS: Final = 12_000

# Files
CONTEXT_FORMAT_VERSION: Final = 1
MODEL_FORMAT_VERSION: Final = 1
DEFAULT_CONFIG_DIR: Final = "~/.config/voxintent"
DEFAULT_CONFIG_DIR_ENV: Final = "VOXINTENT_CONFIG_DIR"
DEFAULT_CONFIG_FILE: Final = "config.json"

# Reference tone model
DEFAULT_ENERGY_THRESHOLD: Final = 300.0
DEFAULT_TONE_AMPLITUDE: Final = 8000
DEFAULT_TONE_FIRST_BIN: Final = 12
DEFAULT_TONE_BIN_SPACING: Final = 4
DEFAULT_TONE_BAND_BINS: Final = 1
DEFAULT_WORD_FRAMES: Final = 8
DEFAULT_VAD_FRAME_MS: Final = 30
DEFAULT_VAD_MODE: Final = 2
DEFAULT_AUDIO_QUEUE_MAXSIZE: Final = 200
