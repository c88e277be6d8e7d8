"""Audio subpackage: frame assembly and voice activity detection."""

from voxintent.audio.frames import FrameChunker
from voxintent.audio.vad import VadConfig, VadSilenceGate

__all__ = ["FrameChunker", "VadConfig", "VadSilenceGate"]
