"""Core decoding package: no audio-device dependencies.

Re-exports key symbols for convenience.
"""

from voxintent.core.config import DecoderConfig, load_config
from voxintent.core.context import ContextDefinition, load_context_file
from voxintent.core.decoder import Decoder
from voxintent.core.endpoint import EndpointDetector, EndpointState, FinalizeReason
from voxintent.core.grammar import Edge, Grammar, compile_context
from voxintent.core.protocols import FrameScores, ScoringProvider
from voxintent.core.search import Frontier, Hypothesis
from voxintent.core.types import Inference

__all__ = [
    "ContextDefinition",
    "Decoder",
    "DecoderConfig",
    "Edge",
    "EndpointDetector",
    "EndpointState",
    "FinalizeReason",
    "FrameScores",
    "Frontier",
    "Grammar",
    "Hypothesis",
    "Inference",
    "ScoringProvider",
    "compile_context",
    "load_config",
    "load_context_file",
]
