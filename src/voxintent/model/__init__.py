"""Model subpackage: reference tone acoustic model, loading, and synthesis."""

from voxintent.model.loader import load_model, save_model
from voxintent.model.synth import synthesize
from voxintent.model.tone import ToneModel, ToneScorer

__all__ = ["ToneModel", "ToneScorer", "load_model", "save_model", "synthesize"]
