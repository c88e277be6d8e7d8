"""Model files: versioned ``.npz`` archives of tone-model parameters."""

import zipfile
from pathlib import Path
from types import MappingProxyType

import numpy as np

from voxintent.core.constants import MODEL_FORMAT_VERSION
from voxintent.errors import EngineIOError
from voxintent.model.tone import ToneModel

_REQUIRED = (
    "format_version",
    "sample_rate",
    "frame_length",
    "band_bins",
    "energy_threshold",
    "words",
    "bins",
)


def save_model(model: ToneModel, path: str | Path) -> None:
    """Write *model* to *path* (written as given, no suffix added)."""
    words = sorted(model.lexicon)
    with open(path, "wb") as f:
        np.savez(
            f,
            format_version=np.int64(MODEL_FORMAT_VERSION),
            sample_rate=np.int64(model.sample_rate),
            frame_length=np.int64(model.frame_length),
            band_bins=np.int64(model.band_bins),
            energy_threshold=np.float64(model.energy_threshold),
            words=np.array(words, dtype=str),
            bins=np.array([model.lexicon[w] for w in words], dtype=np.int64),
        )


def load_model(path: str | Path) -> ToneModel:
    """Load and validate a model file.

    Raises ``EngineIOError`` when the file is missing, unreadable, of an
    unsupported version, or structurally corrupt.
    """
    try:
        archive = np.load(path, allow_pickle=False)
        if not isinstance(archive, np.lib.npyio.NpzFile):
            raise EngineIOError(f"model file {path} is not an .npz archive")
        with archive as data:
            missing = [key for key in _REQUIRED if key not in data.files]
            if missing:
                raise EngineIOError(f"model file {path} lacks {', '.join(missing)}")
            version = int(data["format_version"])
            if version != MODEL_FORMAT_VERSION:
                raise EngineIOError(
                    f"unsupported model format version {version} in {path}"
                )
            words = [str(w) for w in data["words"]]
            bins = [int(b) for b in data["bins"]]
            params = {
                "sample_rate": int(data["sample_rate"]),
                "frame_length": int(data["frame_length"]),
                "band_bins": int(data["band_bins"]),
                "energy_threshold": float(data["energy_threshold"]),
            }
    except EngineIOError:
        raise
    except (OSError, ValueError, KeyError, zipfile.BadZipFile) as exc:
        raise EngineIOError(f"cannot read model file {path}: {exc}") from exc

    if len(words) != len(bins) or len(set(words)) != len(words):
        raise EngineIOError(f"model file {path} has a corrupt lexicon")
    try:
        return ToneModel(lexicon=MappingProxyType(dict(zip(words, bins))), **params)
    except ValueError as exc:
        raise EngineIOError(f"model file {path} is corrupt: {exc}") from exc
