__version__ = "1.0.0"


def __getattr__(name: str):
    """Lazy re-exports from voxintent.api for convenience."""
    _api_names = {
        "SpeechToIntent",
        "create",
        "load_grammar",
        "version",
        "frame_length",
        "sample_rate",
    }
    if name in _api_names:
        from voxintent import api

        return getattr(api, name)
    raise AttributeError(f"module 'voxintent' has no attribute {name!r}")
