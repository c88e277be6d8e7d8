# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "voxintent",
# ]
#
# [tool.uv.sources]
# voxintent = { path = "." }
# ///
"""Standalone speech-to-intent over a JSON context file."""

from voxintent.apps.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
