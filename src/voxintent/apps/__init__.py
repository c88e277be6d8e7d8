"""Application layer: command-line front end."""
