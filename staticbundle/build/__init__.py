"""Build-time pipeline: directory walk, external build step, generated module."""
