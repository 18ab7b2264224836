"""Keeps the project root importable (``heart_bpm`` and ``main``) under pytest."""
