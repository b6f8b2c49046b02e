"""Configuration helpers for TrackPlay."""
