"""
Music Bounded Context

Domain logic for tracks, the per-guild playback queue and candidate filtering.
"""
