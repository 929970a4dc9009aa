"""
Synthesizer module.
"""

from __future__ import annotations

from .sampler import FORMAT_SAMPLES, MAX_DEPTH, NO_SAMPLE, InstanceSynthesizer

__all__ = [
    "InstanceSynthesizer",
    "NO_SAMPLE",
    "MAX_DEPTH",
    "FORMAT_SAMPLES",
]
