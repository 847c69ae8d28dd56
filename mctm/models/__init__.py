"""
mctm Models.

Engines, the ensemble that owns them, and the multi-class facade.
"""

from .engine import SingleClassEngine
from .tsetlin import TsetlinEngine
from .ensemble import Ensemble
from .mctm import MultiClassTsetlinMachine

__all__ = [
    'SingleClassEngine',
    'TsetlinEngine',
    'Ensemble',
    'MultiClassTsetlinMachine',
]
