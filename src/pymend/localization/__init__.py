"""Spectrum-based fault localization.

Traces from the test suite are folded into a Spectrum of per-statement
failing/passing counts; a pluggable formula turns those counts into a
suspiciousness score used to rank repair targets.

Exports:
    Spectrum: Per-statement pass/fail counters
    SpectrumCollector: Runs a suite and folds traces into a Spectrum
    SuspiciousnessRanker: Scores and orders statements
    RankedStatement: A statement with its score
"""

from __future__ import annotations

from pymend.localization.formulas import available_formulas, get_formula, ochiai, register_formula, tarantula
from pymend.localization.ranker import RankedStatement, SuspiciousnessRanker
from pymend.localization.spectrum import Spectrum, SpectrumCollector


__all__ = [
    'RankedStatement',
    'Spectrum',
    'SpectrumCollector',
    'SuspiciousnessRanker',
    'available_formulas',
    'get_formula',
    'ochiai',
    'register_formula',
    'tarantula',
]
