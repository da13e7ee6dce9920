"""
auditsampler analyzers — pure computation modules.

Statistical engines with no I/O: Benford's Law conformance testing, audit
sample selection, and sample planning/evaluation.
"""

from auditsampler.analyzers.benfords import (
    BenfordAnalysis,
    BenfordDigitResult,
    BenfordsAnalyzer,
    ChiSquareInterpretation,
    analyze_benfords,
)
from auditsampler.analyzers.evaluation import (
    AttributesConclusion,
    AttributesEvaluation,
    ClassicalVariablesPlan,
    ClassicalProjection,
    MisstatementConclusion,
    MUSPlan,
    MUSProjection,
    SampleEvaluator,
    TestedItem,
)
from auditsampler.analyzers.sampling import (
    SampleSelectionResult,
    SampleSelector,
    StratificationBand,
    seeded_random,
    select_sample,
)

__all__ = [
    # Benford's Law
    "BenfordsAnalyzer",
    "BenfordAnalysis",
    "BenfordDigitResult",
    "ChiSquareInterpretation",
    "analyze_benfords",
    # Sample selection
    "SampleSelector",
    "SampleSelectionResult",
    "StratificationBand",
    "seeded_random",
    "select_sample",
    # Planning & evaluation
    "SampleEvaluator",
    "TestedItem",
    "MUSPlan",
    "MUSProjection",
    "ClassicalVariablesPlan",
    "ClassicalProjection",
    "MisstatementConclusion",
    "AttributesEvaluation",
    "AttributesConclusion",
]
