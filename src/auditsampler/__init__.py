"""
auditsampler — statistical audit sampling and Benford's Law fraud screening.

Select. Test. Conclude.
"""

__version__ = "0.3.0"
__all__ = ["BenfordsAnalyzer", "SampleSelector", "SampleEvaluator", "AuditSamplerConfig"]

from auditsampler.analyzers import BenfordsAnalyzer, SampleEvaluator, SampleSelector  # noqa: E402
from auditsampler.config import AuditSamplerConfig  # noqa: E402
