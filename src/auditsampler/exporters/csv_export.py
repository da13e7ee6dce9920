"""
CSV exporters for working-paper attachments.

Both exports are plain text so they can be stored alongside the engagement
file or opened in a spreadsheet.
"""

from __future__ import annotations

import csv
import io
from typing import Sequence

from auditsampler.analyzers.benfords import BenfordAnalysis
from auditsampler.analyzers.sampling import SampleSelectionResult


def benford_to_csv(analysis: BenfordAnalysis) -> str:
    """Per-digit table followed by the test summary."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(
        [
            "Digit",
            "Expected Frequency (%)",
            "Actual Frequency (%)",
            "Expected Count",
            "Actual Count",
            "Deviation (%)",
            "Chi-Square Contribution",
        ]
    )
    for r in analysis.results:
        writer.writerow(
            [
                r.digit,
                f"{r.expected_frequency * 100:.2f}",
                f"{r.actual_frequency * 100:.2f}",
                f"{r.expected_count:.0f}",
                r.actual_count,
                f"{r.deviation_percentage:.2f}",
                f"{r.chi_square_contribution:.4f}",
            ]
        )
    writer.writerow([])
    writer.writerow(["Total Records", analysis.total_records])
    writer.writerow(["Chi-Square Statistic", f"{analysis.chi_square_statistic:.4f}"])
    writer.writerow([f"Critical Value (alpha={analysis.significance_level})", f"{analysis.critical_value:.4f}"])
    writer.writerow(["Test Result", "PASS" if analysis.passed_test else "FAIL"])
    writer.writerow(["Suspicious Digits", ", ".join(str(d) for d in analysis.suspicious_digits)])
    writer.writerow([])
    writer.writerow(["Recommendation", analysis.recommendation])
    return buf.getvalue()


def sample_to_csv(result: SampleSelectionResult, columns: Sequence[str] = ("id", "value")) -> str:
    """Selection header followed by one row per selected item."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([f"Method: {result.selection_method}"])
    writer.writerow([f"Sample Size: {result.sample_size}"])
    writer.writerow([f"Population Size: {result.population_size}"])
    seed = result.metadata.get("seed")
    if seed not in (None, "none"):
        writer.writerow([f"Seed: {seed}"])
    writer.writerow([])
    writer.writerow(list(columns))
    for item in result.selected_items:
        writer.writerow(["" if item.get(col) is None else item.get(col) for col in columns])
    return buf.getvalue()
