"""
Markdown report exporter.

Renders Benford analyses and sample selections as Markdown, suitable for
pasting into a working paper, GitHub, Notion, or any Markdown viewer.
"""

from __future__ import annotations

from auditsampler.analyzers.benfords import BenfordAnalysis, BenfordsAnalyzer
from auditsampler.analyzers.sampling import SampleSelectionResult


def render_markdown(analysis: BenfordAnalysis) -> str:
    """Render a BenfordAnalysis as Markdown."""
    lines: list[str] = []
    title = "Benford's Law Analysis"
    if analysis.context:
        title += f" — {analysis.context.replace('_', ' ').title()}"
    lines.append(f"# {title}")
    lines.append("")

    interpretation = BenfordsAnalyzer.interpret_chi_square(
        analysis.chi_square_statistic, analysis.critical_value
    )
    verdict = "✅ PASS" if analysis.passed_test else "❌ FAIL"

    lines.append("## 📊 Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| **Records Analyzed** | {analysis.total_records:,} |")
    lines.append(f"| **Chi-Square** | {analysis.chi_square_statistic:.4f} |")
    lines.append(
        f"| **Critical Value** | {analysis.critical_value:.3f} "
        f"(α={analysis.significance_level}, df={analysis.degrees_of_freedom}) |"
    )
    lines.append(f"| **p-value (approx.)** | {analysis.p_value_approx} |")
    lines.append(f"| **Result** | {verdict} |")
    lines.append(f"| **Conformity** | {interpretation.strength} |")
    lines.append(f"| **Mean Absolute Deviation** | {analysis.overall_deviation:.4f} |")
    lines.append("")

    lines.append("## 🔢 First-Digit Distribution")
    lines.append("")
    lines.append("| Digit | Expected % | Actual % | Count | Deviation % | χ² |")
    lines.append("|-------|-----------:|---------:|------:|------------:|---:|")
    for r in analysis.results:
        flag = " ⚠️" if r.digit in analysis.suspicious_digits else ""
        lines.append(
            f"| {r.digit}{flag} | {r.expected_frequency * 100:.1f} | {r.actual_frequency * 100:.1f} | "
            f"{r.actual_count} | {r.deviation_percentage:+.1f} | {r.chi_square_contribution:.3f} |"
        )
    lines.append("")

    lines.append("## 💡 Recommendation")
    lines.append("")
    lines.append(analysis.recommendation)
    lines.append("")
    return "\n".join(lines)


def render_sample_markdown(result: SampleSelectionResult, columns: tuple[str, ...] = ("id", "value")) -> str:
    """Render a SampleSelectionResult as Markdown."""
    lines: list[str] = [f"# {result.selection_method}", ""]
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| **Population Size** | {result.population_size:,} |")
    lines.append(f"| **Requested** | {result.requested_sample_size} |")
    lines.append(f"| **Selected** | {result.sample_size} |")
    if result.sampling_interval is not None:
        lines.append(f"| **Sampling Interval** | {result.sampling_interval:,.2f} |")
    for key, value in result.metadata.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}: {v}" for k, v in value.items())
        lines.append(f"| {key.replace('_', ' ').title()} | {value} |")
    lines.append("")

    lines.append("## Selected Items")
    lines.append("")
    lines.append("| " + " | ".join(columns) + " |")
    lines.append("|" + "|".join("---" for _ in columns) + "|")
    for item in result.selected_items:
        lines.append("| " + " | ".join(str(item.get(col, "")) for col in columns) + " |")
    lines.append("")
    return "\n".join(lines)
