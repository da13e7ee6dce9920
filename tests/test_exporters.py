"""Tests for the CSV and Markdown exporters."""

import csv
import io

from auditsampler.analyzers.benfords import BenfordsAnalyzer
from auditsampler.analyzers.sampling import SampleSelector
from auditsampler.exporters import benford_to_csv, render_markdown, render_sample_markdown, sample_to_csv


def _nines_analysis():
    return BenfordsAnalyzer.analyze_expenses([9000 + i for i in range(200)])


class TestBenfordCSV:
    def test_digit_rows_and_summary(self) -> None:
        rows = list(csv.reader(io.StringIO(benford_to_csv(_nines_analysis()))))

        assert rows[0][0] == "Digit"
        assert [r[0] for r in rows[1:10]] == [str(d) for d in range(1, 10)]
        assert rows[9][4] == "200"
        summary = {r[0]: r[1] for r in rows[10:] if len(r) == 2}
        assert summary["Total Records"] == "200"
        assert summary["Test Result"] == "FAIL"
        assert summary["Suspicious Digits"] == "1, 2, 3, 4, 5, 6, 7, 8, 9"

    def test_recommendation_quoted_safely(self) -> None:
        text = benford_to_csv(_nines_analysis())
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[-1][0] == "Recommendation"
        assert "manipulation" in rows[-1][1]


class TestSampleCSV:
    def test_header_and_rows(self) -> None:
        population = [{"id": f"AR-{i}", "value": i * 10.0, "customer": "Acme"} for i in range(1, 21)]
        result = SampleSelector.random_sampling(population, 4, seed=42)
        text = sample_to_csv(result, columns=("id", "value", "customer"))
        lines = text.splitlines()

        assert lines[0] == "Method: Simple Random Sampling"
        assert lines[1] == "Sample Size: 4"
        assert lines[2] == "Population Size: 20"
        assert lines[3] == "Seed: 42"
        assert lines[5] == "id,value,customer"
        assert len(lines) == 10

    def test_missing_column_is_blank(self) -> None:
        result = SampleSelector.random_sampling([{"id": 1, "value": 5}], 1)
        lines = sample_to_csv(result, columns=("id", "memo")).splitlines()
        assert lines[-1] == "1,"


class TestMarkdown:
    def test_benford_report(self) -> None:
        md = render_markdown(_nines_analysis())

        assert "Benford's Law Analysis — Expenses" in md
        assert "FAIL" in md
        assert "| 9 ⚠️ |" in md
        assert "Recommendation" in md

    def test_sample_report(self) -> None:
        population = [{"id": i, "value": float(i)} for i in range(1, 51)]
        result = SampleSelector.monetary_unit_sampling(population, 5, seed=3)
        md = render_sample_markdown(result)

        assert md.startswith("# Monetary Unit Sampling (MUS)")
        assert "Sampling Interval" in md
        assert "## Selected Items" in md
