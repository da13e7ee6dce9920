"""Exporters package — convert analyses and samples to various output formats."""
from auditsampler.exporters.csv_export import benford_to_csv, sample_to_csv
from auditsampler.exporters.markdown import render_markdown, render_sample_markdown

__all__ = ["benford_to_csv", "sample_to_csv", "render_markdown", "render_sample_markdown"]
