"""Connectors package — load audit populations from external files."""
from auditsampler.connectors.csv_connector import load_population, load_values

__all__ = ["load_population", "load_values"]
