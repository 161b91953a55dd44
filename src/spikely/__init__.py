"""spikely: spike disease-causing alleles into cohort genotypes."""

__version__ = "0.3.0"
