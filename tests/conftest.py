"""Pytest configuration and fixtures for spikely tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from fixtures.vcf_generator import (  # noqa: E402
    TRIO_PED,
    TRIO_SAMPLES,
    SyntheticVariant,
    VCFGenerator,
    make_ccm_variants,
    make_ccm_vcf_file,
    make_cohort_vcf_file,
)

from spikely.config import ConfigResolver, SpikeConfig  # noqa: E402
from spikely.context import EngineContext  # noqa: E402
from spikely.vcf_parser import VariantFileParser  # noqa: E402


@pytest.fixture
def vcf_generator():
    """Provide VCFGenerator class for tests."""
    return VCFGenerator


@pytest.fixture
def synthetic_variant_factory():
    """Factory for creating SyntheticVariant instances."""

    def _factory(**kwargs):
        defaults = {
            "chrom": "1",
            "pos": 100,
            "ref": "A",
            "alt": "G",
        }
        defaults.update(kwargs)
        return SyntheticVariant(**defaults)

    return _factory


@pytest.fixture
def ccm_vcf_file(tmp_path):
    """Disease VCF with KRIT1, CCM2, PDCD10 and one variant without a gene."""
    return make_ccm_vcf_file(tmp_path)


@pytest.fixture
def ccm_catalog(ccm_vcf_file):
    return VariantFileParser().parse(ccm_vcf_file)


@pytest.fixture
def cohort_vcf_file(tmp_path):
    """Cohort VCF with samples Case_01..Case_10."""
    return make_cohort_vcf_file(10, tmp_path)


@pytest.fixture
def trio_vcf_file(tmp_path):
    return VCFGenerator.generate_cohort_file(TRIO_SAMPLES, tmp_path)


@pytest.fixture
def trio_ped_file(tmp_path):
    path = tmp_path / "families.ped"
    path.write_text(TRIO_PED)
    return path


@pytest.fixture
def context():
    return EngineContext(seed=1234)


@pytest.fixture
def make_resolver():
    """Build a ConfigResolver from a config mapping and CLI options."""

    def _factory(config: dict | None = None, cli: dict | None = None):
        return ConfigResolver(SpikeConfig.from_dict(config or {}), cli or {})

    return _factory


@pytest.fixture
def ccm_variants():
    return make_ccm_variants()
