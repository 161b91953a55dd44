"""Tests for cohort and trio spiking."""

import pytest

from spikely.context import EngineContext
from spikely.errors import ConfigValidationError, InvalidInheritanceError, PedigreeError
from spikely.genes import TRIO, GeneAggregator
from spikely.models import Trio
from spikely.spiker import CohortSampler, SpikeMap, TrioSampler, genotype_string
from spikely.vcf_parser import VariantFileParser

from fixtures.vcf_generator import SyntheticVariant, VCFGenerator

CASES = [f"Case_{i:02d}" for i in range(1, 11)]


def _sampler(resolver, context, catalog, n_samples=len(CASES), mode="cohort", cls=CohortSampler):
    aggregator = GeneAggregator(resolver, context.diagnostics, mode=mode)
    eligible = aggregator.eligible_genes(aggregator.aggregate(catalog))
    return cls(resolver, context, eligible, n_samples)


def _total_dosage(spike_map, sample_id):
    return sum(spike_map.dosage(key, sample_id) for key in spike_map.variant_keys())


def _config(**options):
    return {"info_transforms": {"GENEINFO": "before_colon"}, "heritability": 1.0, **options}


class TestSpikeMap:
    def test_increments(self):
        spike_map = SpikeMap()
        assert spike_map.add("rs1_1", "S1", "KRIT1") == 1
        assert spike_map.add("rs1_1", "S1") == 2
        spike_map.add("rs1_1", "S2")
        assert spike_map.samples("rs1_1") == {"S1": 2, "S2": 1}
        assert spike_map.alleles("rs1_1") == 3
        assert spike_map.gene("rs1_1") == "KRIT1"
        assert "rs1_1" in spike_map
        assert "rs2_1" not in spike_map

    def test_dosage_capped_at_two(self):
        """A third allele for the same sample is dropped with a warning."""
        context = EngineContext(seed=1)
        spike_map = SpikeMap(context)
        for _ in range(3):
            spike_map.add("rs1_1", "S1")
        assert spike_map.dosage("rs1_1", "S1") == 2
        assert context.diagnostics.count("DOSAGE_CAPPED") == 1

    @pytest.mark.parametrize("dosage,expected", [(0, "0/0"), (1, "0/1"), (2, "1/1")])
    def test_genotype_string(self, dosage, expected):
        assert genotype_string(dosage) == expected

    def test_invalid_dosage(self):
        with pytest.raises(ValueError):
            genotype_string(3)


class TestCohortSampler:
    """Tests for spiking individual cases."""

    def test_dominant_one_allele_per_case(self, ccm_catalog, make_resolver, context):
        sampler = _sampler(make_resolver(_config()), context, ccm_catalog)
        result = sampler.run(CASES, ccm_catalog)
        assert len(result.spiked_cases) == 10
        for case in CASES:
            assert _total_dosage(result.spike_map, case) == 1

    def test_recessive_two_alleles_per_case(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(inheritance="recessive"))
        result = _sampler(resolver, context, ccm_catalog).run(CASES)
        for case in CASES:
            assert _total_dosage(result.spike_map, case) == 2

    def test_alleles_come_from_chosen_gene(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(inheritance="recessive"))
        result = _sampler(resolver, context, ccm_catalog).run(CASES)
        for case in result.cases:
            for key in result.spike_map.variant_keys():
                if result.spike_map.dosage(key, case.sample_id):
                    assert result.spike_map.gene(key) == case.gene_id

    def test_genes_block_limits_choice(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(genes={"CCM2": {"par": 0.2}}))
        result = _sampler(resolver, context, ccm_catalog).run(CASES)
        assert result.spike_map.variant_keys() == ["rs267607194_1"]
        assert {case.gene_id for case in result.cases} == {"CCM2"}

    def test_sample_inheritance_override(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(samples={"Case_01": {"inheritance": "recessive"}}))
        result = _sampler(resolver, context, ccm_catalog).run(CASES)
        assert _total_dosage(result.spike_map, "Case_01") == 2
        assert _total_dosage(result.spike_map, "Case_02") == 1

    def test_zero_heritability_spikes_nothing(self, ccm_catalog, make_resolver, context):
        result = _sampler(make_resolver(_config(heritability=0.0)), context, ccm_catalog).run(CASES)
        assert result.spiked_cases == []
        assert len(result.spike_map) == 0

    def test_hard_heritability_exact_count(self, ccm_catalog, make_resolver, context):
        """'=0.3' spikes exactly three of ten cases."""
        resolver = make_resolver(_config(heritability=None), {"heritability": "=0.3"})
        result = _sampler(resolver, context, ccm_catalog).run(CASES)
        assert len(result.spiked_cases) == 3

    def test_hard_heritability_at_sample_scope_rejected(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(samples={"Case_01": {"heritability": "=0.5"}}))
        with pytest.raises(ConfigValidationError):
            _sampler(resolver, context, ccm_catalog).run(CASES)

    def test_missing_heritability(self, ccm_catalog, make_resolver, context):
        from spikely.errors import MissingRequiredOption

        resolver = make_resolver(_config(heritability=None))
        with pytest.raises(MissingRequiredOption):
            _sampler(resolver, context, ccm_catalog).run(CASES)

    def test_catalog_marked(self, ccm_catalog, make_resolver, context):
        sampler = _sampler(make_resolver(_config()), context, ccm_catalog)
        result = sampler.run(CASES, ccm_catalog)
        assert ccm_catalog.spiked == set(result.spike_map.variant_keys())

    def test_same_seed_same_result(self, ccm_catalog, make_resolver):
        resolver = make_resolver(_config(heritability=0.5, inheritance="recessive"))
        runs = []
        for _ in range(2):
            result = _sampler(resolver, EngineContext(seed=99), ccm_catalog).run(CASES)
            runs.append({key: result.spike_map.samples(key) for key in result.spike_map.variant_keys()})
        assert runs[0] == runs[1]


class TestDeNovoAndSaturation:
    @pytest.fixture
    def skewed_catalog(self, tmp_path):
        path = VCFGenerator.generate_file(
            [
                SyntheticVariant("1", 100, "A", "G", rs_id="rs_rare", info={"GENEINFO": "G1:1", "AF": 0.01}),
                SyntheticVariant("1", 200, "C", "T", rs_id="rs_common", info={"GENEINFO": "G1:1", "AF": 0.99}),
            ],
            tmp_path,
        )
        return VariantFileParser().parse(path)

    def test_de_novo_prefers_rare_variants(self, skewed_catalog, make_resolver, context):
        """Inverted weights make the rare allele the likely draw."""
        cases = [f"S{i}" for i in range(200)]
        resolver = make_resolver(_config(inheritance="de_novo"))
        result = _sampler(resolver, context, skewed_catalog, n_samples=200).run(cases)
        rare = result.spike_map.alleles("rs_rare_1")
        common = result.spike_map.alleles("rs_common_1")
        assert rare + common == 200
        assert rare > 150

    def test_dominant_prefers_common_variants(self, skewed_catalog, make_resolver, context):
        cases = [f"S{i}" for i in range(200)]
        result = _sampler(make_resolver(_config()), context, skewed_catalog, n_samples=200).run(cases)
        assert result.spike_map.alleles("rs_common_1") > 150

    def test_max_rate_saturates_variants(self, tmp_path, make_resolver, context):
        path = VCFGenerator.generate_file(
            [SyntheticVariant("1", 100, "A", "G", rs_id="rs_only", info={"GENEINFO": "G1:1", "AF": 0.1})],
            tmp_path,
        )
        catalog = VariantFileParser().parse(path)
        resolver = make_resolver(_config(max_rate=0.1))
        result = _sampler(resolver, context, catalog).run(CASES)
        assert result.spike_map.alleles("rs_only_1") == 2
        assert context.diagnostics.count("VARIANT_SATURATED") == 8


class TestTrioSampler:
    """Tests for spiking recessive genotypes into trios."""

    TRIOS = [
        Trio("FAM1", "proband1", "father1", "mother1"),
        Trio("FAM2", "proband2", "father2", "mother2"),
    ]
    SAMPLES = ["proband1", "father1", "mother1", "proband2", "father2", "mother2"]

    def _trio_sampler(self, resolver, context, catalog):
        return _sampler(resolver, context, catalog, len(self.SAMPLES), TRIO, TrioSampler)

    def test_one_allele_from_each_parent(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(inheritance="recessive"))
        result = self._trio_sampler(resolver, context, ccm_catalog).run(self.TRIOS, self.SAMPLES)
        assert len(result.spiked_cases) == 2
        for trio in self.TRIOS:
            assert _total_dosage(result.spike_map, trio.proband) == 2
            assert _total_dosage(result.spike_map, trio.father) == 1
            assert _total_dosage(result.spike_map, trio.mother) == 1

    def test_parent_alleles_reach_proband(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(inheritance="recessive"))
        result = self._trio_sampler(resolver, context, ccm_catalog).run(self.TRIOS, self.SAMPLES)
        for key in result.spike_map.variant_keys():
            for trio in self.TRIOS:
                parents = result.spike_map.dosage(key, trio.father) + result.spike_map.dosage(key, trio.mother)
                assert result.spike_map.dosage(key, trio.proband) == parents

    def test_non_recessive_gene_rejected(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config())
        with pytest.raises(InvalidInheritanceError):
            self._trio_sampler(resolver, context, ccm_catalog).run(self.TRIOS, self.SAMPLES)

    def test_member_missing_from_cohort(self, ccm_catalog, make_resolver, context):
        resolver = make_resolver(_config(inheritance="recessive"))
        with pytest.raises(PedigreeError):
            self._trio_sampler(resolver, context, ccm_catalog).run(self.TRIOS, self.SAMPLES[:3])
