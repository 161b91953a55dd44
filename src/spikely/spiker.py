"""Cohort and trio spiking.

For every case (or family) the samplers decide whether it is spiked,
pick a causal gene weighted by PAR, and draw one or two causal alleles from
that gene's variants weighted by allele frequency. Draws are recorded in a
``SpikeMap`` of ``variant index key -> sample -> dosage``.
"""

import logging
from dataclasses import dataclass, field

from .config import RECESSIVE, ConfigResolver, is_de_novo, normalize_inheritance, parse_heritability
from .context import EngineContext
from .errors import ConfigValidationError, InvalidInheritanceError
from .genes import GeneAggregate, WeightedVariant
from .models import PedigreeMember, Trio, VariantCatalog
from .pedigree import validate_trio
from .sampling import select_hard_cases, weighted_choice

logger = logging.getLogger(__name__)

HOM_ALT = "1/1"
HET = "0/1"
HOM_REF = "0/0"


class SpikeMap:
    """Causal allele dosages per variant and sample.

    Dosages accumulate by increment and are capped at 2; an increment past
    the cap is dropped with a ``DOSAGE_CAPPED`` warning.
    """

    MAX_DOSAGE = 2

    def __init__(self, context: EngineContext | None = None):
        self._context = context
        self._dosages: dict[str, dict[str, int]] = {}
        self._genes: dict[str, str] = {}

    def __contains__(self, index_key: str) -> bool:
        return index_key in self._dosages

    def __len__(self) -> int:
        return len(self._dosages)

    def add(self, index_key: str, sample_id: str, gene_id: str | None = None) -> int:
        samples = self._dosages.setdefault(index_key, {})
        current = samples.get(sample_id, 0)
        if current >= self.MAX_DOSAGE:
            if self._context is not None:
                self._context.diagnostics.warn(
                    "DOSAGE_CAPPED",
                    f"{sample_id} already homozygous for {index_key}; extra allele dropped",
                )
            return current
        samples[sample_id] = current + 1
        if gene_id is not None:
            self._genes[index_key] = gene_id
        return current + 1

    def dosage(self, index_key: str, sample_id: str) -> int:
        return self._dosages.get(index_key, {}).get(sample_id, 0)

    def samples(self, index_key: str) -> dict[str, int]:
        return dict(self._dosages.get(index_key, {}))

    def alleles(self, index_key: str) -> int:
        return sum(self._dosages.get(index_key, {}).values())

    def variant_keys(self) -> list[str]:
        return list(self._dosages)

    def gene(self, index_key: str) -> str | None:
        return self._genes.get(index_key)

    def genotype(self, index_key: str, sample_id: str) -> str:
        return genotype_string(self.dosage(index_key, sample_id))


def genotype_string(dosage: int) -> str:
    """Map a dosage to its unphased diploid genotype."""
    if dosage == 2:
        return HOM_ALT
    if dosage == 1:
        return HET
    if dosage == 0:
        return HOM_REF
    raise ValueError(f"Invalid dosage {dosage}")


@dataclass
class CaseSample:
    sample_id: str
    heritability: float
    spiked: bool = False
    gene_id: str | None = None


@dataclass
class SpikeResult:
    spike_map: SpikeMap
    cases: list[CaseSample] = field(default_factory=list)

    @property
    def spiked_cases(self) -> list[CaseSample]:
        return [case for case in self.cases if case.spiked]


class _Sampler:
    """Gating, gene choice and allele draws shared by cohort and trio modes."""

    def __init__(
        self,
        resolver: ConfigResolver,
        context: EngineContext,
        genes: list[GeneAggregate],
        n_samples: int,
    ):
        self.resolver = resolver
        self.context = context
        self.genes = genes
        self.n_samples = n_samples
        self.spike_map = SpikeMap(context)

    @property
    def rng(self):
        return self.context.rng

    @property
    def diagnostics(self):
        return self.context.diagnostics

    def hard_selection(self, case_ids: list[str]) -> set[str] | None:
        """Pre-select cases when heritability is given as ``=<fraction>``.

        Only the command line and general config tiers can switch hard mode on;
        returns None in probabilistic mode.
        """
        value = self.resolver.resolve_optional("heritability")
        if value is None:
            return None
        heritability = parse_heritability(value)
        if not heritability.hard:
            return None
        selected = select_hard_cases(self.rng, case_ids, heritability.value)
        logger.info(
            "Hard heritability %g: spiking exactly %d of %d cases",
            heritability.value,
            len(selected),
            len(case_ids),
        )
        return selected

    def gate(self, sample_id: str, hard: set[str] | None) -> CaseSample:
        if hard is not None:
            spiked = sample_id in hard
            return CaseSample(sample_id, 1.0 if spiked else 0.0, spiked)

        heritability = parse_heritability(
            self.resolver.resolve("heritability", "sample", sample_id)
        )
        if heritability.hard:
            raise ConfigValidationError(
                f"samples.{sample_id}: '=<fraction>' heritability can only be set globally"
            )
        draw = self.rng.random()
        return CaseSample(sample_id, heritability.value, draw <= heritability.value)

    def choose_gene(self) -> GeneAggregate:
        return weighted_choice(
            self.rng,
            self.genes,
            [gene.par for gene in self.genes],
            self.diagnostics,
            label="genes",
        )

    def _saturated(self, candidate: WeightedVariant) -> bool:
        record = candidate.record
        max_rate = self.resolver.resolve_optional("max_rate", "variant", record.id)
        if max_rate is None or self.n_samples == 0:
            return False
        rate = self.spike_map.alleles(record.index_key) / (2 * self.n_samples)
        return rate >= max_rate

    def draw_variant(self, gene: GeneAggregate) -> WeightedVariant | None:
        """Draw one candidate of ``gene``, skipping variants at their ``max_rate``."""
        available = [c for c in gene.candidates if not self._saturated(c)]
        if not available:
            self.diagnostics.warn(
                "VARIANT_SATURATED",
                f"Every variant of {gene.gene_id} has reached max_rate; allele skipped",
            )
            return None
        return weighted_choice(
            self.rng,
            available,
            [c.weight for c in available],
            self.diagnostics,
            label=f"variants of {gene.gene_id}",
        )

    def finish(self, catalog: VariantCatalog | None) -> None:
        if catalog is None:
            return
        for index_key in self.spike_map.variant_keys():
            catalog.mark_spiked(index_key)


class CohortSampler(_Sampler):
    """Spikes individual cases of a cohort."""

    def allele_plan(self, sample_id: str, gene: GeneAggregate) -> tuple[int, GeneAggregate]:
        """Allele count and (possibly inverted) candidates for ``sample_id``.

        A sample-level ``inheritance`` override takes precedence over the gene's.
        """
        override = self.resolver.config.entity_options("sample", sample_id).get("inheritance")
        mode = normalize_inheritance(override) if override is not None else gene.inheritance
        allele_count = 2 if mode == RECESSIVE else 1
        if is_de_novo(mode):
            gene = gene.inverted()
        return allele_count, gene

    def spike_sample(self, sample_id: str) -> str:
        gene = self.choose_gene()
        allele_count, candidates = self.allele_plan(sample_id, gene)
        for _ in range(allele_count):
            chosen = self.draw_variant(candidates)
            if chosen is None:
                continue
            self.spike_map.add(chosen.record.index_key, sample_id, gene.gene_id)
            logger.debug("Spiked %s into %s (gene %s)", chosen.record.index_key, sample_id, gene.gene_id)
        return gene.gene_id

    def run(self, case_ids: list[str], catalog: VariantCatalog | None = None) -> SpikeResult:
        result = SpikeResult(self.spike_map)
        hard = self.hard_selection(case_ids)
        for sample_id in case_ids:
            case = self.gate(sample_id, hard)
            if case.spiked:
                case.gene_id = self.spike_sample(sample_id)
            result.cases.append(case)

        self.finish(catalog)
        logger.info(
            "Spiked %d of %d cases across %d variants",
            len(result.spiked_cases),
            len(case_ids),
            len(self.spike_map),
        )
        return result


class TrioSampler(_Sampler):
    """Spikes recessive genotypes into trios: one allele per carrier parent."""

    def spike_family(self, trio: Trio) -> str:
        gene = self.choose_gene()
        if gene.inheritance != RECESSIVE:
            raise InvalidInheritanceError(
                f"Gene {gene.gene_id} selected for family {trio.family_id} has inheritance "
                f"'{gene.inheritance}'; trio mode requires 'recessive'"
            )
        for parent in (trio.mother, trio.father):
            chosen = self.draw_variant(gene)
            if chosen is None:
                continue
            key = chosen.record.index_key
            self.spike_map.add(key, parent, gene.gene_id)
            self.spike_map.add(key, trio.proband, gene.gene_id)
            logger.debug(
                "Spiked %s into %s and proband %s (gene %s)",
                key,
                parent,
                trio.proband,
                gene.gene_id,
            )
        return gene.gene_id

    def run(
        self,
        trios: list[Trio],
        sample_ids: list[str],
        pedigree: dict[str, PedigreeMember] | None = None,
        catalog: VariantCatalog | None = None,
    ) -> SpikeResult:
        for trio in trios:
            validate_trio(trio, sample_ids, self.diagnostics, pedigree)

        result = SpikeResult(self.spike_map)
        hard = self.hard_selection([trio.proband for trio in trios])
        for trio in trios:
            case = self.gate(trio.proband, hard)
            if case.spiked:
                case.gene_id = self.spike_family(trio)
            result.cases.append(case)

        self.finish(catalog)
        logger.info(
            "Spiked %d of %d families across %d variants",
            len(result.spiked_cases),
            len(trios),
            len(self.spike_map),
        )
        return result

