"""Per-gene aggregation of disease variants."""

import logging
from dataclasses import dataclass, field, replace

from .config import ConfigResolver, normalize_inheritance
from .context import Diagnostics
from .frequency import AlleleFrequency, resolve_allele_frequency
from .models import VariantCatalog, VariantRecord
from .transforms import read_info

logger = logging.getLogger(__name__)

UNKNOWN_GENE = "UNKNOWN_GENE"

COHORT = "cohort"
TRIO = "trio"


@dataclass(frozen=True)
class WeightedVariant:
    """A candidate variant paired with its sampling weight."""

    record: VariantRecord
    weight: float
    frequency: AlleleFrequency | None = None


@dataclass
class GeneAggregate:
    """Variants of one gene with the gene's resolved inheritance and PAR."""

    gene_id: str
    inheritance: str
    par: float
    candidates: list[WeightedVariant] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.candidates)

    @property
    def variants(self) -> list[VariantRecord]:
        return [c.record for c in self.candidates]

    @property
    def weights(self) -> list[float]:
        return [c.weight for c in self.candidates]

    def inverted(self) -> "GeneAggregate":
        """Copy with every weight ``w`` replaced by ``1 - w``; pairing is kept."""
        return replace(
            self,
            candidates=[replace(c, weight=1.0 - c.weight) for c in self.candidates],
        )


class GeneAggregator:
    """Partitions a catalog by gene and resolves per-gene parameters."""

    def __init__(
        self,
        resolver: ConfigResolver,
        diagnostics: Diagnostics | None = None,
        mode: str = COHORT,
    ):
        self.resolver = resolver
        self.diagnostics = diagnostics or Diagnostics()
        self.mode = mode

    def gene_of(self, record: VariantRecord) -> str:
        key = self.resolver.resolve("gene_id_key", "variant", record.id)
        gene = read_info(record, key, self.resolver.info_transforms)
        return gene if gene else UNKNOWN_GENE

    def aggregate(self, catalog: VariantCatalog) -> dict[str, GeneAggregate]:
        """Group ``catalog`` records by gene, in file order."""
        aggregates: dict[str, GeneAggregate] = {}

        for record in catalog.records:
            gene_id = self.gene_of(record)
            aggregate = aggregates.get(gene_id)
            if aggregate is None:
                aggregate = GeneAggregate(
                    gene_id=gene_id,
                    inheritance=normalize_inheritance(
                        self.resolver.resolve("inheritance", "gene", gene_id)
                    ),
                    par=float(self.resolver.resolve("par", "gene", gene_id)),
                )
                aggregates[gene_id] = aggregate

            frequency = resolve_allele_frequency(
                record,
                self.resolver,
                self.diagnostics,
                use_allele_count=self.mode == COHORT,
            )

            max_maf = self.resolver.resolve_optional("max_maf", "variant", record.id)
            if max_maf is not None and frequency.value > max_maf:
                self.diagnostics.debug(
                    "MAX_MAF_EXCLUDED",
                    f"{record.index_key} maf={frequency.value:g} exceeds max_maf={max_maf:g}",
                )
                continue

            aggregate.candidates.append(WeightedVariant(record, frequency.value, frequency))

        for aggregate in aggregates.values():
            logger.debug(
                "Gene %s: %d variants, inheritance=%s, par=%g",
                aggregate.gene_id,
                aggregate.count,
                aggregate.inheritance,
                aggregate.par,
            )
        logger.info("Aggregated %d variants into %d genes", len(catalog), len(aggregates))
        return aggregates

    def eligible_genes(self, aggregates: dict[str, GeneAggregate]) -> list[GeneAggregate]:
        """Genes that may be chosen for a spiked sample.

        These are the genes named in the config's ``genes`` block when it has
        one, otherwise every gene in the catalog. Genes without candidate
        variants are skipped with a warning.
        """
        configured = self.resolver.config.genes
        gene_ids = list(configured) if configured else list(aggregates)

        eligible = []
        for gene_id in gene_ids:
            aggregate = aggregates.get(gene_id)
            if aggregate is None or aggregate.count == 0:
                self.diagnostics.warn(
                    "GENE_WITHOUT_VARIANTS",
                    f"Gene {gene_id} has no candidate variants and will not be spiked",
                )
                continue
            eligible.append(aggregate)
        return eligible
