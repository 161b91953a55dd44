"""End-to-end spiking runs: read inputs, sample, write outputs."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import ConfigResolver, load_config
from .context import Diagnostic, EngineContext
from .errors import PedigreeError
from .genes import COHORT, TRIO, GeneAggregate, GeneAggregator
from .models import Trio, VariantCatalog
from .pedigree import find_trios, read_pedigree, trio_from_ids
from .spiker import CohortSampler, SpikeResult, TrioSampler
from .vcf_parser import VariantFileParser, read_sample_ids
from .writer import VariantWriter

logger = logging.getLogger(__name__)


@dataclass
class RunSettings:
    """Inputs and options for one spiking run."""

    disease_vcf: Path
    cohort_vcf: Path
    output: Path
    config_path: Path | None = None
    cli_options: dict[str, Any] = field(default_factory=dict)
    seed: int | None = None
    truth_path: Path | None = None
    command_line: str = "spikely"


@dataclass
class RunSummary:
    mode: str
    cases: int
    spiked: int
    variants_written: int
    output: Path
    warnings: list[Diagnostic] = field(default_factory=list)
    result: SpikeResult | None = None


@dataclass
class Prepared:
    resolver: ConfigResolver
    context: EngineContext
    catalog: VariantCatalog
    genes: dict[str, GeneAggregate]
    eligible: list[GeneAggregate]


def prepare(
    disease_vcf: Path,
    config_path: Path | None,
    cli_options: dict[str, Any],
    seed: int | None = None,
    mode: str = COHORT,
) -> Prepared:
    """Load config and disease variants, then aggregate them by gene."""
    config = load_config(config_path)
    resolver = ConfigResolver(config, cli_options)
    context = EngineContext(seed=seed if seed is not None else config.seed)

    catalog = VariantFileParser().parse(disease_vcf)
    aggregator = GeneAggregator(resolver, context.diagnostics, mode=mode)
    genes = aggregator.aggregate(catalog)
    eligible = aggregator.eligible_genes(genes)
    return Prepared(resolver, context, catalog, genes, eligible)


def _case_ids(resolver: ConfigResolver, sample_ids: list[str], prepared: Prepared) -> list[str]:
    requested = resolver.case_ids()
    if requested is None:
        return list(sample_ids)

    known = set(sample_ids)
    case_ids = []
    for sample_id in requested:
        if sample_id not in known:
            prepared.context.diagnostics.warn(
                "UNKNOWN_CASE_ID", f"Case id '{sample_id}' not in cohort VCF header; ignored"
            )
            continue
        case_ids.append(sample_id)
    return case_ids


def _write(settings: RunSettings, prepared: Prepared, result: SpikeResult, sample_ids: list[str]) -> int:
    writer = VariantWriter(
        prepared.catalog,
        result.spike_map,
        sample_ids,
        settings.command_line,
        prepared.resolver,
    )
    written = writer.write(settings.output)
    if settings.truth_path is not None:
        writer.write_truth(settings.truth_path)
    return written


def spike_cohort(settings: RunSettings) -> RunSummary:
    """Spike causal genotypes into the cases of a cohort."""
    prepared = prepare(
        settings.disease_vcf, settings.config_path, settings.cli_options, settings.seed, COHORT
    )
    sample_ids = read_sample_ids(settings.cohort_vcf)
    case_ids = _case_ids(prepared.resolver, sample_ids, prepared)

    sampler = CohortSampler(prepared.resolver, prepared.context, prepared.eligible, len(sample_ids))
    result = sampler.run(case_ids, prepared.catalog)
    written = _write(settings, prepared, result, sample_ids)

    return RunSummary(
        mode=COHORT,
        cases=len(case_ids),
        spiked=len(result.spiked_cases),
        variants_written=written,
        output=settings.output,
        warnings=prepared.context.diagnostics.warnings,
        result=result,
    )


def resolve_trios(
    ped_path: Path | None,
    proband: str | None,
    father: str | None,
    mother: str | None,
) -> tuple[list[Trio], dict | None]:
    """Trios from explicit identifiers, or from every complete family in the pedigree."""
    pedigree = read_pedigree(ped_path) if ped_path is not None else None

    given = [proband, father, mother]
    if any(given):
        if not all(given):
            raise PedigreeError(
                "--proband, --father and --mother must be given together", code="E_TRIO_IDS"
            )
        return [trio_from_ids(proband, father, mother, pedigree)], pedigree

    if pedigree is None:
        raise PedigreeError(
            "Trio mode requires a pedigree file or --proband/--father/--mother", code="E_TRIO_IDS"
        )
    trios = find_trios(pedigree)
    if not trios:
        raise PedigreeError(f"No complete trios found in {ped_path}", code="E_TRIO_IDS")
    return trios, pedigree


def spike_trio(
    settings: RunSettings,
    ped_path: Path | None = None,
    proband: str | None = None,
    father: str | None = None,
    mother: str | None = None,
) -> RunSummary:
    """Spike recessive genotypes into trios: one allele from each parent."""
    trios, pedigree = resolve_trios(ped_path, proband, father, mother)
    prepared = prepare(
        settings.disease_vcf, settings.config_path, settings.cli_options, settings.seed, TRIO
    )
    sample_ids = read_sample_ids(settings.cohort_vcf)

    requested = prepared.resolver.case_ids()
    if requested is not None:
        trios = [trio for trio in trios if trio.proband in set(requested)]

    sampler = TrioSampler(prepared.resolver, prepared.context, prepared.eligible, len(sample_ids))
    result = sampler.run(trios, sample_ids, pedigree, prepared.catalog)
    written = _write(settings, prepared, result, sample_ids)

    return RunSummary(
        mode=TRIO,
        cases=len(trios),
        spiked=len(result.spiked_cases),
        variants_written=written,
        output=settings.output,
        warnings=prepared.context.diagnostics.warnings,
        result=result,
    )
