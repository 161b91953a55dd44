"""spikely: spike disease alleles into cohort VCFs for benchmarking."""

import logging
import shlex
import sys
from collections import Counter
from pathlib import Path
from typing import Annotated, NoReturn

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer.core import TyperGroup

from . import __version__
from .errors import OptionParseError, SpikelyError
from .genes import COHORT
from .pipeline import RunSettings, RunSummary, prepare, spike_cohort, spike_trio


def version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


class SpikelyGroup(TyperGroup):
    """Reports argument errors with the same FATAL line as engine errors."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            _fatal(e.ctx or ctx, OptionParseError(e.format_message()), exit_code=e.exit_code)


app = typer.Typer(
    name="spikely",
    cls=SpikelyGroup,
    help="Spike disease-causing alleles into cohort genotypes to build ground-truth VCFs",
    add_completion=False,
)
console = Console()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", callback=version_callback, is_eager=True, help="Show version and exit"
        ),
    ] = None,
) -> None:
    pass


def setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("spikely").setLevel(level)


def _fatal(ctx: click.Context, error: SpikelyError, exit_code: int = 1) -> NoReturn:
    """Print usage and the error line, then abort."""
    typer.echo(ctx.get_help())
    console.print(f"[red]{escape(error.format_line())}[/red]")
    raise typer.Exit(exit_code) from None


def _command_line() -> str:
    return shlex.join(["spikely", *sys.argv[1:]])


def _print_summary(summary: RunSummary, quiet: bool) -> None:
    if quiet:
        return
    unit = "families" if summary.mode == "trio" else "cases"
    console.print(
        f"[green]✓[/green] Spiked {summary.spiked}/{summary.cases} {unit}; "
        f"wrote {summary.variants_written} records to {summary.output}"
    )
    if summary.warnings:
        counts = Counter(w.code for w in summary.warnings)
        console.print(f"[yellow]{len(summary.warnings)} warnings:[/yellow]")
        for code, count in counts.items():
            console.print(f"  {code}: {count}")


VcfArg = Annotated[Path, typer.Argument(help="Disease variants VCF (.vcf, .vcf.gz)")]
SamplesOpt = Annotated[
    Path, typer.Option("--samples", "-s", help="Cohort VCF whose header supplies the sample ids")
]
OutputOpt = Annotated[Path, typer.Option("--output", "-o", help="Output VCF (.gz for gzip)")]
ConfigOpt = Annotated[
    Path | None, typer.Option("--config", "-c", help="Config file (.yaml, .yml, .toml)")
]
SeedOpt = Annotated[int | None, typer.Option("--seed", help="Random seed")]
TruthOpt = Annotated[
    Path | None, typer.Option("--truth", help="Also write a TSV of every spiked genotype")
]
HeritabilityOpt = Annotated[
    str | None,
    typer.Option(
        "--heritability",
        help="Probability a case is spiked, or '=<fraction>' to spike exactly that fraction",
    ),
]
InheritanceOpt = Annotated[
    str | None,
    typer.Option("--inheritance", help="dominant, recessive, x-linked, additive or de_novo"),
]
ParOpt = Annotated[float | None, typer.Option("--par", help="Default population attributable risk per gene")]
MaxRateOpt = Annotated[
    float | None, typer.Option("--max-rate", help="Maximum spiked allele rate of any variant")
]
MaxMafOpt = Annotated[
    float | None, typer.Option("--max-maf", help="Exclude variants with a higher population MAF")
]
AfKeyOpt = Annotated[str | None, typer.Option("--af-key", help="INFO key holding allele frequency")]
AnKeyOpt = Annotated[str | None, typer.Option("--an-key", help="INFO key holding allele number")]
AcKeyOpt = Annotated[str | None, typer.Option("--ac-key", help="INFO key holding allele count")]
DefaultAfOpt = Annotated[
    float | None, typer.Option("--default-af", help="Allele frequency when the INFO has none")
]
GeneIdKeyOpt = Annotated[str | None, typer.Option("--gene-id-key", help="INFO key holding the gene id")]
CaseIdsOpt = Annotated[
    str | None, typer.Option("--case-ids", help="Comma-separated case sample ids (default: all)")
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")]
QuietOpt = Annotated[bool, typer.Option("--quiet", "-q", help="Only warnings and errors")]


def _cli_options(**options) -> dict:
    return {name: value for name, value in options.items() if value is not None}


@app.command()
def cohort(
    ctx: typer.Context,
    vcf: VcfArg,
    samples: SamplesOpt,
    output: OutputOpt,
    config: ConfigOpt = None,
    seed: SeedOpt = None,
    truth: TruthOpt = None,
    heritability: HeritabilityOpt = None,
    inheritance: InheritanceOpt = None,
    par: ParOpt = None,
    max_rate: MaxRateOpt = None,
    max_maf: MaxMafOpt = None,
    af_key: AfKeyOpt = None,
    an_key: AnKeyOpt = None,
    ac_key: AcKeyOpt = None,
    default_af: DefaultAfOpt = None,
    gene_id_key: GeneIdKeyOpt = None,
    case_ids: CaseIdsOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
) -> None:
    """Spike causal genotypes into case samples of a cohort."""
    setup_logging(verbose, quiet)
    settings = RunSettings(
        disease_vcf=vcf,
        cohort_vcf=samples,
        output=output,
        config_path=config,
        cli_options=_cli_options(
            heritability=heritability,
            inheritance=inheritance,
            par=par,
            max_rate=max_rate,
            max_maf=max_maf,
            af_key=af_key,
            an_key=an_key,
            ac_key=ac_key,
            default_af=default_af,
            gene_id_key=gene_id_key,
            case_ids=case_ids,
        ),
        seed=seed,
        truth_path=truth,
        command_line=_command_line(),
    )
    try:
        summary = spike_cohort(settings)
    except SpikelyError as e:
        _fatal(ctx, e)
    _print_summary(summary, quiet)


@app.command()
def trio(
    ctx: typer.Context,
    vcf: VcfArg,
    samples: SamplesOpt,
    output: OutputOpt,
    ped: Annotated[Path | None, typer.Option("--ped", "-p", help="Pedigree (PED) file")] = None,
    proband: Annotated[str | None, typer.Option("--proband", help="Proband sample id")] = None,
    father: Annotated[str | None, typer.Option("--father", help="Father sample id")] = None,
    mother: Annotated[str | None, typer.Option("--mother", help="Mother sample id")] = None,
    config: ConfigOpt = None,
    seed: SeedOpt = None,
    truth: TruthOpt = None,
    heritability: HeritabilityOpt = None,
    inheritance: InheritanceOpt = None,
    par: ParOpt = None,
    max_rate: MaxRateOpt = None,
    max_maf: MaxMafOpt = None,
    af_key: AfKeyOpt = None,
    an_key: AnKeyOpt = None,
    default_af: DefaultAfOpt = None,
    gene_id_key: GeneIdKeyOpt = None,
    case_ids: CaseIdsOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
) -> None:
    """Spike recessive genotypes into trios, one allele from each carrier parent."""
    setup_logging(verbose, quiet)
    settings = RunSettings(
        disease_vcf=vcf,
        cohort_vcf=samples,
        output=output,
        config_path=config,
        cli_options=_cli_options(
            heritability=heritability,
            inheritance=inheritance,
            par=par,
            max_rate=max_rate,
            max_maf=max_maf,
            af_key=af_key,
            an_key=an_key,
            default_af=default_af,
            gene_id_key=gene_id_key,
            case_ids=case_ids,
        ),
        seed=seed,
        truth_path=truth,
        command_line=_command_line(),
    )
    try:
        summary = spike_trio(settings, ped, proband, father, mother)
    except SpikelyError as e:
        _fatal(ctx, e)
    _print_summary(summary, quiet)


@app.command()
def genes(
    ctx: typer.Context,
    vcf: VcfArg,
    config: ConfigOpt = None,
    inheritance: InheritanceOpt = None,
    par: ParOpt = None,
    max_maf: MaxMafOpt = None,
    af_key: AfKeyOpt = None,
    an_key: AnKeyOpt = None,
    ac_key: AcKeyOpt = None,
    default_af: DefaultAfOpt = None,
    gene_id_key: GeneIdKeyOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Show how disease variants aggregate into genes under the current config."""
    setup_logging(verbose, quiet=not verbose)
    options = _cli_options(
        inheritance=inheritance,
        par=par,
        max_maf=max_maf,
        af_key=af_key,
        an_key=an_key,
        ac_key=ac_key,
        default_af=default_af,
        gene_id_key=gene_id_key,
    )
    try:
        prepared = prepare(vcf, config, options, mode=COHORT)
    except SpikelyError as e:
        _fatal(ctx, e)

    eligible = {gene.gene_id for gene in prepared.eligible}
    table = Table(title=f"Genes in {vcf.name}")
    table.add_column("Gene")
    table.add_column("Inheritance")
    table.add_column("PAR", justify="right")
    table.add_column("Variants", justify="right")
    table.add_column("Total weight", justify="right")
    table.add_column("Eligible")

    for gene in prepared.genes.values():
        table.add_row(
            gene.gene_id,
            gene.inheritance,
            f"{gene.par:g}",
            str(gene.count),
            f"{sum(gene.weights):.3g}",
            "yes" if gene.gene_id in eligible else "no",
        )
    console.print(table)


if __name__ == "__main__":
    app()
