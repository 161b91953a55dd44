"""Serialization of spiked variants to VCF."""

import gzip
import logging
from collections.abc import Iterator
from pathlib import Path

from .config import ConfigResolver
from .models import MISSING, VariantCatalog, VariantRecord
from .spiker import SpikeMap, genotype_string
from .vcf_parser import VCFHeaderParser

logger = logging.getLogger(__name__)

SPIKE_FLAG = "SPIKELY"
SPIKE_INFO_LINE = (
    f'##INFO=<ID={SPIKE_FLAG},Number=0,Type=Flag,'
    'Description="Genotypes at this record were spiked by spikely">'
)
GT_FORMAT_LINE = '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">'
COMMAND_PREFIX = "##spikelyCommand="

# Output column of each fixed field a variants block may override
OVERRIDE_COLUMNS = {"CHROM": 0, "POS": 1, "REF": 3, "ALT": 4, "QUAL": 5, "FILTER": 6}

COLUMN_HEADER = ["#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO", "FORMAT"]


def _open_output(path: Path):
    opener = gzip.open if str(path).endswith(".gz") else open
    return opener(path, "wt")


class VariantWriter:
    """Writes the spiked records of a catalog with synthesized genotypes.

    Only records present in the ``SpikeMap`` are written; their INFO gains the
    ``SPIKELY`` flag and their genotype block is rebuilt as ``GT`` for every
    cohort sample.
    """

    def __init__(
        self,
        catalog: VariantCatalog,
        spike_map: SpikeMap,
        sample_ids: list[str],
        command_line: str,
        resolver: ConfigResolver | None = None,
    ):
        self.catalog = catalog
        self.spike_map = spike_map
        self.sample_ids = sample_ids
        self.command_line = command_line
        self.resolver = resolver
        self._annotated = False

    def annotate_header(self) -> None:
        """Declare SPIKELY and GT unless the input already does, then record this run.

        Provenance lines of earlier runs are kept; this writer's command line
        is appended once.
        """
        if self._annotated:
            return
        header = VCFHeaderParser()
        if SPIKE_FLAG not in header.parse_info_fields(self.catalog.meta_lines):
            self.catalog.add_meta_line(SPIKE_INFO_LINE)
        if "GT" not in header.parse_format_fields(self.catalog.meta_lines):
            self.catalog.add_meta_line(GT_FORMAT_LINE)
        self.catalog.add_meta_line(f"{COMMAND_PREFIX}{self.command_line}")
        self._annotated = True

    def fixed_columns(self, record: VariantRecord) -> list[str]:
        columns = record.fixed_columns()
        if self.resolver is not None:
            overrides = self.resolver.config.entity_options("variant", record.id)
            for name, column in OVERRIDE_COLUMNS.items():
                if overrides.get(name) is not None:
                    columns[column] = str(overrides[name])

        info = columns[7]
        columns[7] = SPIKE_FLAG if info in ("", MISSING) else f"{info};{SPIKE_FLAG}"
        return columns

    def record_line(self, record: VariantRecord) -> str:
        genotypes = [
            genotype_string(self.spike_map.dosage(record.index_key, sample))
            for sample in self.sample_ids
        ]
        return "\t".join([*self.fixed_columns(record), "GT", *genotypes])

    def lines(self) -> Iterator[str]:
        self.annotate_header()
        yield from self.catalog.meta_lines
        yield "\t".join(COLUMN_HEADER + self.sample_ids)
        for record in self.catalog.records:
            if record.index_key in self.spike_map:
                yield self.record_line(record)

    def write(self, output_path: Path | str) -> int:
        """Write the spiked VCF; returns the number of records written."""
        output_path = Path(output_path)
        written = 0
        with _open_output(output_path) as f:
            for line in self.lines():
                if not line.startswith("#"):
                    written += 1
                f.write(line + "\n")
        logger.info("Wrote %d spiked records to %s", written, output_path)
        return written

    def write_truth(self, output_path: Path | str) -> int:
        """Write a ``variant, sample, dosage, gene`` table of every spiked genotype."""
        output_path = Path(output_path)
        rows = 0
        with _open_output(output_path) as f:
            f.write("variant\tchrom\tpos\tsample\tdosage\tgene\n")
            for record in self.catalog.records:
                if record.index_key not in self.spike_map:
                    continue
                gene = self.spike_map.gene(record.index_key) or ""
                for sample in self.sample_ids:
                    dosage = self.spike_map.dosage(record.index_key, sample)
                    if dosage:
                        f.write(
                            f"{record.index_key}\t{record.chrom}\t{record.pos}\t"
                            f"{sample}\t{dosage}\t{gene}\n"
                        )
                        rows += 1
        logger.info("Wrote %d truth rows to %s", rows, output_path)
        return rows
