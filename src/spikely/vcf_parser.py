"""VCF parsing functionality."""

import gzip
import logging
import re
from collections import Counter
from pathlib import Path

from cyvcf2 import VCF

from .errors import InputFileError, VCFParseError
from .models import MISSING, VariantCatalog, VariantRecord

logger = logging.getLogger(__name__)

VCF_SUFFIXES = (".vcf", ".vcf.gz", ".vcf.bgz")
FIXED_COLUMNS = 8


def check_vcf_path(path: Path | str) -> Path:
    """Verify that ``path`` exists and has a recognized VCF extension."""
    path = Path(path)
    if not path.exists():
        raise InputFileError(f"VCF file not found: {path}", code="E_FILE_MISSING")
    if not path.is_file():
        raise InputFileError(f"Not a regular file: {path}", code="E_FILE_UNREADABLE")
    if not str(path).lower().endswith(VCF_SUFFIXES):
        raise InputFileError(
            f"Unrecognized file extension for {path}; expected one of {', '.join(VCF_SUFFIXES)}",
            code="E_FILE_EXTENSION",
        )
    return path


def open_vcf(path: Path):
    opener = gzip.open if str(path).lower().endswith((".gz", ".bgz")) else open
    try:
        return opener(path, "rt")
    except OSError as e:
        raise InputFileError(f"Cannot read {path}: {e}", code="E_FILE_UNREADABLE") from e


def parse_info(info_text: str) -> dict[str, tuple[str, ...]]:
    """Parse a raw INFO column into ``key -> values``.

    Flags map to an empty tuple. When a key repeats, the first occurrence wins.
    """
    info: dict[str, tuple[str, ...]] = {}
    if not info_text or info_text == MISSING:
        return info
    for entry in info_text.split(";"):
        if not entry:
            continue
        if "=" in entry:
            key, value = entry.split("=", 1)
            values = tuple(value.split(","))
        else:
            key, values = entry, ()
        if key not in info:
            info[key] = values
    return info


class VCFHeaderParser:
    """Reads INFO and FORMAT declarations from ``##`` meta lines.

    The writer uses it to see which keys the input already declares.
    """

    INFO_PATTERN = re.compile(r"##INFO=<(.+)>$")
    FORMAT_PATTERN = re.compile(r"##FORMAT=<(.+)>$")
    # key=value pairs; quoted values may hold commas and escaped quotes
    ATTRIBUTE_PATTERN = re.compile(r'(\w+)=("(?:[^"\\]|\\.)*"|[^,]*)')

    def parse_info_fields(self, header_lines: list[str]) -> dict[str, dict[str, str]]:
        """Declared INFO keys mapped to their remaining attributes."""
        return self._declarations(header_lines, self.INFO_PATTERN)

    def parse_format_fields(self, header_lines: list[str]) -> dict[str, dict[str, str]]:
        """Declared FORMAT keys mapped to their remaining attributes."""
        return self._declarations(header_lines, self.FORMAT_PATTERN)

    def _declarations(self, header_lines: list[str], pattern: re.Pattern) -> dict[str, dict[str, str]]:
        declared = {}
        for line in header_lines:
            match = pattern.match(line)
            if not match:
                continue
            attributes = self.parse_attributes(match.group(1))
            field_id = attributes.pop("ID", None)
            if field_id is None:
                logger.debug("Ignoring declaration without ID: %s", line)
                continue
            declared.setdefault(field_id, attributes)
        return declared

    def parse_attributes(self, body: str) -> dict[str, str]:
        """Split ``ID=AC,Number=A,Description="a, b"`` into unquoted attributes."""
        attributes = {}
        for key, value in self.ATTRIBUTE_PATTERN.findall(body):
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1].replace('\\"', '"')
            attributes.setdefault(key, value)
        return attributes


class VariantFileParser:
    """Reads a disease-variant VCF into a ``VariantCatalog``."""

    def parse(self, path: Path | str) -> VariantCatalog:
        path = check_vcf_path(path)
        catalog = VariantCatalog()
        occurrences: Counter = Counter()

        with open_vcf(path) as f:
            for line_number, line in enumerate(f, start=1):
                line = line.rstrip("\r\n")
                if not line:
                    continue
                if line.startswith("##"):
                    catalog.add_meta_line(line)
                elif line.startswith("#CHROM"):
                    self._parse_column_header(catalog, line)
                else:
                    if not catalog.header_line:
                        raise VCFParseError(
                            f"{path}:{line_number}: record found before #CHROM header line"
                        )
                    record = self.parse_record(line, occurrences, line_number)
                    catalog.records.append(record)

        if not catalog.header_line:
            raise VCFParseError(f"{path}: missing #CHROM header line")

        logger.info("Parsed %d variant records from %s", len(catalog.records), path)
        return catalog

    def _parse_column_header(self, catalog: VariantCatalog, line: str) -> None:
        columns = line.split("\t")
        catalog.header_line = line
        catalog.samples = columns[FIXED_COLUMNS + 1:]
        catalog.sample_index = {
            sample: FIXED_COLUMNS + 1 + i for i, sample in enumerate(catalog.samples)
        }

    def parse_record(
        self, line: str, occurrences: Counter, line_number: int = 0
    ) -> VariantRecord:
        """Parse one tab-delimited record, assigning its deduplicated index key."""
        columns = line.split("\t")
        if len(columns) < FIXED_COLUMNS:
            raise VCFParseError(
                f"line {line_number}: expected at least {FIXED_COLUMNS} columns, got {len(columns)}"
            )
        chrom, pos, variant_id, ref, alt, qual, filt, info_text = columns[:FIXED_COLUMNS]
        try:
            position = int(pos)
        except ValueError:
            raise VCFParseError(f"line {line_number}: invalid POS '{pos}'") from None

        occurrences[variant_id] += 1
        index_key = f"{variant_id}_{occurrences[variant_id]}"

        format_fields: tuple[str, ...] = ()
        if len(columns) > FIXED_COLUMNS and columns[FIXED_COLUMNS]:
            format_fields = tuple(columns[FIXED_COLUMNS].split(":"))

        return VariantRecord(
            chrom=chrom,
            pos=position,
            id=variant_id,
            ref=ref,
            alt=alt,
            qual=qual,
            filter=filt,
            info_text=info_text,
            info=parse_info(info_text),
            index_key=index_key,
            format=format_fields,
            genotypes=tuple(columns[FIXED_COLUMNS + 1:]),
        )


def read_sample_ids(path: Path | str) -> list[str]:
    """Return the sample identifiers from a cohort VCF header."""
    path = check_vcf_path(path)
    try:
        vcf = VCF(str(path))
    except OSError as e:
        raise InputFileError(f"Cannot read {path}: {e}", code="E_FILE_UNREADABLE") from e
    try:
        samples = list(vcf.samples)
    finally:
        vcf.close()
    logger.info("Read %d sample ids from %s", len(samples), path)
    return samples
