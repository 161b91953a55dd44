"""Data models for disease variants, cohorts and pedigrees."""

from dataclasses import dataclass, field

MISSING = "."

SEX_MALE = "1"
SEX_FEMALE = "2"
AFFECTED = "2"
UNAFFECTED = "1"


@dataclass(frozen=True)
class VariantRecord:
    """A single disease-variant record, immutable once parsed."""

    chrom: str
    pos: int
    id: str
    ref: str
    alt: str
    qual: str
    filter: str
    info_text: str
    info: dict[str, tuple[str, ...]]
    index_key: str
    format: tuple[str, ...] = ()
    genotypes: tuple[str, ...] = ()

    def has_info(self, key: str) -> bool:
        return key in self.info

    def info_values(self, key: str) -> tuple[str, ...]:
        return self.info.get(key, ())

    def info_value(self, key: str) -> str | None:
        """First value stored under ``key``; flags yield an empty string."""
        if key not in self.info:
            return None
        values = self.info[key]
        return values[0] if values else ""

    def fixed_columns(self) -> list[str]:
        """The eight fixed VCF columns as written in the input file."""
        return [
            self.chrom,
            str(self.pos),
            self.id,
            self.ref,
            self.alt,
            self.qual,
            self.filter,
            self.info_text,
        ]


@dataclass
class VariantCatalog:
    """In-memory representation of a disease-variant VCF."""

    meta_lines: list[str] = field(default_factory=list)
    header_line: str = ""
    records: list[VariantRecord] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)
    sample_index: dict[str, int] = field(default_factory=dict)
    spiked: set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.records)

    def add_meta_line(self, line: str) -> None:
        self.meta_lines.append(line)

    def mark_spiked(self, index_key: str) -> None:
        self.spiked.add(index_key)


@dataclass
class PedigreeMember:
    """One row of a PED file."""

    family_id: str
    sample_id: str
    father_id: str | None
    mother_id: str | None
    sex: str = "0"
    affection: str = "0"
    project: str | None = None

    @property
    def is_founder(self) -> bool:
        return self.father_id is None and self.mother_id is None


@dataclass
class Trio:
    """Proband with both parents, the unit spiked in trio mode."""

    family_id: str
    proband: str
    father: str
    mother: str
