"""Synthetic disease and cohort VCF generators for unit tests."""

from dataclasses import dataclass, field
from pathlib import Path
import tempfile


@dataclass
class SyntheticVariant:
    """Represents a synthetic disease variant for testing."""

    chrom: str
    pos: int
    ref: str
    alt: str
    rs_id: str = "."
    qual: str = "."
    filter: str = "PASS"
    info: dict = field(default_factory=dict)


class VCFGenerator:
    """Generate minimal VCFs for targeted unit tests."""

    HEADER_TEMPLATE = """##fileformat=VCFv4.2
##INFO=<ID=GENEINFO,Number=1,Type=String,Description="Gene(s) for the variant">
##INFO=<ID=AF,Number=A,Type=Float,Description="Allele Frequency">
##INFO=<ID=AC,Number=A,Type=Integer,Description="Allele Count">
##INFO=<ID=AN,Number=1,Type=Integer,Description="Total Alleles">
##INFO=<ID=CLNSIG,Number=.,Type=String,Description="Clinical significance">
##contig=<ID=1,length=248956422>
##contig=<ID=3,length=198295559>
##contig=<ID=7,length=159345973>
##contig=<ID=X,length=156040895>
"""

    COHORT_HEADER_TEMPLATE = """##fileformat=VCFv4.2
##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">
##contig=<ID=1,length=248956422>
"""

    @classmethod
    def generate(cls, variants: list[SyntheticVariant]) -> str:
        """Generate a sites-only disease VCF string."""
        lines = [cls.HEADER_TEMPLATE.strip()]
        lines.append("#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO")
        for v in variants:
            info_str = cls._format_info(v.info) if v.info else "."
            lines.append(
                f"{v.chrom}\t{v.pos}\t{v.rs_id}\t{v.ref}\t{v.alt}\t{v.qual}\t{v.filter}\t{info_str}"
            )
        return "\n".join(lines) + "\n"

    @classmethod
    def generate_cohort(cls, samples: list[str]) -> str:
        """Generate a cohort VCF with one homozygous-reference record."""
        lines = [cls.COHORT_HEADER_TEMPLATE.strip()]
        lines.append(
            "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\t" + "\t".join(samples)
        )
        lines.append("1\t100\t.\tA\tG\t50\tPASS\t.\tGT\t" + "\t".join("0/0" for _ in samples))
        return "\n".join(lines) + "\n"

    @classmethod
    def generate_file(
        cls, variants: list[SyntheticVariant], directory: Path | None = None
    ) -> Path:
        """Generate a disease VCF file and return the path."""
        return cls._write(cls.generate(variants), directory)

    @classmethod
    def generate_cohort_file(cls, samples: list[str], directory: Path | None = None) -> Path:
        """Generate a cohort VCF file and return the path."""
        return cls._write(cls.generate_cohort(samples), directory)

    @staticmethod
    def _write(content: str, directory: Path | None) -> Path:
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".vcf", delete=False, dir=directory
        ) as f:
            f.write(content)
            return Path(f.name)

    @staticmethod
    def _format_info(info: dict) -> str:
        parts = []
        for k, v in info.items():
            if v is True:
                parts.append(k)
            elif isinstance(v, list):
                parts.append(f"{k}={','.join(map(str, v))}")
            else:
                parts.append(f"{k}={v}")
        return ";".join(parts) if parts else "."


def make_ccm_variants() -> list[SyntheticVariant]:
    """Cerebral cavernous malformation genes with a mix of frequency annotations."""
    return [
        SyntheticVariant("7", 91855839, "C", "T", rs_id="rs137853140",
                         info={"GENEINFO": "KRIT1:889", "AF": 0.01, "CLNSIG": "Pathogenic"}),
        SyntheticVariant("7", 91867010, "G", "A", rs_id="rs1064793348",
                         info={"GENEINFO": "KRIT1:889", "AC": 3, "AN": 300}),
        SyntheticVariant("7", 45039900, "T", "C", rs_id="rs267607194",
                         info={"GENEINFO": "CCM2:83605", "AN": 99}),
        SyntheticVariant("3", 167734710, "A", "G", rs_id="rs387906809",
                         info={"GENEINFO": "PDCD10:11235"}),
        SyntheticVariant("1", 20000, "A", "T", rs_id="rs0000001",
                         info={"AF": 0.2}),
    ]


def make_ccm_vcf_file(directory: Path | None = None) -> Path:
    return VCFGenerator.generate_file(make_ccm_variants(), directory)


def make_cohort_vcf_file(n_samples: int = 10, directory: Path | None = None) -> Path:
    samples = [f"Case_{i:02d}" for i in range(1, n_samples + 1)]
    return VCFGenerator.generate_cohort_file(samples, directory)


TRIO_PED = """#family\tsample\tfather\tmother\tsex\taffection\tproject
FAM1\tproband1\tfather1\tmother1\t1\t2\tccm
FAM1\tfather1\t0\t0\t1\t1\tccm
FAM1\tmother1\t0\t0\t2\t1\tccm
FAM2\tproband2\tfather2\tmother2\t2\t2\tccm
FAM2\tfather2\t0\t0\t1\t1\tccm
FAM2\tmother2\t0\t0\t2\t1\tccm
"""

TRIO_SAMPLES = ["proband1", "father1", "mother1", "proband2", "father2", "mother2"]
