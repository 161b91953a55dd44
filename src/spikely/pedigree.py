"""Pedigree (PED) file reading and trio resolution.

PED columns: family, sample, father, mother, sex, affection and an optional
project column. ``0`` in a parent column means no parent. Sex codes are
``1`` male, ``2`` female; affection codes are ``1`` unaffected, ``2`` affected.
"""

import logging
import re
from pathlib import Path

from .context import Diagnostics
from .errors import InputFileError, PedigreeError
from .models import AFFECTED, SEX_FEMALE, SEX_MALE, PedigreeMember, Trio

logger = logging.getLogger(__name__)

NO_PARENT = "0"
MIN_PED_COLUMNS = 6


def _parent(value: str) -> str | None:
    return None if value == NO_PARENT else value


def read_pedigree(path: Path | str) -> dict[str, PedigreeMember]:
    """Read a PED file into ``sample_id -> PedigreeMember`` in file order."""
    path = Path(path)
    if not path.exists():
        raise InputFileError(f"Pedigree file not found: {path}", code="E_FILE_MISSING")

    members: dict[str, PedigreeMember] = {}
    with open(path) as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            columns = re.split(r"\s+", line)
            if len(columns) < MIN_PED_COLUMNS:
                raise PedigreeError(
                    f"{path}:{line_number}: expected at least {MIN_PED_COLUMNS} columns, "
                    f"got {len(columns)}"
                )
            member = PedigreeMember(
                family_id=columns[0],
                sample_id=columns[1],
                father_id=_parent(columns[2]),
                mother_id=_parent(columns[3]),
                sex=columns[4],
                affection=columns[5],
                project=columns[6] if len(columns) > MIN_PED_COLUMNS else None,
            )
            if member.sample_id in members:
                logger.warning("%s:%d: duplicate sample %s ignored", path, line_number, member.sample_id)
                continue
            members[member.sample_id] = member

    logger.info("Read %d pedigree members from %s", len(members), path)
    return members


def find_trios(pedigree: dict[str, PedigreeMember]) -> list[Trio]:
    """Every member with both parents listed becomes a trio, in file order."""
    return [
        Trio(
            family_id=member.family_id,
            proband=member.sample_id,
            father=member.father_id,
            mother=member.mother_id,
        )
        for member in pedigree.values()
        if member.father_id is not None and member.mother_id is not None
    ]


def trio_from_ids(
    proband: str,
    father: str,
    mother: str,
    pedigree: dict[str, PedigreeMember] | None = None,
) -> Trio:
    """Build a trio from explicit identifiers, taking the family id from the pedigree if known."""
    family_id = "cli"
    if pedigree and proband in pedigree:
        family_id = pedigree[proband].family_id
    return Trio(family_id=family_id, proband=proband, father=father, mother=mother)


def validate_trio(
    trio: Trio,
    sample_ids: list[str],
    diagnostics: Diagnostics,
    pedigree: dict[str, PedigreeMember] | None = None,
) -> None:
    """Check a trio against the cohort header and pedigree.

    Members missing from the cohort header are fatal. Missing pedigree entries
    and sex or affection mismatches are reported as warnings.

    Raises:
        PedigreeError: If any trio member is not in the cohort header.
    """
    header = set(sample_ids)
    for role, sample in (("proband", trio.proband), ("father", trio.father), ("mother", trio.mother)):
        if sample not in header:
            raise PedigreeError(
                f"Family {trio.family_id}: {role} '{sample}' not found in cohort VCF header",
                code="E_SAMPLE_MISSING",
            )

    if pedigree is None:
        return

    for role, sample, expected_sex in (
        ("father", trio.father, SEX_MALE),
        ("mother", trio.mother, SEX_FEMALE),
    ):
        member = pedigree.get(sample)
        if member is None:
            diagnostics.warn(
                "PED_PARENT_MISSING",
                f"Family {trio.family_id}: {role} '{sample}' not found in pedigree",
            )
            continue
        if member.sex != expected_sex:
            diagnostics.warn(
                "PED_SEX_MISMATCH",
                f"Family {trio.family_id}: {role} '{sample}' has sex code {member.sex}",
            )
        if member.affection == AFFECTED:
            diagnostics.warn(
                "PED_AFFECTED_MISMATCH",
                f"Family {trio.family_id}: {role} '{sample}' is affected",
            )

    proband = pedigree.get(trio.proband)
    if proband is not None and proband.affection != AFFECTED:
        diagnostics.warn(
            "PED_AFFECTED_MISMATCH",
            f"Family {trio.family_id}: proband '{trio.proband}' is not marked affected",
        )
