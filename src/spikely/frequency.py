"""Allele frequency resolution for disease variants.

Each variant's weight is the first applicable of:

1. the INFO value at ``af_key`` (first element if multi-valued),
2. ``AC / AN`` from ``ac_key`` and ``an_key`` (cohort mode only),
3. ``1 / (AN + 1)`` when only ``an_key`` is present,
4. the configured ``default_af``,
5. zero.

INFO values that are not finite non-negative numbers count as absent, and so
does ``AN=0``: an allele number of zero says nothing about frequency.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import ConfigResolver
from .context import Diagnostics
from .models import VariantRecord
from .transforms import read_info

logger = logging.getLogger(__name__)


class FrequencySource(Enum):
    """Which rule of the fallback chain produced a frequency."""

    AF = "AF_FROM_AF"
    AC_AN = "AF_FROM_AC_AN"
    AN_ONLY = "AF_FROM_AN"
    DEFAULT = "AF_FROM_DEFAULT"
    ZERO = "AF_ZERO"


@dataclass(frozen=True)
class AlleleFrequency:
    value: float
    source: FrequencySource


def _to_float(value: Any) -> float | None:
    """Convert value to a finite non-negative float or None."""
    if value is None:
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def resolve_allele_frequency(
    record: VariantRecord,
    resolver: ConfigResolver,
    diagnostics: Diagnostics | None = None,
    use_allele_count: bool = True,
) -> AlleleFrequency:
    """Resolve the population allele frequency of ``record``.

    Args:
        record: Disease variant.
        resolver: Supplies ``af_key``, ``an_key``, ``ac_key`` and ``default_af``
            at variant scope, keyed by the record's ID.
        diagnostics: Optional sink recording which rule applied.
        use_allele_count: Whether ``AC / AN`` may be used (cohort mode).
    """
    variant_id = record.id
    transforms = resolver.info_transforms

    af_key = resolver.resolve("af_key", "variant", variant_id)
    an_key = resolver.resolve("an_key", "variant", variant_id)
    ac_key = resolver.resolve("ac_key", "variant", variant_id)

    af = _to_float(read_info(record, af_key, transforms))
    an = _to_float(read_info(record, an_key, transforms))
    ac = _to_float(read_info(record, ac_key, transforms))
    if an == 0:
        an = None

    if af is not None:
        result = AlleleFrequency(af, FrequencySource.AF)
    elif use_allele_count and ac is not None and an is not None:
        result = AlleleFrequency(ac / an, FrequencySource.AC_AN)
    elif an is not None:
        result = AlleleFrequency(1.0 / (an + 1.0), FrequencySource.AN_ONLY)
    else:
        default_af = resolver.resolve_optional("default_af", "variant", variant_id)
        if default_af is not None:
            result = AlleleFrequency(float(default_af), FrequencySource.DEFAULT)
        else:
            result = AlleleFrequency(0.0, FrequencySource.ZERO)

    if diagnostics is not None:
        diagnostics.debug(
            result.source.value,
            f"{record.index_key} ({record.chrom}:{record.pos}) maf={result.value:g}",
        )
    return result
