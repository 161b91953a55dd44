"""Built-in transforms applied to INFO values before the engine reads them.

ClinVar-style ``GENEINFO=KRIT1:889|...`` values, for example, need
``before_colon`` so that gene ids line up with the ``genes`` config block.
"""

from collections.abc import Callable

from .errors import ConfigValidationError
from .models import VariantRecord


def _before(separator: str) -> Callable[[str], str]:
    def transform(value: str) -> str:
        return value.split(separator, 1)[0]

    return transform


INFO_TRANSFORMS: dict[str, Callable[[str], str]] = {
    "identity": lambda value: value,
    "first": _before(","),
    "before_colon": _before(":"),
    "before_pipe": _before("|"),
    "upper": str.upper,
    "lower": str.lower,
    "strip": str.strip,
}


def get_transform(name: str) -> Callable[[str], str]:
    try:
        return INFO_TRANSFORMS[name]
    except KeyError:
        raise ConfigValidationError(
            f"Unknown INFO transform '{name}'; expected one of {', '.join(INFO_TRANSFORMS)}"
        ) from None


def validate_transforms(transforms: dict[str, str]) -> None:
    for key, name in transforms.items():
        if not isinstance(name, str):
            raise ConfigValidationError(f"info_transforms.{key} must be a string")
        get_transform(name)


def read_info(record: VariantRecord, key: str, transforms: dict[str, str]) -> str | None:
    """Read INFO ``key`` from ``record``.

    Without a configured transform this is the first comma-separated value.
    With one, the transform sees the whole raw value (e.g. ``first`` on
    ``"A,B"`` gives ``"A"``, ``before_colon`` on ``"KRIT1:889"`` gives ``"KRIT1"``).
    Absent keys give ``None``.
    """
    if not record.has_info(key):
        return None
    if key not in transforms:
        return record.info_value(key)
    return get_transform(transforms[key])(",".join(record.info_values(key)))
