"""Configuration file support and layered option resolution for spikely.

Options are resolved per entity with this precedence, first match wins:

1. sample, gene or variant specific values in the config file,
2. options given on the command line,
3. general options in the config file,
4. hard-coded defaults.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import (
    ConfigFormatError,
    ConfigValidationError,
    InputFileError,
    MissingRequiredOption,
)
from .transforms import validate_transforms

logger = logging.getLogger(__name__)

DOMINANT = "dominant"
RECESSIVE = "recessive"
X_LINKED = "x-linked"
ADDITIVE = "additive"
DE_NOVO = "de_novo"

INHERITANCE_MODES = (DOMINANT, RECESSIVE, X_LINKED, ADDITIVE, DE_NOVO)

INHERITANCE_ALIASES = {
    "x_linked": X_LINKED,
    "xlinked": X_LINKED,
    "de-novo": DE_NOVO,
    "denovo": DE_NOVO,
}

SCOPES = ("sample", "gene", "variant", "none")

FLOAT_OPTIONS = ("par", "max_rate", "max_maf", "default_af")
STRING_OPTIONS = ("af_key", "an_key", "ac_key", "gene_id_key")
SCALAR_OPTIONS = ("heritability", "inheritance", *FLOAT_OPTIONS, *STRING_OPTIONS)

# Older config spellings and the option each one stands for
OPTION_ALIASES = {"maf_key": "af_key"}

# Fixed VCF columns a variants block may override on output
VARIANT_FIELD_OVERRIDES = ("CHROM", "POS", "REF", "ALT", "QUAL", "FILTER")

HARD_DEFAULTS: dict[str, Any] = {
    "inheritance": DOMINANT,
    "par": 1.0,
    "af_key": "AF",
    "an_key": "AN",
    "ac_key": "AC",
    "gene_id_key": "GENEINFO",
}

CONFIG_SUFFIXES = (".toml", ".yaml", ".yml")


@dataclass(frozen=True)
class Heritability:
    """A parsed heritability value.

    ``hard`` marks the ``=<value>`` form: an exact fraction of cases to spike
    rather than a per-case probability.
    """

    value: float
    hard: bool = False


def parse_heritability(value: Any) -> Heritability:
    """Parse ``0.5``, ``"0.5"`` or ``"=0.3"`` into a ``Heritability``."""
    hard = False
    raw = value
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("="):
            hard = True
            text = text[1:].strip()
        raw = text
    if isinstance(raw, bool):
        raise ConfigValidationError(f"heritability must be a number, got {value!r}")
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise ConfigValidationError(
            f"heritability must be a number in [0, 1] or '=<number>', got {value!r}"
        ) from None
    if not 0.0 <= number <= 1.0:
        raise ConfigValidationError(f"heritability must be between 0 and 1, got {number}")
    return Heritability(value=number, hard=hard)


def normalize_inheritance(value: Any) -> str:
    """Normalize an inheritance mode to one of ``INHERITANCE_MODES``."""
    if not isinstance(value, str):
        raise ConfigValidationError(
            f"inheritance must be a string, got {type(value).__name__}"
        )
    mode = value.strip().lower()
    mode = INHERITANCE_ALIASES.get(mode, mode)
    if mode not in INHERITANCE_MODES:
        raise ConfigValidationError(
            f"inheritance must be one of {', '.join(INHERITANCE_MODES)}, got '{value}'"
        )
    return mode


def is_de_novo(mode: str) -> bool:
    return DE_NOVO in mode.lower().replace("-", "_")


def normalize_case_ids(value: Any) -> list[str]:
    if isinstance(value, str):
        return [sample.strip() for sample in value.split(",") if sample.strip()]
    if isinstance(value, list | tuple):
        return [str(sample).strip() for sample in value if str(sample).strip()]
    raise ConfigValidationError(
        f"case_ids must be a comma-separated string or a list, got {type(value).__name__}"
    )


def validate_options(options: dict[str, Any], where: str = "config") -> dict[str, Any]:
    """Validate and normalize scalar options.

    Returns:
        A copy of ``options`` with normalized values.

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    validated = dict(options)

    if validated.get("heritability") is not None:
        parse_heritability(validated["heritability"])

    if validated.get("inheritance") is not None:
        validated["inheritance"] = normalize_inheritance(validated["inheritance"])

    for name in FLOAT_OPTIONS:
        value = validated.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ConfigValidationError(
                f"{where}: {name} must be a number, got {type(value).__name__}"
            )
        if value < 0:
            raise ConfigValidationError(f"{where}: {name} must be non-negative, got {value}")
        validated[name] = float(value)

    for name in STRING_OPTIONS:
        value = validated.get(name)
        if value is not None and not isinstance(value, str):
            raise ConfigValidationError(
                f"{where}: {name} must be a string, got {type(value).__name__}"
            )

    return validated


def _apply_aliases(options: dict[str, Any], where: str = "config") -> dict[str, Any]:
    """Rename aliased keys such as ``maf_key`` to their current option name."""
    renamed = {}
    for key, value in options.items():
        target = OPTION_ALIASES.get(key)
        if target is None:
            renamed[key] = value
            continue
        if target in options:
            logger.warning("%s: both %s and %s set; using %s", where, key, target, target)
            continue
        renamed[target] = value
    return renamed


def _entity_blocks(data: Any, name: str) -> dict[str, dict[str, Any]]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"'{name}' must be a mapping of id to options")
    blocks = {}
    for entity_id, options in data.items():
        options = options or {}
        if not isinstance(options, dict):
            raise ConfigValidationError(f"{name}.{entity_id} must be a mapping of options")
        options = _apply_aliases(options, where=f"{name}.{entity_id}")
        allowed = set(SCALAR_OPTIONS)
        if name == "variants":
            allowed.update(VARIANT_FIELD_OVERRIDES)
        for key in options:
            if key not in allowed:
                logger.warning("Ignoring unknown option %s.%s.%s", name, entity_id, key)
        blocks[str(entity_id)] = validate_options(
            {k: v for k, v in options.items() if k in allowed}, where=f"{name}.{entity_id}"
        )
    return blocks


@dataclass
class SpikeConfig:
    """General options plus per-sample, per-gene and per-variant overrides."""

    heritability: float | str | None = None
    inheritance: str | None = None
    par: float | None = None
    max_rate: float | None = None
    max_maf: float | None = None
    af_key: str | None = None
    an_key: str | None = None
    ac_key: str | None = None
    default_af: float | None = None
    gene_id_key: str | None = None
    case_ids: list[str] | None = None
    info_transforms: dict[str, str] = field(default_factory=dict)
    seed: int | None = None
    samples: dict[str, dict[str, Any]] = field(default_factory=dict)
    genes: dict[str, dict[str, Any]] = field(default_factory=dict)
    variants: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpikeConfig":
        data = _apply_aliases(data)
        known = {*SCALAR_OPTIONS, "case_ids", "info_transforms", "seed", "samples", "genes", "variants"}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown config option '%s'", key)

        general = validate_options({k: data.get(k) for k in SCALAR_OPTIONS})

        case_ids = data.get("case_ids")
        transforms = data.get("info_transforms") or {}
        if not isinstance(transforms, dict):
            raise ConfigValidationError("info_transforms must be a mapping of INFO key to transform")
        validate_transforms(transforms)

        seed = data.get("seed")
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            raise ConfigValidationError(f"seed must be an integer, got {type(seed).__name__}")

        return cls(
            **general,
            case_ids=normalize_case_ids(case_ids) if case_ids is not None else None,
            info_transforms=dict(transforms),
            seed=seed,
            samples=_entity_blocks(data.get("samples"), "samples"),
            genes=_entity_blocks(data.get("genes"), "genes"),
            variants=_entity_blocks(data.get("variants"), "variants"),
        )

    def general(self, option: str) -> Any:
        return getattr(self, option, None)

    def entity_options(self, scope: str, entity_id: str | None) -> dict[str, Any]:
        if entity_id is None:
            return {}
        blocks = {"sample": self.samples, "gene": self.genes, "variant": self.variants}.get(scope)
        if blocks is None:
            return {}
        return blocks.get(str(entity_id), {})


def _read_config_file(config_path: Path) -> dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix not in CONFIG_SUFFIXES:
        raise ConfigFormatError(
            f"Unrecognized config file extension '{suffix}' for {config_path}; "
            f"expected one of {', '.join(CONFIG_SUFFIXES)}"
        )

    try:
        if suffix == ".toml":
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            data = data.get("spikely", data)
        else:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigFormatError(f"Cannot parse config file {config_path}: {e}") from e
    except OSError as e:
        raise InputFileError(f"Cannot read config file {config_path}: {e}", code="E_FILE_UNREADABLE") from e

    if not isinstance(data, dict):
        raise ConfigFormatError(f"Config file {config_path} must contain a mapping of options")
    return data


def load_config(config_path: Path | str | None) -> SpikeConfig:
    """Load configuration from a TOML or YAML file.

    Args:
        config_path: Path to the config file, or None for an empty config.

    Returns:
        SpikeConfig instance with loaded values.

    Raises:
        InputFileError: If the config file doesn't exist.
        ConfigFormatError: If the file type is unknown or it cannot be parsed.
        ConfigValidationError: If any configuration value is invalid.
    """
    if config_path is None:
        return SpikeConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise InputFileError(f"Configuration file not found: {config_path}", code="E_FILE_MISSING")

    config = SpikeConfig.from_dict(_read_config_file(config_path))
    logger.info(
        "Loaded config %s (%d sample, %d gene, %d variant overrides)",
        config_path,
        len(config.samples),
        len(config.genes),
        len(config.variants),
    )
    return config


class ConfigResolver:
    """Resolve one option for one entity across the four configuration tiers."""

    ENTITY = "entity"
    CLI = "cli"
    CONFIG = "config"
    DEFAULT = "default"

    def __init__(
        self,
        config: SpikeConfig | None = None,
        cli_options: dict[str, Any] | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        self.config = config or SpikeConfig()
        self.cli_options = validate_options(
            {k: v for k, v in (cli_options or {}).items() if v is not None}, where="command line"
        )
        self.defaults = HARD_DEFAULTS if defaults is None else defaults

    def lookup(
        self, option: str, scope: str = "none", entity_id: str | None = None
    ) -> tuple[Any, str] | None:
        """Return ``(value, tier)`` for the first tier that sets ``option``."""
        if scope not in SCOPES:
            raise ValueError(f"Unknown scope '{scope}'")

        value = self.config.entity_options(scope, entity_id).get(option)
        if value is not None:
            return value, self.ENTITY

        value = self.cli_options.get(option)
        if value is not None:
            return value, self.CLI

        value = self.config.general(option)
        if value is not None:
            return value, self.CONFIG

        value = self.defaults.get(option)
        if value is not None:
            return value, self.DEFAULT

        return None

    def resolve(self, option: str, scope: str = "none", entity_id: str | None = None) -> Any:
        """Resolve ``option``.

        Raises:
            MissingRequiredOption: If no tier supplies a value.
        """
        found = self.lookup(option, scope, entity_id)
        if found is None:
            raise MissingRequiredOption(option, scope, entity_id)
        return found[0]

    def resolve_optional(
        self, option: str, scope: str = "none", entity_id: str | None = None
    ) -> Any:
        found = self.lookup(option, scope, entity_id)
        return None if found is None else found[0]

    def source(self, option: str, scope: str = "none", entity_id: str | None = None) -> str | None:
        found = self.lookup(option, scope, entity_id)
        return None if found is None else found[1]

    def case_ids(self) -> list[str] | None:
        value = self.cli_options.get("case_ids")
        if value is None:
            value = self.config.case_ids
        return None if value is None else normalize_case_ids(value)

    @property
    def info_transforms(self) -> dict[str, str]:
        return self.config.info_transforms
