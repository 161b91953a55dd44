"""Error taxonomy for spikely.

Every failure the engine can raise is a ``SpikelyError`` carrying a short
machine-readable ``code`` and a ``level``. The CLI turns these into the
``FATAL <code>: <message>`` line printed before it aborts.
"""

FATAL = "FATAL"
WARN = "WARN"


class SpikelyError(Exception):
    """Base class for all spikely errors."""

    code = "E_SPIKELY"
    level = FATAL

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def format_line(self) -> str:
        return f"{self.level} {self.code}: {self}"


class InputFileError(SpikelyError):
    """Raised when an input file is missing, unreadable or of unknown type."""

    code = "E_INPUT_FILE"


class VCFParseError(SpikelyError):
    """Raised when a VCF record cannot be parsed."""

    code = "E_VCF_PARSE"


class PedigreeError(SpikelyError):
    """Raised for malformed pedigree files or unusable trios."""

    code = "E_PED_PARSE"


class ConfigFormatError(SpikelyError):
    """Raised when a configuration file has an unsupported format."""

    code = "E_CONFIG_FORMAT"


class ConfigValidationError(SpikelyError):
    """Raised when configuration validation fails."""

    code = "E_CONFIG_INVALID"


class MissingRequiredOption(SpikelyError):
    """Raised when no configuration tier supplies a required option."""

    code = "E_MISSING_OPTION"

    def __init__(self, option: str, scope: str = "none", entity_id: str | None = None):
        where = f" for {scope} '{entity_id}'" if entity_id else ""
        super().__init__(
            f"No value for required option '{option}'{where}. "
            "Set it in the config file or on the command line."
        )
        self.option = option
        self.scope = scope
        self.entity_id = entity_id


class InvalidInheritanceError(SpikelyError):
    """Raised when a gene's inheritance mode is unusable in the current mode."""

    code = "E_INHERITANCE"


class OptionParseError(SpikelyError):
    """Raised when command-line arguments cannot be parsed."""

    code = "E_OPTION_PARSE"


class DegenerateWeightsError(SpikelyError):
    """Raised when weighted sampling is asked to draw from an unusable population."""

    code = "E_WEIGHTS"
