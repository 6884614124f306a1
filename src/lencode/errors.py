"""Exception hierarchy for encoding steps and recipes."""


class LencodeError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(LencodeError, ValueError):
    """A step was declared with missing or invalid arguments."""


class SelectorError(LencodeError, KeyError):
    """A selector could not be resolved against the data schema."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SchemaTypeError(LencodeError, TypeError):
    """A column has a type the step cannot handle."""


class UnsupportedOutcomeTypeError(SchemaTypeError):
    """The outcome is neither numeric nor a two-level factor."""


class WrongPredictorTypeError(SchemaTypeError):
    """A column selected for encoding is not nominal."""


class ModelFitError(LencodeError, RuntimeError):
    """The underlying statistical model could not be fitted."""


class StepNotTrainedError(LencodeError, RuntimeError):
    """A step or recipe was applied before it was trained."""


class MissingColumnError(LencodeError, KeyError):
    """Data passed to an apply call lacks an encoded column."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ReservedLevelError(LencodeError, ValueError):
    """A training level collides with the reserved novel-level name."""
