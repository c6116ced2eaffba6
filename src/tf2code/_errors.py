"""Exception hierarchy for tf2code."""


class Tf2CodeError(Exception):
    """Base class for all tf2code errors."""


class ConfigurationError(Tf2CodeError):
    """Invalid target language or target options."""


class LoadError(Tf2CodeError):
    """The module tree could not be created or loaded."""


class BindingError(Tf2CodeError):
    """A module could not be bound into a graph."""


class MissingProviderError(BindingError):
    """A resource refers to a provider that is neither declared nor known."""


class MissingVariableError(BindingError):
    """An expression refers to an undeclared variable."""


class CommentsError(BindingError):
    """The comments of a declaration could not be recovered from its source."""


class GenerationError(Tf2CodeError):
    """A generator failed while emitting code."""


class ConvertError(Tf2CodeError):
    """Error raised by `convert`, labelled with the stage that failed.

    The underlying error is available as ``__cause__``.
    """

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause
