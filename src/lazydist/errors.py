__all__ = [
    "BaseLazyDistError",
    "BoundsCheckError",
    "ConfigurationError",
    "ConversionError",
    "NegativeStepError",
    "ReadOnlyError",
]


class BaseLazyDistError(ValueError):
    """
    Base error which all lazydist errors are sub-classed from.
    """

    _msg: str = "{}"

    def __init__(self, *args: object) -> None:
        """
        If a single argument is passed, treat it as a pre-formatted message.

        If multiple arguments are passed, they are used as arguments for a template string class
        variable.
        """
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class ConfigurationError(BaseLazyDistError):
    """
    Raised at construction time when the arguments of a lazy array or its cache strategy
    are incompatible with each other, e.g. a window whose rank differs from the domains.
    """


class ConversionError(BaseLazyDistError):
    """
    Raised when a result cannot be represented exactly in the data type of the array,
    e.g. a fractional distance in an integer array.
    """

    _msg = "cannot convert {!r} to {} without loss"


class BoundsCheckError(IndexError):
    """Raised when a coordinate falls outside the domain it indexes."""

    def __init__(self, value: int, dim: int, lo: int, hi: int) -> None:
        super().__init__(
            f"index {value} is out of bounds for dimension {dim} with domain [{lo}, {hi})"
        )
        self.value = value
        self.dim = dim
        self.bounds = (lo, hi)


class NegativeStepError(IndexError):
    def __init__(self) -> None:
        super().__init__("only slices with step >= 1 are supported")


class ReadOnlyError(PermissionError):
    def __init__(self) -> None:
        super().__init__("object is read-only")
