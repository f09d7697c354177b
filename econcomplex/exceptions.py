class EconComplexError(Exception):
    """Base class for every error raised by econcomplex."""


class InvalidInput(EconComplexError, ValueError):
    """
    Raised when the input container, its columns or the parameters passed
    to an engine have the wrong type or value.
    """


class ConvergenceError(EconComplexError, RuntimeError):
    """
    Raised when the fitness iteration does not stabilize within the
    configured iteration budget.
    """

    def __init__(self, message: str, iterations: int = None, distance: float = None) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.distance = distance


class DegenerateInput(EconComplexError, ValueError):
    """
    Raised when the input holds no information at all (e.g. an all-zero
    specialization matrix) and a complexity index cannot be defined.
    """
