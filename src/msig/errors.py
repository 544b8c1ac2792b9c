"""Exceptions raised by the reactive core."""


class ReactiveError(Exception):
    """Base class for msig errors."""


class CascadeDepthError(ReactiveError, RecursionError):
    """A write cascade nested deeper than the configured maximum.

    Usually means two effects write to signals the other one reads.
    """

    def __init__(self, depth: int) -> None:
        super().__init__(f"effect cascade exceeded max depth of {depth}")
        self.depth = depth
