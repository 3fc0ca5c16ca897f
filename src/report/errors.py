"""Error and warning types raised by the loader and aggregator."""


class MalformedInputError(ValueError):
    """A metrics or curves table is missing a required column or holds a
    non-numeric token in a required numeric field."""


class EmptyGroupWarning(UserWarning):
    """A ranking or pivot group had no contributing rows and was omitted."""
