"""Errors raised by Atropos"""


class AtroposError(Exception):
    """Base class for errors raised by Atropos"""


class ConfigurationError(AtroposError, ValueError):
    """A required configuration key is missing or a value lies outside of its valid domain

    Raised while building a prognoser or one of its components. No partially-constructed object is returned.
    """


class RuntimeInputError(AtroposError, ValueError):
    """An operation received inputs it cannot evaluate

    Examples include a malformed load parameterization or a normalized composition
    at or beyond the bounds where the logarithmic and inverse-hyperbolic terms of a model are defined.
    """
