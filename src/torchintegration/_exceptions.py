"""Exceptions and warnings for numerical integration."""


class QuadratureWarning(UserWarning):
    """Warning for integration runs that stop on an exhausted budget."""

    pass


class IntegrationError(Exception):
    """Error raised when an integration run fails internally."""

    pass
