"""Errors raised by the provisioner."""


class ProvisionError(RuntimeError):
    """Provider or transport failure while creating or destroying a droplet."""


class ResolutionError(ValueError):
    """A configured name fragment matched no catalog entry."""

    def __init__(self, field, value):
        self.field = field
        self.value = value
        super().__init__(f"Could not find a match for the {field} '{value}'")


class DigitalOceanAPIError(RuntimeError):
    """The API answered with ``"status": "ERROR"``."""
