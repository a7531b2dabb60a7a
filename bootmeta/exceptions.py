# This file is part of bootmeta. See LICENSE file for license information.


class BootmetaError(Exception):
    pass


class ParseError(BootmetaError):
    """A reported value could not be parsed into its native type."""

    MESSAGE_TMPL = "failed to parse %(field)s %(value)r: %(cause)s"

    def __init__(self, field, value=None, cause=None):
        self.field = field
        self.value = value
        self.cause = cause
        super().__init__(
            self.MESSAGE_TMPL
            % {"field": field, "value": value, "cause": cause}
        )


class ProviderError(BootmetaError):
    """The metadata service answered with an in-band error message."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class DecodeError(BootmetaError):
    """The metadata payload could not be decoded."""

    def __init__(self, description, cause=None):
        self.description = description
        self.cause = cause
        if cause is not None:
            description = "%s: %s" % (description, cause)
        super().__init__(description)
