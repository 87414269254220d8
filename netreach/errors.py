"""Exceptions raised by netreach probes and the CloudFlare range cache."""


class NetreachError(Exception):
    """Base class for all netreach errors."""


class InvalidHostError(NetreachError, ValueError):
    """Host string could not be split into host and port."""


class NoAddressesError(NetreachError):
    """Resolution succeeded but returned no addresses."""


class RangeError(NetreachError):
    """CloudFlare ranges could not be loaded."""


class RangeFetchError(RangeError):
    """Downloading one of the range documents failed."""


class RangeReadError(RangeError):
    """Reading a downloaded range document failed part way through."""


class RangeParseError(RangeError):
    """A line of a range document is not a CIDR network."""


class ConfigurationError(NetreachError):
    """Settings could not be loaded."""
