"""Exceptions raised by the control plane."""


class PraasError(Exception):
    """Base class of all control-plane errors."""


class InvalidConfigurationError(PraasError):
    """A request or configuration carries invalid values."""


class ObjectExistsError(PraasError):
    """An object with the same name is already registered."""


class ObjectDoesNotExistError(PraasError):
    """The requested object is not registered."""


class InvalidProcessStateError(PraasError):
    """The process is not in a state that allows the operation."""


class FailedAllocationError(PraasError):
    """The backend could not allocate a process."""