class EnsembleError(Exception):
    """Base exception type"""


# -----------------------------------------------------
# Top-level error categories
# use these as a mixin with another base exception type
# -----------------------------------------------------


class ConfigError(EnsembleError):
    """Base config error type"""


class ContractError(EnsembleError):
    """Base error for failed contract calls and transactions"""


class RegistryError(ContractError):
    """A registry contract rejected a call"""


class QueueError(EnsembleError):
    """Base message queue error type"""


class ArgumentError(EnsembleError):
    """Error with the arguments given to an SDK method"""


# --------------------------------------------------
# Actual error types you should use
# --------------------------------------------------


class MissingContractAddressError(ConfigError, ValueError):
    """
    A registry address needed to build a client was not configured
    """


class ConnectionFailedError(ContractError, ConnectionError):
    """
    Could not reach the configured RPC endpoint
    """


class SignerRequiredError(ContractError, RuntimeError):
    """
    An operation needs a sending account, but no private key or node account is available
    """


class TransactionFailedError(ContractError, RuntimeError):
    """
    A transaction was mined, but its receipt reports failure
    """


class EventNotFoundError(ContractError, LookupError):
    """
    An expected event was not emitted in a transaction receipt
    """


class AgentAlreadyRegisteredError(RegistryError, ValueError):
    """
    The agent address is already registered in the agent registry
    """


class AgentNotRegisteredError(RegistryError, LookupError):
    """
    The agent address is not registered in the agent registry
    """


class ServiceNotRegisteredError(RegistryError, LookupError):
    """
    The named service is not registered in the service registry
    """


class ServiceAlreadyRegisteredError(RegistryError, ValueError):
    """
    A service with this name is already registered
    """


class ProposalNotFoundError(RegistryError, LookupError):
    """
    No proposal exists with the requested id
    """


class TaskNotFoundError(RegistryError, LookupError):
    """
    No task exists with the requested id
    """


class NotAuthorizedError(RegistryError, PermissionError):
    """
    The sender is not allowed to perform this operation on the task or agent
    """


class MissingArgumentError(ArgumentError, ValueError):
    """
    A required argument was missing or empty
    """


class InvalidArgumentError(ArgumentError, ValueError):
    """
    An argument was present but could not be validated
    """


class ChannelNotConfiguredError(QueueError, RuntimeError):
    """
    A proposal was sent or subscribed to without a message queue channel
    """


class PublishFailedError(QueueError, RuntimeError):
    """
    The message queue refused a message
    """


class MessageDecodeError(QueueError, ValueError):
    """
    A payload received from the message queue could not be parsed
    """


REVERT_ERRORS: dict[str, type[ContractError]] = {
    "agent already registered": AgentAlreadyRegisteredError,
    "agent not registered": AgentNotRegisteredError,
    "service not registered": ServiceNotRegisteredError,
    "service already registered": ServiceAlreadyRegisteredError,
    "proposal not found": ProposalNotFoundError,
    "invalid proposal": ProposalNotFoundError,
    "task not found": TaskNotFoundError,
    "not authorized": NotAuthorizedError,
    "not the assignee": NotAuthorizedError,
    "not the issuer": NotAuthorizedError,
}
"""
Substrings of contract revert reasons (lowercased) and the error raised for them.
"""


def error_for_revert(reason: str | None) -> type[ContractError]:
    """
    Pick the error type for a contract revert reason,
    falling back to :class:`.ContractError` for reasons we don't know about.
    """
    if not reason:
        return ContractError
    lowered = reason.lower()
    for fragment, err_type in REVERT_ERRORS.items():
        if fragment in lowered:
            return err_type
    return ContractError
