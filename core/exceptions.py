from abc import ABC


class BaseCustomException(Exception, ABC):
    """
    Base class for all custom exceptions.
    """

    def __init__(self, message: str | None = None):
        self.message = message or self.get_default_message()
        super().__init__(self.message)

    def get_default_message(self) -> str:
        """
        Return default error message.

        Returns
        -------
        str
            Default error message
        """
        return "error.unknown"

    def get_status_code(self) -> int:
        """
        Return HTTP status code for exception.

        Returns
        -------
        int
            HTTP status code
        """
        return 500


class BadRequestException(BaseCustomException):
    """Bad request exception (400)."""

    def get_status_code(self) -> int:
        return 400


class NotFoundException(BaseCustomException):
    """Not found exception (404)."""

    def get_status_code(self) -> int:
        return 404


class InvalidAddressException(BadRequestException):
    """Invalid address exception."""

    def get_default_message(self) -> str:
        return "error.address.invalid"


class WalletNotFoundException(NotFoundException):
    """Wallet is not part of the current snapshot."""

    def get_default_message(self) -> str:
        return "error.wallet.not_found"


class RPCException(BaseCustomException):
    """RPC error exception."""

    def get_default_message(self) -> str:
        return "error.rpc.failed"


class ContractResolutionException(RPCException):
    """A dependent contract address could not be resolved at startup."""

    def get_default_message(self) -> str:
        return "error.contract.unresolved"


class EntityFetchException(BaseCustomException):
    """
    Foundational lookup for one monitored entity failed.

    Parameters
    ----------
    identifier : str
        Human readable identifier of the entity (``provider 7``,
        ``custom wallet 0x...``)
    cause : Exception | None
        Underlying error
    """

    def __init__(self, identifier: str, cause: Exception | None = None):
        self.identifier = identifier
        self.cause = cause
        message = f"failed to fetch {identifier}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
