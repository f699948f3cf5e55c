from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig


class AuthClientInterface(ABC):
    """
    Supplies bearer tokens to the registry client.

    Token acquisition and refresh live behind this boundary; callers only ever
    await get_access_token() before each request.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    @abstractmethod
    async def get_access_token(self) -> str:
        """
        Returns a bearer token valid for the next request.

        Raises:
            Exception: If no token can be supplied.
        """
        pass
