from shared.clients.auth.AuthClientInterface import AuthClientInterface
from shared.helper.HelperConfig import HelperConfig


class AuthClientStatic(AuthClientInterface):
    """Serves a pre-issued access token from AUTH_STATIC_ACCESS_TOKEN."""

    def __init__(self, helper_config: HelperConfig, token: str | None = None):
        super().__init__(helper_config=helper_config)
        self._token = token if token is not None else helper_config.get_string_val("AUTH_STATIC_ACCESS_TOKEN")

    async def get_access_token(self) -> str:
        return self._token
