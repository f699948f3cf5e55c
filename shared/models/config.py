from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig

THREE_DAYS_SECONDS = 3 * 24 * 60 * 60


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter a client requires from the environment.

    Attributes:
        env_key (str): The raw key of the environment variable, without the client prefix (e.g. "BASE_URL").
        val_type (str): The expected type of the value. Supported types are "string", "number" and "bool".
        default (str | int | float | bool | None): Default if the variable is not set. If None, the variable is required.
    """
    env_key: str
    val_type: str
    default: str | int | float | bool | None = None


class DictionarySettings(BaseModel):
    """
    Tuning knobs of the schema dictionary crawl and its caches.

    Attributes:
        cache_dir (str): Directory holding the dictionary and union profile cache files.
        cache_ttl_seconds (float): Freshness window of both caches.
        batch_size (int): Number of schema detail fetches issued concurrently.
        page_size (int): Page size used when listing a container (100 is the API maximum).
        max_schemas (int): Safety cap on the number of schemas listed per container.
        request_timeout (float): Overall bound in seconds for a single remote call.
    """
    cache_dir: str
    cache_ttl_seconds: float = THREE_DAYS_SECONDS
    batch_size: int = 20
    page_size: int = 100
    max_schemas: int = 1000
    request_timeout: float = 60.0

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "DictionarySettings":
        """Build the settings from DICTIONARY_* environment variables."""
        return cls(
            cache_dir=helper_config.get_path_val("DICTIONARY_CACHE_DIR", default="data"),
            cache_ttl_seconds=helper_config.get_number_val("DICTIONARY_CACHE_TTL_SECONDS", default=THREE_DAYS_SECONDS),
            batch_size=int(helper_config.get_number_val("DICTIONARY_BATCH_SIZE", default=20)),
            page_size=int(helper_config.get_number_val("DICTIONARY_PAGE_SIZE", default=100)),
            max_schemas=int(helper_config.get_number_val("DICTIONARY_MAX_SCHEMAS", default=1000)),
            request_timeout=helper_config.get_number_val("DICTIONARY_REQUEST_TIMEOUT", default=60.0),
        )
