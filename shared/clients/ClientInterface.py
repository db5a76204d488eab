from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

# EnvConfig.val_type -> HelperConfig reader
_VALUE_READERS = {
    "string": HelperConfig.get_string_val,
    "number": HelperConfig.get_number_val,
    "bool": HelperConfig.get_bool_val,
    "list": HelperConfig.get_list_val,
}


class ClientInterface(ABC):
    """Base for the HTTP backends the service talks to.

    A subclass names its client type and engine, lists the settings it needs
    and says where the backend lives. This class resolves those settings from
    the environment, owns the ``httpx.AsyncClient`` and sends the requests.

    Settings are looked up as ``<TYPE>_<ENGINE>_<KEY>``, e.g. ``LLM_OLLAMA_BASE_URL``.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._http: httpx.AsyncClient | None = None
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30)

        # resolved once, engines read from here
        self.settings: dict[str, Any] = self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> dict[str, Any]:
        """
        Resolves every setting returned by _get_required_config().

        Returns:
            dict[str, Any]: Resolved values keyed by their relative name (e.g. "BASE_URL").

        Raises:
            ValueError: If a setting without default is unset or cannot be parsed.
        """
        return {
            config.env_key.upper(): self.get_config_val(config.env_key, default=config.default, val_type=config.val_type)
            for config in self._get_required_config()
        }

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client type, e.g. "llm"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine name, e.g. "openai"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Settings this engine needs, relative to its ``<TYPE>_<ENGINE>_`` prefix.
        """
        pass

    def get_config_key(self, raw_key: str) -> str:
        return f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads one engine setting.

        Args:
            raw_key (str): Name relative to the engine prefix, e.g. "API_KEY".
            default (Any): Used when the variable is unset; None makes it required.
            val_type (str): "string", "number", "bool" or "list".

        Raises:
            ValueError: If the type is unknown, or the value is missing or malformed.
        """
        reader = _VALUE_READERS.get(val_type)
        if reader is None:
            raise ValueError(f"Unknown value type '{val_type}' for setting '{self.get_config_key(raw_key)}'.")
        return reader(self._helper_config, self.get_config_key(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Headers that authenticate against the backend, empty if it needs none.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Root URL of the backend, e.g. "http://localhost:11434".
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Path answered with 2xx while the backend is up, e.g. "/models".
        """
        pass

    def _url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    def _headers(self, extra: dict | None = None) -> dict:
        # httpx adds Content-Type for json bodies
        return {**self._get_auth_header(), **(extra or {})}

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client. Tests pass an ``httpx.MockTransport``."""
        self._http = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _session(self) -> httpx.AsyncClient:
        if self._http is None:
            raise Exception(f"{self.__class__.__name__} is not booted. Call boot() before sending requests.")
        return self._http

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    async def do_request(self, method: str = "GET", endpoint: str = "", json: dict | None = None) -> httpx.Response:
        """Send one request and return the response, whatever its status.

        Raises:
            Exception: If the client has not been booted.
            httpx.HTTPError: On transport failures (connection refused, timeout, ...).
        """
        return await self._session().request(method, self._url(endpoint), headers=self._headers(), json=json)

    async def do_stream_request(self, method: str = "POST", endpoint: str = "", json: dict | None = None) -> AsyncIterator[str]:
        """Send one request and yield the lines of the response body as they arrive.

        Blank lines are skipped.

        Raises:
            Exception: If the client has not been booted or the status is not 2xx.
        """
        url = self._url(endpoint)
        async with self._session().stream(method, url, headers=self._headers(), json=json) as response:
            if not response.is_success:
                body = (await response.aread())[:200].decode("utf-8", errors="replace")
                self.logging.error("Streaming %s %s answered %d: %s", method, url, response.status_code, body)
                raise Exception(f"Streaming request to {url} failed with status {response.status_code}")

            async for line in response.aiter_lines():
                if line.strip():
                    yield line
