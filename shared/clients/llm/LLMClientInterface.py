from abc import abstractmethod
from typing import AsyncIterator

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    """Model backend used for two jobs: turning text into vectors and streaming answers.

    Engine-independent settings:
      LLM_MODEL             embedding model
      LLM_CHAT_MODEL        generation model
      LLM_CHAT_MAX_TOKENS   reply length cap (1000)
      LLM_CHAT_TEMPERATURE  sampling temperature (0.1)
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_model = helper_config.get_string_val("LLM_MODEL", default=self._get_default_embed_model())
        self.chat_model = helper_config.get_string_val("LLM_CHAT_MODEL", default=self._get_default_chat_model())
        self.chat_max_tokens = helper_config.get_number_val("LLM_CHAT_MAX_TOKENS", default=1000)
        self.chat_temperature = helper_config.get_number_val("LLM_CHAT_TEMPERATURE", default=0.1)

    def _get_client_type(self) -> str:
        return "llm"

    ##########################################
    ############### EMBEDDING ################
    ##########################################

    @abstractmethod
    def _get_default_embed_model(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_embed(self) -> str:
        pass

    @abstractmethod
    def _build_embed_payload(self, texts: list[str]) -> dict:
        pass

    @abstractmethod
    def _parse_embeddings(self, response_data: dict) -> list[list[float]]:
        """Pull the vectors out of an embedding response, in input order.

        Raises:
            ValueError: If the response carries no usable vectors.
        """
        pass

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one request.

        Returns:
            list[list[float]]: One vector per text, in the same order.

        Raises:
            Exception: If the backend answers with a non-200 status.
            ValueError: If the number of vectors does not match the number of texts.
        """
        response = await self.do_request(method="POST", endpoint=self._get_endpoint_embed(), json=self._build_embed_payload(texts))
        if response.status_code != 200:
            self.logging.error("Embedding with '%s' failed (%d): %s", self.embed_model, response.status_code, response.text[:200])
            raise Exception(f"Embedding request failed with status {response.status_code}.")

        vectors = self._parse_embeddings(response.json())
        if len(vectors) != len(texts):
            raise ValueError(f"Backend returned {len(vectors)} embeddings for {len(texts)} texts.")
        return vectors

    async def do_embed_text(self, text: str) -> list[float]:
        [vector] = await self.do_embed([text])
        return vector

    ##########################################
    ############### GENERATION ###############
    ##########################################

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    @abstractmethod
    def _build_chat_payload(self, messages: list[dict]) -> dict:
        """Request body for a streamed completion of ``[{"role": ..., "content": ...}]`` messages."""
        pass

    @abstractmethod
    def _parse_stream_line(self, line: str) -> str | None:
        """Text carried by one line of the streamed reply.

        Returns None for lines without text (role headers, keep-alives, end markers).

        Raises:
            ValueError: If the line is malformed or reports a backend error.
        """
        pass

    async def do_chat_stream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Generate a reply and yield it fragment by fragment as the backend produces it.

        Raises:
            Exception: If the request fails, before or during the stream.
        """
        lines = self.do_stream_request(method="POST", endpoint=self._get_endpoint_chat(), json=self._build_chat_payload(messages))
        async for line in lines:
            fragment = self._parse_stream_line(line)
            if fragment:
                yield fragment
