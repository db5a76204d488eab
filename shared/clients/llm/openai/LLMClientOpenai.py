import json

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.models.config import EnvConfig

_DATA_PREFIX = "data:"
_END_OF_STREAM = "[DONE]"


class LLMClientOpenai(LLMClientInterface):
    """OpenAI and OpenAI-compatible servers: ``/embeddings`` and server-sent ``/chat/completions``."""

    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", default="https://api.openai.com/v1"),
            EnvConfig(env_key="API_KEY"),
        ]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self.settings['API_KEY']}"}

    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    ##########################################
    ############### EMBEDDING ################
    ##########################################

    def _get_default_embed_model(self) -> str:
        return "text-embedding-ada-002"

    def _get_endpoint_embed(self) -> str:
        return "/embeddings"

    def _build_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def _parse_embeddings(self, response_data: dict) -> list[list[float]]:
        """Vectors from ``{"data": [{"index": 0, "embedding": [...]}, ...]}``.

        The items are ordered by their ``index``, the API does not promise input order.
        """
        items = response_data.get("data")
        if not items:
            raise ValueError(f"OpenAI returned no embeddings (keys: {sorted(response_data)}).")
        vectors = [item.get("embedding") for item in sorted(items, key=lambda item: item.get("index", 0))]
        if not all(vectors):
            raise ValueError("OpenAI returned an empty embedding.")
        return vectors

    ##########################################
    ############### GENERATION ###############
    ##########################################

    def _get_default_chat_model(self) -> str:
        return "gpt-4o"

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    def _build_chat_payload(self, messages: list[dict]) -> dict:
        return {
            "model": self.chat_model,
            "messages": messages,
            "max_tokens": self.chat_max_tokens,
            "temperature": self.chat_temperature,
            "stream": True,
        }

    def _parse_stream_line(self, line: str) -> str | None:
        """Content delta of one ``data: {...}`` event; comments and ``data: [DONE]`` carry none."""
        if not line.startswith(_DATA_PREFIX):
            return None
        payload = line[len(_DATA_PREFIX):].strip()
        if payload == _END_OF_STREAM:
            return None
        try:
            event = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError(f"OpenAI sent an event that is not JSON: {payload[:200]!r}") from e
        if "error" in event:
            raise ValueError(f"OpenAI reported an error: {event['error']}")
        choices = event.get("choices") or [{}]
        return (choices[0].get("delta") or {}).get("content") or None
