import json

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    """Ollama: ``/api/embed`` for vectors, newline-delimited JSON from ``/api/chat``."""

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL"),
            # only needed behind an authenticating proxy
            EnvConfig(env_key="API_KEY", default=""),
        ]

    def _get_auth_header(self) -> dict:
        api_key = self.settings["API_KEY"]
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        # the root answers "Ollama is running"
        return ""

    ##########################################
    ############### EMBEDDING ################
    ##########################################

    def _get_default_embed_model(self) -> str:
        return "nomic-embed-text"

    def _get_endpoint_embed(self) -> str:
        return "/api/embed"

    def _build_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def _parse_embeddings(self, response_data: dict) -> list[list[float]]:
        vectors = response_data.get("embeddings") or []
        if not vectors or not all(vectors):
            raise ValueError(f"Ollama returned no usable embeddings (keys: {sorted(response_data)}).")
        return vectors

    ##########################################
    ############### GENERATION ###############
    ##########################################

    def _get_default_chat_model(self) -> str:
        return "llama3.1"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    def _build_chat_payload(self, messages: list[dict]) -> dict:
        return {
            "model": self.chat_model,
            "messages": messages,
            "stream": True,
            "options": {"temperature": self.chat_temperature, "num_predict": self.chat_max_tokens},
        }

    def _parse_stream_line(self, line: str) -> str | None:
        # {"message": {"role": "assistant", "content": "..."}, "done": false}
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"Ollama sent a line that is not JSON: {line[:200]!r}") from e
        if "error" in data:
            raise ValueError(f"Ollama reported an error: {data['error']}")
        return (data.get("message") or {}).get("content") or None
