from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A configuration key a collaborator client or store engine needs at startup.

    The key is relative to the owner's prefix, e.g. ``BASE_URL`` for an
    Ollama LLM client resolves to ``LLM_OLLAMA_BASE_URL``.

    Attributes:
        env_key (str): The relative name of the environment variable.
        val_type (str): How the value is parsed: "string", "number", "bool" or "list".
        default: Value used when the variable is unset. None marks the key as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
