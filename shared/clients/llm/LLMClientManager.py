from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig

SUPPORTED_LLM_ENGINES = ("ollama", "openai")


class LLMClientManager:
    """
    Builds the embedding/generation client named by LLM_ENGINE.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads LLM_ENGINE ("ollama" if unset) and checks it against the supported engines.

        Returns:
            str: Capitalised engine name (e.g. "Openai").

        Raises:
            ValueError: If the engine is not supported.
        """
        engine = self.helper_config.get_string_val("LLM_ENGINE", default="ollama").strip().lower()
        if engine not in SUPPORTED_LLM_ENGINES:
            raise ValueError(
                "Unsupported LLM engine '%s' (LLM_ENGINE). Supported: %s" % (engine, ", ".join(SUPPORTED_LLM_ENGINES))
            )
        return engine.capitalize()

    def _initialize_client(self) -> LLMClientInterface:
        engine = self._get_engine_from_env()
        class_name = f"LLMClient{engine}"
        try:
            module = __import__(f"shared.clients.llm.{engine.lower()}.{class_name}", fromlist=[class_name])
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("LLM engine '%s' could not be loaded. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config)
        self.logging.info("Using LLM engine '%s' (embed model: %s, chat model: %s)", engine, client.embed_model, client.chat_model)
        return client

    def get_client(self) -> LLMClientInterface:
        return self.client
