from shared.helper.HelperConfig import HelperConfig
from shared.stores.StoreInterface import StoreInterface


class StoreManager:
    """
    Manager class to instantiate the configured store engine.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.store = self._initialize_store()

    def _get_engine_from_env(self) -> str:
        """
        Reads the store engine from ENV configuration, "memory" if unset.

        Returns:
            str: Capitalised engine name (e.g. "Memory").
        """
        engine = self.helper_config.get_string_val("STORE_ENGINE", default="memory")
        return engine.strip().lower().capitalize()

    def _initialize_store(self) -> StoreInterface:
        """
        Instantiates the store for the configured engine.

        Returns:
            StoreInterface: The store instance.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"Store{engine}"
        try:
            module = __import__(
                f"shared.stores.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            store_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported store engine specified: '{engine}'. Error: {e}")
        store = store_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated store for engine: %s", engine)
        return store

    def get_store(self) -> StoreInterface:
        """
        Returns the instantiated store.
        """
        return self.store
