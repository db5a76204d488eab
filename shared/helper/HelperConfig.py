"""Central configuration helper for docqa_bridge."""

import logging
import os


class HelperConfig:
    """Reads all settings from environment variables.

    Keys are case-insensitive (they are upper-cased before lookup) and an
    empty value is treated like a missing one.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read_raw(self, key: str) -> str | None:
        raw = os.getenv(key.upper()) or None  # empty string → None
        return raw.strip() if raw is not None else None

    def _missing(self, key: str) -> ValueError:
        return ValueError(f"Environment variable '{key.upper()}' is not set.")

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        return raw

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Values containing a dot are parsed as float, everything else as int.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                or if the value cannot be parsed as a number.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable ("true", "1" and "yes" are truthy)."""
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable written as ``[elem1,elem2,...]``.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The resolved list of elements, empty elements removed.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                if the brackets are missing or an element cannot be cast.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return list(default)
        if not raw.startswith("[") or not raw.endswith("]"):
            raise ValueError(
                f"Environment variable '{key.upper()}' must be in the format "
                f"'[elem1{separator}elem2{separator}...]'. Got: '{raw}'"
            )
        elements = [v.strip() for v in raw[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(
                f"Environment variable '{key.upper()}' contains invalid elements: {e}. "
                f"Expected elements of type {element_type.__name__}. Got: '{raw}'"
            )

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
