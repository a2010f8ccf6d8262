"""Validation helpers for settings loaded from the environment."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

ORIGIN_WILDCARD = "*"


def parse_origin_list(value: str | list[str]) -> list[str]:
    """Parse CORS origins from a JSON array string, a CSV string or a list.

    Origins must be ``*`` or start with ``http://`` / ``https://``. Trailing
    slashes are dropped because browsers never send them in ``Origin``.
    An empty value yields an empty list (CORS disabled).
    """
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                value = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(value, list):
                raise ValueError("JSON value must be an array of strings")
        else:
            value = stripped.split(",")

    origins: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError("Origins must be strings")
        origin = item.strip().rstrip("/")
        if not origin:
            continue
        if origin != ORIGIN_WILDCARD and not origin.startswith(("http://", "https://")):
            raise ValueError(f"Origin {origin!r} must start with http:// or https://")
        origins.append(origin)
    return origins


class OriginListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands ``cors_origins`` to its validator as a raw string.

    pydantic-settings would otherwise JSON-decode list fields itself and fail
    on the CSV form before the field validator runs.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name == "cors_origins" and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
