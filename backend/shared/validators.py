"""Shared validation helpers for service settings."""

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_cors_origins(value: str | list[str]) -> list[str]:
    """Parse allowed CORS origins from an env var or config value.

    Accepts a list of strings, a JSON array string ('["a","b"]') or a
    comma-separated string ('a,b'). Blank entries are dropped. Raises
    ValueError when nothing usable is left or the JSON is malformed.
    """
    if isinstance(value, list):
        origins = [origin.strip() for origin in value if isinstance(origin, str) and origin.strip()]
    else:
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
                raise ValueError("JSON value must be an array of strings")
            origins = [origin.strip() for origin in parsed if origin.strip()]
        else:
            origins = [origin.strip() for origin in stripped.split(",") if origin.strip()]

    if not origins:
        raise ValueError("cors_origins must list at least one origin")
    return origins


class CorsEnvSettingsSource(EnvSettingsSource):
    """Env settings source that hands ``cors_origins`` to its validator unparsed.

    pydantic-settings JSON-decodes list-typed env values before validators run,
    which rejects the comma-separated form. Passing the raw string through lets
    ``parse_cors_origins`` accept both forms.
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
