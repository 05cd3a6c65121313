import json
import unicodedata
from typing import Any

from pydantic import BaseModel

_FENCE = "```"


def clean_text(text: str) -> str:
    return "".join(ch for ch in text if unicodedata.category(ch)[0] != "C" or ch in "\n\r\t")


def to_prompt_json(value: Any) -> str:
    """Serialize models (or lists/dicts of models) to camelCase JSON for a prompt."""
    def _plain(obj: Any) -> Any:
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json", by_alias=True)
        if isinstance(obj, (list, tuple)):
            return [_plain(item) for item in obj]
        if isinstance(obj, dict):
            return {key: _plain(item) for key, item in obj.items()}
        return obj

    return json.dumps(_plain(value), ensure_ascii=False)


def strip_code_fences(text: str) -> str:
    """Some servers wrap JSON mode output in ```json fences."""
    stripped = text.strip()
    if stripped.startswith(_FENCE):
        stripped = stripped[len(_FENCE):]
        if stripped.lower().startswith("json"):
            stripped = stripped[4:]
        if stripped.rstrip().endswith(_FENCE):
            stripped = stripped.rstrip()[: -len(_FENCE)]
    return stripped.strip()
