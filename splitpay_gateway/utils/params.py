"""Query parameter normalization utilities"""

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union


def normalize_param(value: Union[str, Sequence[str], None], fallback: str = "") -> str:
    """Trim a query param, map "null"/"undefined" to "", strip one level of matching quotes"""
    if isinstance(value, (list, tuple)):
        raw = value[0] if value else fallback
    else:
        raw = value if value is not None else fallback

    text = (raw or "").strip()
    if not text or text.lower() in ("null", "undefined"):
        return ""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def normalize_params(params: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """normalize_param over every value, dropping the ones that come out empty"""
    normalized = {key: normalize_param(value) for key, value in params.items()}
    return {key: value for key, value in normalized.items() if value}


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated param into non-empty trimmed items"""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _extract_id(item: Any) -> str:
    if item is None or isinstance(item, bool):
        return ""
    if isinstance(item, (str, int, float)):
        return str(item).strip()
    if isinstance(item, dict):
        for key in ("id", "discountId", "code"):
            value = item.get(key)
            if value is not None:
                return _extract_id(value) if not isinstance(value, dict) else ""
    return ""


def _unique(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(item for item in items if item))


def canonicalize_discount_list(raw: Optional[str]) -> str:
    """
    Canonicalize a discount list param to a JSON array of unique id strings.

    Accepts a JSON array (of ids or objects with id/discountId/code), a JSON
    string holding comma-separated ids, or a bare comma-separated string.
    """
    if not raw or not raw.strip():
        return "[]"

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return json.dumps(_unique(split_csv(raw)))

    if isinstance(parsed, list):
        return json.dumps(_unique([_extract_id(item) for item in parsed]))
    if isinstance(parsed, str):
        return json.dumps(_unique(split_csv(parsed)))
    return "[]"
