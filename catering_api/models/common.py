"""
Shared schema base and coercion helpers
"""
from typing import Any, List
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Pydantic base that speaks camelCase JSON and reads ORM rows"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def coerce_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


def reject_null(value: Any) -> Any:
    """Before-validator for update fields backed by NOT NULL columns"""
    if value is None:
        raise ValueError("Field may not be null")
    return value


def coerce_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def coerce_str_list(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None]
    return []


def unique_list(values: List[str]) -> List[str]:
    """De-duplicate while keeping first-seen order"""
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result
