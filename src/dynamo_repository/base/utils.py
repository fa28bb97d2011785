import logging
from dataclasses import asdict, is_dataclass
from typing import Any

logger = logging.getLogger(__name__)


def prepare_for_storage(data: Any) -> Any:
    """
    Recursively reduce Pydantic models, dataclasses and collections to plain data.

    Handles:
    - Pydantic BaseModel instances (dumped in JSON mode with field aliases)
    - Python dataclasses
    - Dictionaries (processing values recursively)
    - Lists and tuples (processing each item)
    - Sets and frozensets (converted to lists, sorted when the items allow it)

    Numbers, strings, booleans and None are returned as-is so that numeric
    precision is decided by the value model, not here.

    Args:
        data: The data to convert

    Returns:
        The converted data
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_storage(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        try:
            return prepare_for_storage(data.model_dump(mode="json", by_alias=True))
        except Exception as e:
            # Models holding non JSON-able values still dump in python mode
            logger.debug(f"model_dump(mode='json') failed for {type(data).__name__}: {e}")
            return prepare_for_storage(data.model_dump(by_alias=True))

    if isinstance(data, dict):
        return {k: prepare_for_storage(v) for k, v in data.items()}

    if isinstance(data, (list, tuple)):
        return [prepare_for_storage(item) for item in data]

    if isinstance(data, (set, frozenset)):
        items = [prepare_for_storage(item) for item in data]
        try:
            return sorted(items)
        except TypeError:
            return items

    return data
