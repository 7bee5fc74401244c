"""
Response helper utilities for handling UUID conversions and model validation
"""
from typing import Any, List
import uuid
from pydantic import BaseModel


def convert_uuids_to_strings(obj: Any) -> Any:
    """
    Recursively convert UUID objects to strings in any data structure
    """
    if isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: convert_uuids_to_strings(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_uuids_to_strings(item) for item in obj]
    elif hasattr(obj, '__dict__') and not isinstance(obj, BaseModel):
        # Handle SQLAlchemy models and other objects with __dict__
        result = {}
        for key, value in obj.__dict__.items():
            if not key.startswith('_'):  # Skip SQLAlchemy internal attributes
                result[key] = convert_uuids_to_strings(value)
        return result
    else:
        return obj


def safe_model_validate(model_class: BaseModel, data: Any) -> BaseModel:
    """
    Safely validate a model by converting UUIDs to strings first
    """
    if isinstance(data, BaseModel):
        data = data.model_dump()
    elif hasattr(data, '__dict__'):
        # If it's a SQLAlchemy model, convert to dict first
        data = data.__dict__.copy()

    # Convert UUIDs to strings
    clean_data = convert_uuids_to_strings(data)

    # Remove SQLAlchemy internal keys if present
    if isinstance(clean_data, dict):
        clean_data = {k: v for k, v in clean_data.items() if not k.startswith('_')}

    return model_class.model_validate(clean_data)


def safe_model_validate_list(model_class: BaseModel, data_list: List[Any]) -> List[BaseModel]:
    """
    Safely validate a list of models by converting UUIDs to strings first
    """
    return [safe_model_validate(model_class, item) for item in data_list]
