from typing import Literal
from pydantic import BaseModel, ValidationError

from config import YamlConfig


class SettingsSchema(BaseModel):
    db_path: str = "workout.db"
    weight_unit: Literal["kg", "lb"] = "kg"
    default_weight: str = "0"
    default_reps: str = "10"
    quick_workout_name: str = "Quick Workout"
    history_limit: int = 10
    log_level: str = "INFO"


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))


def load_settings(path: str = "settings.yaml") -> SettingsSchema:
    """Return validated settings from ``path`` with defaults filled in."""
    data = YamlConfig(path).load()
    validate_settings(data)
    return SettingsSchema(**data)
