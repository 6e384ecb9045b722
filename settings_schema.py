from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

from algorithms.weight_converter import WeightConverter


class SettingsSchema(BaseModel):
    timezone: str = "UTC"
    first_weekday: int = Field(default=0, ge=0, le=6)
    weight_unit: str = "kg"
    initial_set_count: int = Field(default=5, ge=0, le=20)
    catalog_path: str = ""
    language: str = "en"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {value}")
        return value

    @field_validator("weight_unit")
    @classmethod
    def _known_unit(cls, value: str) -> str:
        if value not in WeightConverter.UNITS:
            raise ValueError("weight_unit must be one of: " + ", ".join(WeightConverter.UNITS))
        return value


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
