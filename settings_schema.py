from pydantic import BaseModel, ValidationError

class SettingsSchema(BaseModel):
    db_path: str = "fittrack.db"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
