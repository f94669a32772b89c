from typing import List, Union
from pydantic_settings import BaseSettings
from pydantic import field_validator
import json

class Settings(BaseSettings):
    PROJECT_NAME: str = "Lead Manager"
    VERSION: str = "0.1.0"
    API_PREFIX: str = ""

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str):
            if v.startswith("[") and v.endswith("]"):
                # Parse JSON array string
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    # Fallback to treating as comma-separated
                    return [i.strip() for i in v.split(",")]
            else:
                # Comma-separated string
                return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Database
    DATABASE_URL: str = "sqlite:///./leads.db"

    # CSV uploads
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE: int = 10485760  # 10MB

    # Genderize API
    GENDERIZE_API_URL: str = "https://api.genderize.io"
    GENDERIZE_BATCH_SIZE: int = 10
    GENDERIZE_TIMEOUT: int = 10

    @field_validator("MAX_UPLOAD_SIZE", "GENDERIZE_BATCH_SIZE", "GENDERIZE_TIMEOUT", mode="before")
    def validate_positive_integers(cls, v):
        """Validate size and batch configuration values as positive integers."""
        if isinstance(v, str):
            # Handle comments in env values (e.g., "10485760  # 10MB")
            value = v.split('#')[0].strip()
            parsed = int(value)
        else:
            parsed = int(v)

        if parsed <= 0:
            raise ValueError(f"Value must be a positive integer, got: {parsed}")
        return parsed

    @field_validator("GENDERIZE_BATCH_SIZE")
    def validate_batch_size(cls, v: int) -> int:
        # genderize.io accepts at most 10 names per request
        if v > 10:
            raise ValueError(f"GENDERIZE_BATCH_SIZE cannot exceed 10, got: {v}")
        return v

    # Logging Configuration
    LOG_DIR: str = "./logs"
    LOG_LEVEL: str = "INFO"
    LOG_ROTATION_SIZE: int = 10485760  # 10MB
    LOG_BACKUP_COUNT: int = 5

    @field_validator("LOG_ROTATION_SIZE", "LOG_BACKUP_COUNT", mode="before")
    def validate_integers(cls, v):
        if isinstance(v, str):
            # Handle comments in env values (e.g., "10485760  # 10MB")
            value = v.split('#')[0].strip()
            return int(value)
        return v

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "allow"

settings = Settings()
