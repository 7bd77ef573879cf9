from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    APP_NAME: str = "LeaveDesk"
    AUTH_MODE: Literal["firebase", "mock"] = "mock"
    STORAGE_BACKEND: Literal["supabase", "memory"] = "supabase"

    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    FIREBASE_CREDENTIALS_PATH: str = "./firebase-credentials.json"

    CORS_ORIGINS: str = "http://localhost:3000"

    EMAILJS_SERVICE_ID: str = ""
    EMAILJS_PUBLIC_KEY: str = ""
    EMAILJS_PRIVATE_KEY: str = ""
    EMAILJS_APPLICATION_TEMPLATE_ID: str = ""
    EMAILJS_DECISION_TEMPLATE_ID: str = ""

    # first_match: oldest faculty account in the department wins
    FACULTY_ASSIGNMENT: Literal["first_match", "least_loaded"] = "first_match"
    RECENT_LEAVES_LIMIT: int = 10

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def email_configured(self) -> bool:
        return bool(
            self.EMAILJS_SERVICE_ID
            and self.EMAILJS_PUBLIC_KEY
            and self.EMAILJS_PRIVATE_KEY
        )


settings = Settings()
