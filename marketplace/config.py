# marketplace/config.py
from pydantic_settings import BaseSettings
from functools import lru_cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    # Supabase configuration
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_JWT_SECRET: str

    # Database
    DATABASE_URL: str

    # API configuration
    API_PREFIX: str = "/api/v1"
    CONVERSATION_PAGE_SIZE: int = 50

    # Messaging
    MARK_READ_BATCH_SIZE: int = 500

    # Sale confirmation: first attempt plus one retry on conflict
    CONFIRM_MAX_ATTEMPTS: int = 2

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()
