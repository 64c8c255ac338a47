"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Storage
    STORE_BACKEND = os.getenv("STORE_BACKEND", "firestore")
    BOOKS_COLLECTION = os.getenv("BOOKS_COLLECTION", "books")
    META_COLLECTION = os.getenv("META_COLLECTION", "catalog_meta")

    # Firestore
    FIRESTORE_PROJECT_ID = os.getenv("FIRESTORE_PROJECT_ID", "")
    FIRESTORE_DATABASE = os.getenv("FIRESTORE_DATABASE", "(default)")
    FIRESTORE_API_KEY = os.getenv("FIRESTORE_API_KEY")
    FIRESTORE_TOKEN = os.getenv("FIRESTORE_TOKEN")
    FIRESTORE_EMULATOR_HOST = os.getenv("FIRESTORE_EMULATOR_HOST")

    # Database
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "booksdb")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def FIRESTORE_BASE_URL(self):
        """Build the REST root for the configured Firestore database."""
        if self.FIRESTORE_EMULATOR_HOST:
            host = f"http://{self.FIRESTORE_EMULATOR_HOST}"
        else:
            host = "https://firestore.googleapis.com"
        return (
            f"{host}/v1/projects/{self.FIRESTORE_PROJECT_ID}"
            f"/databases/{self.FIRESTORE_DATABASE}/documents"
        )

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "3"))
    RECOMMEND_WINDOW_YEARS = int(os.getenv("RECOMMEND_WINDOW_YEARS", "3"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
