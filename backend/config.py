import os
from datetime import date
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "Tally"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./tally.db")

    # File upload
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "25"))

    # PDF text extraction: "pymupdf" or "pdfplumber"
    PDF_BACKEND: str = os.getenv("PDF_BACKEND", "pymupdf")

    # Line grouping tolerance. pdf2json dumps use page units (~0.5 apart on
    # the same baseline); PyMuPDF/pdfplumber words are in PDF points.
    REFLOW_Y_THRESHOLD: float = float(os.getenv("REFLOW_Y_THRESHOLD", "0.5"))
    PDF_Y_THRESHOLD: float = float(os.getenv("PDF_Y_THRESHOLD", "2.0"))

    # Statements print MM/DD only, so the year has to come from the caller
    DEFAULT_STATEMENT_YEAR: int = int(os.getenv("DEFAULT_STATEMENT_YEAR", str(date.today().year)))

    # Parsing
    FALLBACK_MIN_LINE_LENGTH: int = int(os.getenv("FALLBACK_MIN_LINE_LENGTH", "8"))

    # Merchant classification
    MAPPING_CACHE_TTL_SECONDS: float = float(os.getenv("MAPPING_CACHE_TTL_SECONDS", "300"))
    # Minimum wait before retrying a failed mapping load
    MAPPING_CACHE_RETRY_SECONDS: float = float(os.getenv("MAPPING_CACHE_RETRY_SECONDS", "30"))
    SEED_DEFAULT_MAPPINGS: bool = _env_bool("SEED_DEFAULT_MAPPINGS", "true")

    # CORS: comma-separated list of origins
    ALLOWED_ORIGINS: list = [
        x.strip()
        for x in os.getenv(
            "ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
    ]


settings = Settings()
