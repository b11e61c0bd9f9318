from pathlib import Path
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    database_url: str = f"sqlite:///{BASE_DIR / 'lessonarcade.db'}"
    voice_analytics_dir: Path = BASE_DIR / "data" / "voice-analytics"
    logging_salt: str = "default-salt"
    default_window_days: int = 30
    default_voice_days: int = 7

    model_config = {"env_file": [BASE_DIR / ".env", BASE_DIR.parent / ".env"], "extra": "ignore"}


settings = Settings()
