from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Listeners
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000, description="Plain HTTP listener port")
    HTTPS_PORT: int = Field(default=3001, description="TLS listener port, used only when certificates exist")
    SSL_CERTFILE: str = Field(default="ssl/cert.pem")
    SSL_KEYFILE: str = Field(default="ssl/key.pem")

    # Session logs, one text file per session
    SESSIONS_DIR: str = Field(default="sessions")

    # Control panel and display pages
    STATIC_DIR: str = Field(default=str(PACKAGE_DIR / "static"))

    # pytz zone name for session log timestamps; server local time when unset
    TIMEZONE: Optional[str] = Field(default=None)

    CORS_ORIGINS: List[str] = Field(default=["*"])

    LOG_LEVEL: str = Field(default="INFO")

    class Config:
        env_file = ".env"

    @property
    def tls_enabled(self) -> bool:
        return Path(self.SSL_CERTFILE).is_file() and Path(self.SSL_KEYFILE).is_file()


settings = Settings()
