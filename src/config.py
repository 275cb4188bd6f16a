from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = ""
    DB_DATABASE: str = "postgres"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return "postgresql+psycopg://{}:{}@{}:{}/{}".format(
            quote_plus(self.DB_USERNAME),
            quote_plus(self.DB_PASSWORD),
            self.DB_HOST,
            self.DB_PORT,
            self.DB_DATABASE,
        )


settings = Settings()
