from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    default_iterations: int = 10_000
    preview_iterations: int = 1_000
    max_workers: int = 2
    bucket_count: int = 20
    max_retained_runs: int = 100
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "BIZCASE_"
