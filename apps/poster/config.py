import tempfile

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # runtime env
    env: str = "dev"
    port: int = 3000
    log_level: str = "INFO"

    # poster canvas (must match the layout defaults in poster.py)
    default_width: int = 1200
    default_height: int = 1600
    max_dimension: int = 4096  # hard cap so nobody asks for a 50k px canvas

    # request guard
    max_body_bytes: int = 5 * 1024 * 1024

    # metadata fetch
    fetch_timeout: float = 10.0
    fetch_user_agent: str = "Mozilla/5.0 (compatible; PosterPulseBot/1.0)"

    # headless browser
    render_timeout_ms: int = 30000
    max_concurrent_renders: int = 4  # 0 = unlimited
    tmp_dir: str = tempfile.gettempdir()

    class Config:
        env_file = ".env"


settings = Settings()
