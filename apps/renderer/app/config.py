from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # runtime env
    env: str = "dev"
    log_level: str = "INFO"

    # shared secret compared against the X-KEY header; unset → every render is 401
    render_key: str | None = None

    # font assets (a local path wins over the URL when both are set)
    display_font_url: str = (
        "https://fonts.gstatic.com/s/playfairdisplay/v30/nuFiD-vYSZviVYUb_rj3ij__anPxDTnY.woff2"
    )
    display_font_path: str | None = None
    body_font_url: str = "https://fonts.gstatic.com/s/inter/v13/UcCO3Fwr0k5b0Vn4E6Eu7w.woff2"
    body_font_path: str | None = None

    # used when the payload carries no main_image
    default_main_image: str = (
        "https://images.unsplash.com/photo-1509440159596-0249088772ff?w=1200&h=1800&fit=crop"
    )

    # outbound fetches (fonts + main image)
    fetch_connect_timeout: float = 3.0
    fetch_read_timeout: float = 15.0
    max_image_bytes: int = 20 * 1024 * 1024

    # "*" or comma separated origins
    cors_origins: str = "*"

    class Config:
        env_file = ".env"


settings = Settings()
