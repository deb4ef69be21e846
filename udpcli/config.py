"""
UDP CLI configuration management
"""
from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """UDP CLI settings"""

    # Paths
    project_root: Path = Path(__file__).parent.parent
    log_dir: Path = project_root / "logs"
    log_level: str = "WARNING"
    log_format: str = "json"  # "json" or "console"

    # Message buffers
    max_message_size: int = 65535
    message_pool_size: int = 16
    hex_segment_size: int = 50  # Decoded bytes per hex segment

    # Receive path
    receive_buffer_size: int = 65535
    receive_display_limit: int = 1500  # Includes the terminator slot
    receive_poll_interval: float = 0.2

    # Session defaults
    link_security_default: bool = True

    # Shell
    prompt: str = "> "

    class Config:
        env_prefix = "UDPCLI_"
        env_file = ".env"


settings = Settings()
