import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


class Settings:
    def __init__(self) -> None:
        self.MAX_SOURCE_EDGE: int = _as_int(os.getenv("STAMPIT_MAX_SOURCE_EDGE"), 800)
        self.STAMP_BASE_SIZE: int = _as_int(os.getenv("STAMPIT_STAMP_BASE_SIZE"), 512)
        self.STRICT_INK_COLORS: bool = _as_bool(os.getenv("STAMPIT_STRICT_INK_COLORS"), True)
        self.MAX_UPLOAD_BYTES: int = _as_int(os.getenv("STAMPIT_MAX_UPLOAD_BYTES"), 10 * 1024 * 1024)


settings = Settings()
