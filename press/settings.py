import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

def env(key: str, default: str | None = None) -> str | None:
    return os.getenv(key, default)

PRESS_API_KEY = env("PRESS_API_KEY")
PRESS_BASE_URL = env("PRESS_BASE_URL", "https://api.deepseek.com")
PRESS_MODEL = env("PRESS_MODEL", "deepseek-chat")

def config_path() -> Path:
    raw = env("PRESS_CONFIG_PATH")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".press" / "config.json"
