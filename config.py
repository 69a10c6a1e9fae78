import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".vocabquest"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

def load_config() -> Dict[str, Any]:
    """Load config from ~/.vocabquest/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., SESSION_QUIT_PENALTY env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    session_cfg = config.get("session", {})
    config["session"] = {
        "min_words": int(os.getenv("SESSION_MIN_WORDS", session_cfg.get("min_words", 5))),
        "completion_xp": int(os.getenv("SESSION_COMPLETION_XP", session_cfg.get("completion_xp", 50))),
        "mastered_word_xp": int(os.getenv(
            "SESSION_MASTERED_WORD_XP", session_cfg.get("mastered_word_xp", 10)
        )),
        "quit_penalty": int(os.getenv("SESSION_QUIT_PENALTY", session_cfg.get("quit_penalty", 30))),
        "feedback_delay_ms": int(os.getenv(
            "SESSION_FEEDBACK_DELAY_MS", session_cfg.get("feedback_delay_ms", 1500)
        )),
    }
    grading_cfg = config.get("grading", {})
    config["grading"] = {
        "near_miss_threshold": float(os.getenv(
            "NEAR_MISS_THRESHOLD", grading_cfg.get("near_miss_threshold", 0.85)
        )),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    return config

def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('session', 'quit_penalty')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
