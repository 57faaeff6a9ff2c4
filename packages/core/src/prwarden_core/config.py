import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "openai",  # "openai" | "anthropic"
    "model_name": None,  # None = provider default; OPENAI_MODEL overrides for openai
    "store_path": ".prwarden.db",
    "require_signature": True,
    "async_processing": True,  # False = run the whole pipeline inside the webhook request
    "queue_size": 100,
    "workers": 2,
    "enqueue_timeout": 5,
    "github_timeout": 30,
    "llm_timeout": 120,
    "max_diff_chars": 50000,
    "max_file_changes": 1000,
    "log_level": "INFO",
}

_TRUTHY = {"1", "true", "yes", "on"}


def load_config(config_path: str = ".prwarden.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prwarden.yml in the current directory
      3. Environment switches (PRWARDEN_REQUIRE_SIGNATURE, OPENAI_MODEL)
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    require_signature = os.environ.get("PRWARDEN_REQUIRE_SIGNATURE")
    if require_signature is not None:
        config["require_signature"] = require_signature.strip().lower() in _TRUTHY

    if config["model"] == "openai" and os.environ.get("OPENAI_MODEL"):
        config["model_name"] = os.environ["OPENAI_MODEL"]

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Secrets never live in the config file.
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["webhook_secret"] = os.environ.get("GITHUB_WEBHOOK_SECRET", "")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config
