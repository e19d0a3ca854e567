import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "store_path": ".",  # git repository holding the mirror; created bare if missing
    "ref_namespace": "refs/mirror",
    "per_page": 100,
    "jobs": 1,  # concurrent page fetches per collection
    "timeout": 30.0,
    "collections": ["issues", "comments"],
    "hosts": {"github.com": "https://api.github.com"},  # web host -> API base URL
    "netrc": None,  # None = ~/.netrc
}


def load_config(config_path: str = ".issuemirror.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .issuemirror.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "collections": list(DEFAULT_CONFIG["collections"]),
        "hosts": dict(DEFAULT_CONFIG["hosts"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        # Extra hosts extend the defaults rather than replacing github.com.
        hosts = file_config.pop("hosts", None) or {}
        config.update(file_config)
        config["hosts"].update(hosts)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config
