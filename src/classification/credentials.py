"""
API credential helpers for the remote classifier.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml


def inject_api_credentials(classifier_cfg: Dict[str, Any]) -> None:
    """
    Fill classifier_cfg["api_key"] from a secrets file or the environment.

    Lookup order:
    1. an api_key already present in the config
    2. secrets_file (YAML) with an `api_key` entry, e.g. secrets/classifier_secrets.yaml:
         api_key: "gsk_..."
    3. the environment variable named by api_key_env (default GROQ_API)
    """
    if classifier_cfg.get("api_key"):
        return

    secrets_file = classifier_cfg.get("secrets_file")
    if secrets_file and os.path.exists(secrets_file):
        with open(secrets_file, "r") as f:
            secrets = yaml.safe_load(f) or {}
        api_key = secrets.get("api_key")
        if api_key:
            classifier_cfg["api_key"] = api_key
            return
        logging.warning(f"No api_key found in secrets file {secrets_file}")

    env_name = classifier_cfg.get("api_key_env", "GROQ_API")
    api_key: Optional[str] = os.environ.get(env_name)
    if api_key:
        classifier_cfg["api_key"] = api_key
