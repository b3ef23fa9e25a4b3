"""Configuration paths for rubystyle."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("RUBYSTYLE_HOME", str(Path.home() / ".rubystyle"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
LOCAL_CONFIG_NAME = ".rubystyle.toml"

DEFAULT_INCLUDE = ["**/*.rb", "**/*.rake", "**/*.ru", "**/Gemfile", "**/Rakefile", "**/*.gemspec"]
DEFAULT_EXCLUDE = ["vendor/**", ".git/**", "tmp/**", "node_modules/**"]
