"""Process-wide settings read once from the environment."""

import os
from pathlib import Path
from typing import Optional

RESULTS_DIR = Path(os.getenv("A11Y_RESULTS_DIR", "accessibility-results"))

# Local copy of axe.min.js; when unset the script is downloaded from AXE_CDN_URL
AXE_SCRIPT_PATH: Optional[str] = os.getenv("A11Y_AXE_SCRIPT_PATH") or None

AXE_CDN_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"

# Staging sites often live on internal addresses; the fetcher refuses them unless enabled
ALLOW_PRIVATE_HOSTS = os.getenv("A11Y_ALLOW_PRIVATE_HOSTS", "").lower() in ("1", "true", "yes")
