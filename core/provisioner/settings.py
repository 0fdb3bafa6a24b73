"""
Persistent provisioning settings.
"""

import json
from pathlib import Path
from typing import Optional

from provisioner.config import DATA_DIR, SETTINGS_FILE
from provisioner.models.catalog import ModelSize
from provisioner.utils.logging import logger


class Settings:
    """
    Settings saved between runs.

    Stores:
    - The model size chosen for local inference
    - The last wizard state (opaque dict), so an interrupted setup can resume
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = data_dir or DATA_DIR
        self._settings_path = self.data_dir / SETTINGS_FILE

        self.local_model_size: Optional[ModelSize] = None
        self.wizard_state: Optional[dict] = None

        self._load()

    def save_model_size(self, size: ModelSize | str) -> None:
        logger.info(f"Saving settings for model size: {ModelSize(size).value}")
        self.local_model_size = ModelSize(size)
        self._save()

    def save_wizard_state(self, state: dict) -> None:
        self.wizard_state = state
        self._save()

    def _load(self) -> None:
        if not self._settings_path.exists():
            return
        try:
            data = json.loads(self._settings_path.read_text())
            size = data.get("local_model_size")
            self.local_model_size = ModelSize(size) if size else None
            self.wizard_state = data.get("wizard_state")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load settings: {e}")

    def _save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "local_model_size": (
                self.local_model_size.value if self.local_model_size else None
            ),
            "wizard_state": self.wizard_state,
        }
        self._settings_path.write_text(json.dumps(data, indent=2))
