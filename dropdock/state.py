"""Per-instance state files: <state_dir>/<instance>.json."""

import json
import logging
from pathlib import Path

from dropdock.provisioning.types import InstanceState

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".dropdock"


def state_path(state_dir, instance_name) -> Path:
    return Path(state_dir) / f"{instance_name}.json"


def load_state(path) -> InstanceState:
    """Read state from *path*; a missing file is an empty state."""
    path = Path(path)
    if not path.exists():
        return InstanceState()
    return InstanceState.from_dict(json.loads(path.read_text()))


def save_state(path, state):
    """Write *state* to *path*, or remove the file when the state is empty."""
    path = Path(path)
    if state.is_empty:
        if path.exists():
            path.unlink()
            logger.debug(f"Removed {path}")
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state.to_dict(), indent=2) + "\n")
    logger.debug(f"Saved state to {path}")
