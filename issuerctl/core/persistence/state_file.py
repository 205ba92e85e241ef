"""
State file persistence — atomic read/write for InstallState.

State is stored as JSON in <home>/.state/install.json. Writes are atomic
(write to temp file, then rename) to prevent corruption if the
process crashes mid-write. The same atomic write backs the generated
config files.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from issuerctl.core.models.state import InstallState

logger = logging.getLogger(__name__)


def atomic_write(path: Path, content: str, prefix: str = ".tmp_") -> None:
    """Replace ``path`` with ``content`` in a single rename.

    Readers see either the old file or the new one, never a mix.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    _fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def load_state(path: Path) -> InstallState:
    """Load install state from a JSON file.

    Args:
        path: Path to the state JSON file.

    Returns:
        InstallState model. If the file doesn't exist, returns a fresh state.
    """
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return InstallState()

    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
        state = InstallState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return InstallState()
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return InstallState()


def save_state(state: InstallState, path: Path) -> None:
    """Save install state to a JSON file (atomic write).

    Args:
        state: The state to save.
        path: Target path for the state file.
    """
    state.touch()

    data = state.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        atomic_write(path, content, prefix=".state_")
        logger.debug("State saved to %s", path)
    except Exception as e:
        logger.error("Failed to save state to %s: %s", path, e)
        raise
