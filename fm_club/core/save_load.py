"""Save/Load system for FM Club.

Features:
- Compressed save files (gzip)
- JSON serialization of the whole game state
- Version tag for save compatibility
- SHA-256 checksum over the game state
- Atomic writes through a temporary file
"""

import gzip
import hashlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from fm_club.core.config import settings
from fm_club.core.errors import SaveFileCorruptedError, SaveNotFoundError
from fm_club.core.models import GameState
from fm_club.engine.calendar import season_label, season_year_of

logger = logging.getLogger(__name__)


class SaveVersion(Enum):
    """Save file version for compatibility."""

    V1_0 = "1.0"  # Initial version
    V1_1 = "1.1"  # Holiday plan, play time and season history
    CURRENT = V1_1


@dataclass
class SaveMetadata:
    """Metadata for a save game."""

    save_name: str
    save_date: datetime
    version: str
    season: str
    current_week: int
    club_id: str
    club_name: Optional[str]
    in_game_date: date
    manager_name: str = "Manager"
    play_time_minutes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "save_name": self.save_name,
            "save_date": self.save_date.isoformat(),
            "version": self.version,
            "season": self.season,
            "current_week": self.current_week,
            "club_id": self.club_id,
            "club_name": self.club_name,
            "in_game_date": self.in_game_date.isoformat(),
            "manager_name": self.manager_name,
            "play_time_minutes": self.play_time_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaveMetadata":
        return cls(
            save_name=data["save_name"],
            save_date=datetime.fromisoformat(data["save_date"]),
            version=data.get("version", SaveVersion.V1_0.value),
            season=data.get("season", ""),
            current_week=data.get("current_week", 1),
            club_id=data.get("club_id", ""),
            club_name=data.get("club_name"),
            in_game_date=date.fromisoformat(data["in_game_date"]),
            manager_name=data.get("manager_name", "Manager"),
            play_time_minutes=data.get("play_time_minutes", 0),
        )

    @classmethod
    def for_state(cls, save_name: str, state: GameState) -> "SaveMetadata":
        club = state.team(state.user_team_id)
        return cls(
            save_name=save_name,
            save_date=datetime.now(),
            version=SaveVersion.CURRENT.value,
            season=season_label(season_year_of(state.current_date)),
            current_week=state.current_week,
            club_id=state.user_team_id,
            club_name=club.name if club else None,
            in_game_date=state.current_date,
            manager_name=state.manager.name,
            play_time_minutes=state.play_time,
        )


def state_checksum(game_state: Dict[str, Any]) -> str:
    checksum_data = json.dumps(game_state, sort_keys=True, default=str)
    return hashlib.sha256(checksum_data.encode()).hexdigest()


class SaveLoadManager:
    """Whole-state save files in one directory."""

    SAVE_EXTENSION = ".fmsave"

    def __init__(self, save_dir: Optional[Path] = None, save_name: Optional[str] = None):
        if save_dir is None:
            save_dir = settings.save_path
        self.save_dir = Path(save_dir)
        self.save_dir.mkdir(parents=True, exist_ok=True)
        self.save_name = save_name or settings.save_name

    def _path(self, save_name: Optional[str]) -> Path:
        return self.save_dir / f"{save_name or self.save_name}{self.SAVE_EXTENSION}"

    def exists(self, save_name: Optional[str] = None) -> bool:
        return self._path(save_name).exists()

    def save(self, state: GameState, save_name: Optional[str] = None) -> bool:
        """Write the state to disk. Returns False if the write failed."""
        name = save_name or self.save_name
        game_state = state.to_dict()
        save_data = {
            "metadata": SaveMetadata.for_state(name, state).to_dict(),
            "game_state": game_state,
            "checksum": state_checksum(game_state),
        }

        save_path = self._path(name)
        tmp_path = save_path.with_suffix(save_path.suffix + ".tmp")
        try:
            with gzip.open(tmp_path, "wt", encoding="utf-8") as f:
                json.dump(save_data, f, default=str)
            os.replace(tmp_path, save_path)
        except OSError as e:
            logger.error("Failed to save %s: %s", save_path, e)
            tmp_path.unlink(missing_ok=True)
            return False

        logger.info("Saved %s (%s)", name, state.current_date)
        return True

    def _read(self, save_name: Optional[str]) -> Dict[str, Any]:
        save_path = self._path(save_name)
        if not save_path.exists():
            raise SaveNotFoundError(f"Save file not found: {save_path.name}")
        try:
            with gzip.open(save_path, "rt", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, EOFError, json.JSONDecodeError) as e:
            raise SaveFileCorruptedError(f"Save file is unreadable: {save_path.name}") from e

    def load_game(self, save_name: Optional[str] = None) -> GameState:
        """Load and verify a save.

        Raises:
            SaveNotFoundError: If no such save exists
            SaveFileCorruptedError: If the file is unreadable or fails its checksum
        """
        save_data = self._read(save_name)
        game_state = save_data.get("game_state", {})
        if save_data.get("checksum") != state_checksum(game_state):
            raise SaveFileCorruptedError("Save file is corrupted (checksum mismatch)")
        try:
            return GameState.from_dict(game_state)
        except (KeyError, ValueError, TypeError) as e:
            raise SaveFileCorruptedError(f"Save file has an invalid game state: {e}") from e

    def load(self, save_name: Optional[str] = None) -> Optional[GameState]:
        """Load a save, or None when there is nothing to load."""
        try:
            return self.load_game(save_name)
        except SaveNotFoundError:
            return None

    def clear(self, save_name: Optional[str] = None) -> bool:
        """Delete a save. Returns False if there was none."""
        save_path = self._path(save_name)
        if not save_path.exists():
            return False
        save_path.unlink()
        logger.info("Deleted save %s", save_path.name)
        return True

    def read_metadata(self, save_name: Optional[str] = None) -> SaveMetadata:
        return SaveMetadata.from_dict(self._read(save_name).get("metadata", {}))

    def list_saves(self) -> List[SaveMetadata]:
        """Metadata of every readable save, newest first."""
        saves = []
        for save_path in self.save_dir.glob(f"*{self.SAVE_EXTENSION}"):
            name = save_path.name[: -len(self.SAVE_EXTENSION)]
            try:
                saves.append(self.read_metadata(name))
            except (SaveFileCorruptedError, KeyError, ValueError):
                logger.warning("Skipping unreadable save %s", save_path.name)
        saves.sort(key=lambda m: m.save_date, reverse=True)
        return saves
