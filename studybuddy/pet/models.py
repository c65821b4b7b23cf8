from datetime import datetime, timezone
from enum import Enum
import uuid
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

STAT_MIN = 0
STAT_MAX = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def short_id() -> str:
    return uuid.uuid4().hex[:8]


class PetSpecies(str, Enum):
    CAT = "cat"
    DOG = "dog"
    BIRD = "bird"
    DRAGON = "dragon"


class PetEmotion(str, Enum):
    """What the pet currently shows"""
    HAPPY = "happy"
    SAD = "sad"
    EXCITED = "excited"
    TIRED = "tired"
    HUNGRY = "hungry"
    CONTENT = "content"


class UserEmotion(str, Enum):
    """Emotion detected on the user by an outside source (quick-action button, sensor)"""
    HAPPY = "happy"
    SAD = "sad"
    STRESSED = "stressed"
    TIRED = "tired"
    FOCUSED = "focused"
    EXCITED = "excited"


class Pet(BaseModel):
    """Snapshot of the study buddy. Frozen: changes go through PetStore."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=short_id)
    user_id: Optional[str] = None
    name: str = Field(default="Buddy", min_length=1)
    species: PetSpecies = PetSpecies.CAT
    level: int = Field(default=5, ge=1)
    experience: int = Field(default=250, ge=0)
    happiness: int = Field(default=80, ge=STAT_MIN, le=STAT_MAX)
    energy: int = Field(default=70, ge=STAT_MIN, le=STAT_MAX)
    hunger: int = Field(default=40, ge=STAT_MIN, le=STAT_MAX)  # 0 = full, 100 = starving
    current_emotion: PetEmotion = PetEmotion.CONTENT
    last_interaction: datetime = Field(default_factory=utcnow)
    achievements: Tuple[str, ...] = ("first_task", "study_streak_7")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("achievements")
    @classmethod
    def _unique_achievements(cls, v):
        # keep first occurrence order
        return tuple(dict.fromkeys(v))

    @field_validator("last_interaction", "created_at", "updated_at")
    @classmethod
    def _aware(cls, v: datetime):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def fullness(self) -> int:
        return STAT_MAX - self.hunger

    @property
    def next_level_experience(self) -> int:
        return (self.level + 1) * 100

    @property
    def experience_progress(self) -> float:
        """Percent of the way to the next level threshold, capped at 100"""
        return min(100.0, self.experience / self.next_level_experience * 100)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pet':
        return cls.model_validate(data)


class PetMessage(BaseModel):
    """One line the pet says. emotion is the tone tag (pet/user emotion or 'supportive')."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=short_id)
    text: str
    emotion: str
    timestamp: datetime = Field(default_factory=utcnow)
