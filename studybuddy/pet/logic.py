from datetime import datetime, timedelta, timezone
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Union

from ..common.config_manager import ConfigManager, get_config
from ..common.data_manager import PersistenceError
from .messages import (
    DECAY_MESSAGES, FEED_RESPONSES, PLAY_RESPONSES, REST_RESPONSES, STUDY_MOTIVATION, SUPPORTIVE,
    avatar_for, pet_emotion_for, pick, responses_for,
)
from .models import STAT_MAX, STAT_MIN, Pet, PetEmotion, PetMessage, UserEmotion, utcnow
from .repository import PetRepository
from .store import MessageLog, PetStore

logger = logging.getLogger(__name__)

HOUR = timedelta(hours=1)


def clamp(value: int, low: int = STAT_MIN, high: int = STAT_MAX) -> int:
    return max(low, min(high, value))


def level_for(level: int, experience: int) -> int:
    """Raise level while experience reaches the next threshold, (level + 1) * 100"""
    while experience >= (level + 1) * 100:
        level += 1
    return level


# ========== pure interaction effects: Pet -> changed attributes ==========

def feed_effect(pet: Pet, config: ConfigManager) -> Dict[str, Any]:
    return {
        "hunger": clamp(pet.hunger - config.get("feed_hunger_relief")),
        "happiness": clamp(pet.happiness + config.get("feed_happiness_gain")),
    }


def play_effect(pet: Pet, config: ConfigManager) -> Dict[str, Any]:
    experience = pet.experience + config.get("play_experience_gain")
    return {
        "happiness": clamp(pet.happiness + config.get("play_happiness_gain")),
        "energy": clamp(pet.energy - config.get("play_energy_cost")),
        "experience": experience,
        "level": level_for(pet.level, experience),
    }


def rest_effect(pet: Pet, config: ConfigManager) -> Dict[str, Any]:
    return {"energy": clamp(pet.energy + config.get("rest_energy_gain"))}


def decay_emotion(pet: Pet, now: datetime, config: ConfigManager) -> Optional[PetEmotion]:
    """
    Emotion the pet falls into after being left alone, or None.

    Hunger is checked first, so it wins when both needs are neglected.
    """
    hours = (now - pet.last_interaction) / HOUR
    if hours > config.get("hungry_after_hours") and pet.fullness < config.get("hungry_fullness_below"):
        return PetEmotion.HUNGRY
    if hours > config.get("tired_after_hours") and pet.energy < config.get("tired_energy_below"):
        return PetEmotion.TIRED
    return None


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class PetLogic:
    """
    The pet engine of one session: owns the store and the message log,
    applies interactions, runs the decay check and hands every new snapshot
    to the repository when one is configured.

    A failed save raises PersistenceError after the in-memory update has
    happened; call save() to retry.
    """

    def __init__(
        self,
        pet: Optional[Pet] = None,
        config: Optional[ConfigManager] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        repository: Optional[PetRepository] = None,
        user_id: Optional[str] = None,
    ):
        self.config = config or get_config()
        self.rng = rng or random.Random()
        self.clock = clock or utcnow
        if pet is None:
            now = self._now()
            pet = Pet(user_id=user_id, last_interaction=now, created_at=now, updated_at=now)
        self.user_id = user_id or pet.user_id
        if repository is not None and not self.user_id:
            raise ValueError("a user id is required to persist the pet")
        self.repository = repository
        self.store = PetStore(pet)
        self.log = MessageLog(self.config.message_log_size)

    @classmethod
    def for_user(cls, user_id: str, repository: PetRepository, **kwargs) -> 'PetLogic':
        """Load the user's stored pet, or hatch the default one"""
        pet = repository.load(user_id)
        if pet is None:
            logger.info("no stored pet for %s, creating the default one", user_id)
        return cls(pet, repository=repository, user_id=user_id, **kwargs)

    @classmethod
    async def async_for_user(cls, user_id: str, repository: PetRepository, **kwargs) -> 'PetLogic':
        pet = await repository.async_load(user_id)
        if pet is None:
            logger.info("no stored pet for %s, creating the default one", user_id)
        return cls(pet, repository=repository, user_id=user_id, **kwargs)

    # ========== read side ==========
    @property
    def pet(self) -> Pet:
        return self.store.get_snapshot()

    @property
    def messages(self) -> List[PetMessage]:
        return list(self.log)

    @property
    def avatar(self) -> str:
        pet = self.pet
        return avatar_for(pet.species, pet.current_emotion)

    def subscribe(self, listener: Callable[[Pet], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def subscribe_messages(self, listener: Callable[[PetMessage], None]) -> Callable[[], None]:
        return self.log.subscribe(listener)

    # ========== interactions ==========
    def feed(self) -> Pet:
        now = self._now()
        pet = self._update(feed_effect(self.pet, self.config), now, "feed")
        self._say(pick(self.rng, FEED_RESPONSES), PetEmotion.HAPPY, now)
        self._persist(pet)
        return pet

    def play(self) -> Pet:
        now = self._now()
        before = self.pet
        pet = self._update(play_effect(before, self.config), now, "play")
        if pet.level > before.level:
            logger.info("%s reached level %d", pet.name, pet.level)
        self._say(pick(self.rng, PLAY_RESPONSES), PetEmotion.EXCITED, now)
        self._persist(pet)
        return pet

    def rest(self) -> Pet:
        now = self._now()
        pet = self._update(rest_effect(self.pet, self.config), now, "rest")
        self._say(pick(self.rng, REST_RESPONSES), PetEmotion.CONTENT, now)
        self._persist(pet)
        return pet

    def set_emotion(self, emotion: Union[PetEmotion, str], reason: Optional[str] = None) -> Pet:
        pet = self._set_emotion(PetEmotion(emotion), reason, self._now())
        self._persist(pet)
        return pet

    def award_achievement(self, name: str) -> Pet:
        """Add a badge; awarding one twice is a no-op apart from the timestamp"""
        name = name.strip()
        if not name:
            raise ValueError("achievement name must not be empty")
        achievements = self.pet.achievements
        if name not in achievements:
            achievements = achievements + (name,)
            logger.info("%s earned %s", self.pet.name, name)
        pet = self._update({"achievements": achievements}, self._now(), "achievement")
        self._persist(pet)
        return pet

    def respond_to_user_emotion(self, detected: Union[UserEmotion, str]) -> PetMessage:
        """React to the user's emotion: say something fitting and mirror it"""
        detected = UserEmotion(detected)
        now = self._now()
        message = self._say(pick(self.rng, responses_for(detected)), detected, now)
        pet = self._set_emotion(pet_emotion_for(detected), f"user feels {detected.value}", now)
        self._persist(pet)
        return message

    # ========== passive ==========
    def check_decay(self, now: Optional[datetime] = None) -> Optional[PetMessage]:
        """Apply neglect to the pet's mood. Returns the complaint, if any."""
        message = self._decay(now)
        if message is not None:
            self._persist(self.pet)
        return message

    async def async_check_decay(self, now: Optional[datetime] = None) -> Optional[PetMessage]:
        """check_decay for the event loop: the snapshot is saved with the async repository API"""
        message = self._decay(now)
        if message is not None:
            await self._async_persist(self.pet)
        return message

    def motivate(self, force: bool = False) -> Optional[PetMessage]:
        """Maybe drop a study motivation line; the pet itself is untouched"""
        if not force and self.rng.random() >= self.config.motivation_chance:
            return None
        return self._say(pick(self.rng, STUDY_MOTIVATION), SUPPORTIVE, self._now())

    # ========== persistence ==========
    def save(self):
        if self.repository is None:
            raise RuntimeError("no repository configured")
        self.repository.save(self.user_id, self.pet)

    async def async_save(self):
        if self.repository is None:
            raise RuntimeError("no repository configured")
        await self.repository.async_save(self.user_id, self.pet)

    # ========== internals ==========
    def _now(self) -> datetime:
        return _aware(self.clock())

    def _update(self, partial: Dict[str, Any], now: datetime, action: str) -> Pet:
        pet = self.store.apply_update(partial, now)
        logger.debug("%s on %s: %s", action, pet.name, partial)
        return pet

    def _set_emotion(self, emotion: PetEmotion, reason: Optional[str], now: datetime) -> Pet:
        previous = self.pet.current_emotion
        pet = self._update({"current_emotion": emotion}, now, "set_emotion")
        if previous != emotion:
            logger.info("%s feels %s (was %s)%s", pet.name, emotion.value, previous.value,
                        f": {reason}" if reason else "")
        return pet

    def _say(self, text: str, emotion: Union[PetEmotion, UserEmotion, str], now: datetime) -> PetMessage:
        tone = emotion.value if isinstance(emotion, (PetEmotion, UserEmotion)) else emotion
        return self.log.append(PetMessage(text=text, emotion=tone, timestamp=now))

    def _decay(self, now: Optional[datetime]) -> Optional[PetMessage]:
        now = _aware(now) if now is not None else self._now()
        emotion = decay_emotion(self.pet, now, self.config)
        if emotion is None:
            return None
        self._set_emotion(emotion, "neglected", now)
        return self._say(pick(self.rng, DECAY_MESSAGES[emotion]), emotion, now)

    def _persist(self, pet: Pet):
        if self.repository is None:
            return
        try:
            self.repository.save(self.user_id, pet)
        except PersistenceError:
            logger.warning("could not save pet for %s, keeping in-memory state", self.user_id)
            raise

    async def _async_persist(self, pet: Pet):
        if self.repository is None:
            return
        try:
            await self.repository.async_save(self.user_id, pet)
        except PersistenceError:
            logger.warning("could not save pet for %s, keeping in-memory state", self.user_id)
            raise
