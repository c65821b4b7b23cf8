import asyncio
import random
from datetime import datetime, timedelta, timezone

from studybuddy.common.config_manager import ConfigManager
from studybuddy.pet.logic import PetLogic, decay_emotion
from studybuddy.pet.messages import DECAY_MESSAGES
from studybuddy.pet.models import Pet, PetEmotion

NOW = datetime(2024, 12, 20, 18, 0, tzinfo=timezone.utc)


def idle_logic(hours, **attrs):
    pet = Pet(last_interaction=NOW - timedelta(hours=hours), **attrs)
    return PetLogic(pet, config=ConfigManager(), rng=random.Random(3), clock=lambda: NOW)


def test_hungry_after_two_hours_when_not_full():
    logic = idle_logic(3, hunger=60, energy=80)
    message = logic.check_decay(NOW)
    assert logic.pet.current_emotion is PetEmotion.HUNGRY
    assert message.text in DECAY_MESSAGES[PetEmotion.HUNGRY]
    assert message.emotion == 'hungry'
    assert logic.messages == [message]


def test_tired_after_four_hours_with_low_energy():
    logic = idle_logic(5, hunger=40, energy=20)
    message = logic.check_decay(NOW)
    assert logic.pet.current_emotion is PetEmotion.TIRED
    assert message.text in DECAY_MESSAGES[PetEmotion.TIRED]


def test_hunger_takes_precedence():
    logic = idle_logic(5, hunger=60, energy=20)
    logic.check_decay(NOW)
    assert logic.pet.current_emotion is PetEmotion.HUNGRY


def test_no_transition_when_recently_cared_for():
    logic = idle_logic(1, hunger=90, energy=5, current_emotion='happy')
    before = logic.pet
    assert logic.check_decay(NOW) is None
    assert logic.pet is before
    assert logic.messages == []


def test_thresholds_are_strict():
    # exactly two hours idle is not yet "more than two"
    assert decay_emotion(Pet(last_interaction=NOW - timedelta(hours=2), hunger=90), NOW, ConfigManager()) is None
    # fullness of exactly 50 is not "below 50"
    assert decay_emotion(Pet(last_interaction=NOW - timedelta(hours=3), hunger=50), NOW, ConfigManager()) is None
    # tired needs more than four hours even with an empty battery
    assert decay_emotion(Pet(last_interaction=NOW - timedelta(hours=3), hunger=0, energy=0), NOW,
                         ConfigManager()) is None


def test_transition_stamps_interaction_and_does_not_refire():
    logic = idle_logic(3, hunger=70)
    logic.check_decay(NOW)
    assert logic.pet.last_interaction == NOW
    assert logic.check_decay(NOW + timedelta(minutes=5)) is None
    assert len(logic.messages) == 1


def test_naive_now_is_treated_as_utc():
    logic = idle_logic(3, hunger=70)
    logic.check_decay(NOW.replace(tzinfo=None))
    assert logic.pet.current_emotion is PetEmotion.HUNGRY


def test_configurable_thresholds():
    config = ConfigManager({"hungry_after_hours": 0.5, "hungry_fullness_below": 90})
    pet = Pet(last_interaction=NOW - timedelta(hours=1), hunger=20)
    assert decay_emotion(pet, NOW, config) is PetEmotion.HUNGRY


class RecordingRepository:
    def __init__(self):
        self.sync_saves = []
        self.async_saves = []

    def save(self, user_id, pet):
        self.sync_saves.append(pet)

    async def async_save(self, user_id, pet):
        self.async_saves.append(pet)


def test_async_check_decay_saves_through_async_repository():
    repository = RecordingRepository()
    pet = Pet(user_id='u1', last_interaction=NOW - timedelta(hours=3), hunger=70)
    logic = PetLogic(pet, config=ConfigManager(), rng=random.Random(3), clock=lambda: NOW,
                     repository=repository)

    message = asyncio.run(logic.async_check_decay(NOW))
    assert message.emotion == 'hungry'
    assert repository.sync_saves == []
    assert [p.current_emotion for p in repository.async_saves] == [PetEmotion.HUNGRY]

    assert asyncio.run(logic.async_check_decay(NOW)) is None
    assert len(repository.async_saves) == 1
