import asyncio
import json
import random
from datetime import datetime, timezone

import pytest

from studybuddy.common.config_manager import ConfigManager
from studybuddy.common.data_manager import DataManager, PersistenceError
from studybuddy.pet.logic import PetLogic
from studybuddy.pet.models import Pet, PetEmotion
from studybuddy.pet.repository import PetRepository

T0 = datetime(2024, 12, 20, 9, 0, tzinfo=timezone.utc)


class FlakyRepository:
    """Repository whose saves fail until told otherwise"""

    def __init__(self):
        self.failing = True
        self.saved = {}

    def load(self, user_id):
        return None

    def save(self, user_id, pet):
        if self.failing:
            raise PersistenceError("disk full")
        self.saved[user_id] = pet


@pytest.fixture
def repository(tmp_path):
    return PetRepository(DataManager(base_path=tmp_path))


def make_logic(user_id, repository):
    return PetLogic.for_user(user_id, repository, config=ConfigManager(),
                             rng=random.Random(0), clock=lambda: T0)


def test_new_user_gets_default_pet(repository):
    logic = make_logic('u1', repository)
    assert logic.pet.name == 'Buddy'
    assert logic.pet.hunger == 40


def test_interactions_are_saved(repository, tmp_path):
    logic = make_logic('u1', repository)
    logic.feed()
    logic.set_emotion('excited')

    pet_file = tmp_path / 'data' / 'pet' / 'pets.json'
    stored = json.loads(pet_file.read_text(encoding='utf-8'))
    assert stored['u1']['hunger'] == 10
    assert stored['u1']['current_emotion'] == 'excited'

    reloaded = make_logic('u1', repository)
    assert reloaded.pet == logic.pet
    assert reloaded.pet.current_emotion is PetEmotion.EXCITED


def test_pets_are_kept_per_user(repository):
    make_logic('alice', repository).play()
    make_logic('bob', repository).rest()
    assert repository.load('alice').experience == 260
    assert repository.load('bob').energy == 100
    assert repository.load('carol') is None


def test_corrupted_file_falls_back_to_default(repository, tmp_path):
    pet_file = tmp_path / 'data' / 'pet' / 'pets.json'
    pet_file.write_text('{not json', encoding='utf-8')
    logic = make_logic('u1', repository)
    assert logic.pet.hunger == 40


def test_invalid_stored_pet_is_discarded(repository, tmp_path):
    pet_file = tmp_path / 'data' / 'pet' / 'pets.json'
    pet_file.write_text(json.dumps({'u1': {'name': 'Rex', 'happiness': 400}}), encoding='utf-8')
    assert repository.load('u1') is None


def test_failed_save_keeps_in_memory_state():
    repo = FlakyRepository()
    logic = PetLogic(Pet(user_id='u1', last_interaction=T0), config=ConfigManager(),
                     rng=random.Random(0), clock=lambda: T0, repository=repo)
    with pytest.raises(PersistenceError) as excinfo:
        logic.feed()
    assert excinfo.value.retryable
    assert logic.pet.hunger == 10
    assert len(logic.messages) == 1

    repo.failing = False
    logic.save()
    assert repo.saved['u1'].hunger == 10


def test_data_manager_wraps_write_errors(tmp_path):
    dm = DataManager(base_path=tmp_path)
    # a directory where the file should be makes every write fail
    (tmp_path / 'data' / 'pet' / 'pets.json').mkdir(parents=True)
    repository = PetRepository(dm)
    logic = make_logic('u1', repository)
    with pytest.raises(PersistenceError):
        logic.rest()
    assert logic.pet.energy == 100


def test_repository_needs_user_id(repository):
    with pytest.raises(ValueError):
        PetLogic(Pet(), repository=repository)


def test_save_without_repository():
    with pytest.raises(RuntimeError):
        PetLogic(Pet()).save()


def test_async_round_trip(repository):
    async def scenario():
        logic = await PetLogic.async_for_user('u2', repository, config=ConfigManager(),
                                              clock=lambda: T0)
        logic.award_achievement('pomodoro_master')
        await logic.async_save()
        return await repository.async_load('u2')

    stored = asyncio.run(scenario())
    assert 'pomodoro_master' in stored.achievements
    assert stored.last_interaction == T0


def test_data_manager_env_root(tmp_path, monkeypatch):
    monkeypatch.setenv('STUDYBUDDY_DATA_DIR', str(tmp_path / 'env_root'))
    dm = DataManager()
    assert dm.get_data_path() == tmp_path / 'env_root'
    assert (tmp_path / 'env_root').is_dir()


def test_concurrent_async_saves_keep_every_user(repository):
    alice = PetLogic(Pet(user_id='alice', hunger=5), config=ConfigManager(),
                     clock=lambda: T0, repository=repository)
    bob = PetLogic(Pet(user_id='bob', energy=15), config=ConfigManager(),
                   clock=lambda: T0, repository=repository)

    async def scenario():
        await asyncio.gather(alice.async_save(), bob.async_save())

    asyncio.run(scenario())
    assert sorted(repository.load_all()) == ['alice', 'bob']
    assert repository.load('alice').hunger == 5
    assert repository.load('bob').energy == 15


def test_repository_is_reusable_across_event_loops(repository):
    pet = Pet(user_id='u3')
    asyncio.run(repository.async_save('u3', pet))
    asyncio.run(repository.async_save('u4', pet))
    assert sorted(repository.load_all()) == ['u3', 'u4']


def test_unknown_stored_fields_are_ignored(repository, tmp_path):
    pet_file = tmp_path / 'data' / 'pet' / 'pets.json'
    stored = Pet(user_id='u1', hunger=12).to_dict()
    stored['customization'] = {'hat': 'wizard'}
    pet_file.write_text(json.dumps({'u1': stored}), encoding='utf-8')
    pet = repository.load('u1')
    assert pet.hunger == 12
    assert 'customization' not in pet.to_dict()
    assert 'customization' not in Pet.model_fields


def test_threaded_sync_saves_keep_every_user(repository):
    from concurrent.futures import ThreadPoolExecutor

    user_ids = [f'u{i}' for i in range(8)]
    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda uid: repository.save(uid, Pet(user_id=uid)), user_ids))
    assert sorted(repository.load_all()) == sorted(user_ids)
