import random
from typing import Dict, List, Sequence, Union

from .models import PetEmotion, PetSpecies, UserEmotion

SUPPORTIVE = "supportive"

# ========== replies to the user's detected emotion ==========
EMOTION_RESPONSES: Dict[UserEmotion, List[str]] = {
    UserEmotion.HAPPY: [
        "I'm so happy to see you smiling! 😊",
        "Your joy is contagious! Keep up the great work! ✨",
        "You look amazing today! Let's study together! 📚",
    ],
    UserEmotion.SAD: [
        "I'm here for you. Want to take a short break? 💙",
        "It's okay to feel sad sometimes. I believe in you! 🤗",
        "Let's do something fun together to cheer you up! 🎮",
    ],
    UserEmotion.STRESSED: [
        "I can sense you're stressed. Let's try some deep breathing! 🧘‍♀️",
        "Remember to take breaks! You're doing great! 💪",
        "Stress is temporary, but your progress is lasting! 📈",
    ],
    UserEmotion.TIRED: [
        "You look tired! Maybe it's time for a power nap? 😴",
        "Rest is important too! I'll be here when you're ready! 💤",
        "Let's recharge together! You've earned a break! ⚡",
    ],
    UserEmotion.FOCUSED: [
        "I love seeing you so focused! You're in the zone! 🎯",
        "Your concentration is amazing! Keep it up! 🔥",
        "Focus mode activated! I'm cheering you on silently! 📚",
    ],
    UserEmotion.EXCITED: [
        "Your excitement is awesome! Channel that energy! ⚡",
        "I love your enthusiasm! Let's tackle those tasks! 🚀",
        "Your positive energy is inspiring! Keep going! ⭐",
    ],
}

# pet mirrors comfort for low moods, joy for everything else
_COMFORTED = {UserEmotion.SAD, UserEmotion.STRESSED}

# ========== action replies ==========
FEED_RESPONSES = [
    "Yum! That was delicious! Thank you! 🍎",
    "I feel so much better now! Ready to support you! 💪",
    "Food makes everything better! Let's study! 📚",
]
PLAY_RESPONSES = [
    "That was so fun! I'm energized now! ⚡",
    "Playing with you is the best! Let's get back to work! 🎮",
    "I love our play time! You're the best study buddy! 💝",
]
REST_RESPONSES = [
    "Ahh, that nap was refreshing! Ready to help you study! 😴✨",
]

# ========== neglect ==========
DECAY_MESSAGES: Dict[PetEmotion, List[str]] = {
    PetEmotion.HUNGRY: [
        "I'm getting a bit hungry... 🥺",
        "My tummy is rumbling... snack break? 🍎",
    ],
    PetEmotion.TIRED: [
        "I'm feeling sleepy... maybe we should rest? 😴",
        "Yawn... could we take a little nap? 💤",
    ],
}

STUDY_MOTIVATION = [
    "Every small step counts towards your goals! 🎯",
    "You're building great study habits! I'm proud! 👏",
    "Remember: progress, not perfection! 📈",
    "Your dedication is inspiring me too! 💪",
    "Let's make today count together! ✨",
]

# ========== avatar glyphs ==========
# species -> (happy, sad, tired, hungry, anything else)
_AVATARS: Dict[PetSpecies, tuple] = {
    PetSpecies.CAT: ("😸", "😿", "😴", "🙀", "😺"),
    PetSpecies.DOG: ("🐕", "😢🐕", "😴🐕", "🥺🐕", "🐶"),
    PetSpecies.BIRD: ("🐦", "😢🐦", "😴🐦", "🥺🐦", "🐤"),
    PetSpecies.DRAGON: ("🐲", "😢🐲", "😴🐲", "🥺🐲", "🐉"),
}
_AVATAR_SLOTS = {
    PetEmotion.HAPPY: 0,
    PetEmotion.SAD: 1,
    PetEmotion.TIRED: 2,
    PetEmotion.HUNGRY: 3,
}


def pick(rng: random.Random, pool: Sequence[str]) -> str:
    """Uniform choice from a message pool"""
    return pool[rng.randrange(len(pool))]


def responses_for(emotion: Union[UserEmotion, str]) -> List[str]:
    return EMOTION_RESPONSES[UserEmotion(emotion)]


def pet_emotion_for(emotion: Union[UserEmotion, str]) -> PetEmotion:
    """Map a detected user emotion to what the pet shows back"""
    if UserEmotion(emotion) in _COMFORTED:
        return PetEmotion.CONTENT
    return PetEmotion.HAPPY


def avatar_for(species: Union[PetSpecies, str], emotion: Union[PetEmotion, str]) -> str:
    glyphs = _AVATARS[PetSpecies(species)]
    return glyphs[_AVATAR_SLOTS.get(PetEmotion(emotion), 4)]
