import random
from typing import Callable

ADJECTIVES = [
    "Charming", "Brave", "Gentle", "Smart", "Lovely", "Wise", "Sweet", "Bold",
    "Clever", "Daring", "Elegant", "Fearless", "Graceful", "Happy", "Inspired",
    "Joyful", "Kind", "Lively", "Magical", "Noble", "Optimistic", "Peaceful",
    "Quirky", "Radiant", "Serene", "Thoughtful", "Unique", "Vibrant", "Witty",
    "Zealous", "Amazing", "Brilliant", "Creative", "Delightful", "Energetic",
    "Fabulous", "Genuine", "Humble", "Incredible", "Jolly", "Keen", "Luminous",
]

NOUNS = [
    "Soul", "Explorer", "Dreamer", "Vibes", "Spirit", "Owl", "Heart", "Adventurer",
    "Butterfly", "Comet", "Dragon", "Eagle", "Phoenix", "Falcon", "Gecko",
    "Hawk", "Iris", "Jaguar", "Kite", "Lion", "Meteor", "Ninja", "Orchid",
    "Panda", "Quasar", "Raven", "Star", "Tiger", "Universe", "Vortex",
    "Wolf", "Xenon", "Yeti", "Zen", "Angel", "Bear", "Cloud", "Dove",
]

AVATARS: dict[str, list[str]] = {
    "Male": ["👨", "🧑", "👨‍💼", "👨‍🎓", "🙋‍♂️", "👨‍🔬", "👨‍🎨", "👨‍💻", "🎩"],
    "Female": ["👩", "👸", "💃", "👩‍🎓", "👩‍💼", "🌸", "👩‍🔬", "👩‍🎨", "👩‍💻"],
    "Non-binary": ["🧑", "⭐", "✨", "🌟", "💫", "🌈", "🦄", "🎭", "🎨"],
    "Other": ["😊", "🌟", "✨", "💫", "🌈", "⭐", "🎭", "🎨", "🦋"],
}

NAME_GENERATION_FAILED = "Failed to generate unique anonymous name. Please try again."


class AnonymousNameExhausted(RuntimeError):
    pass


def generate_anonymous_name(rng: random.Random | None = None) -> str:
    r = rng or random
    return f"{r.choice(ADJECTIVES)}{r.choice(NOUNS)}{r.randint(100, 999)}"


def generate_avatar(gender: str | None, rng: random.Random | None = None) -> str:
    r = rng or random
    return r.choice(AVATARS.get(gender or "", AVATARS["Other"]))


def ensure_unique_anonymous_name(
    exists: Callable[[str], bool],
    max_attempts: int = 10,
    rng: random.Random | None = None,
) -> str:
    """Return a generated name that ``exists`` reports as free.

    Raises AnonymousNameExhausted after ``max_attempts`` collisions.
    """
    for _ in range(max_attempts):
        candidate = generate_anonymous_name(rng)
        if not exists(candidate):
            return candidate
    raise AnonymousNameExhausted(NAME_GENERATION_FAILED)


def reserve_anonymous_name(
    exists: Callable[[str], bool],
    insert: Callable[[str], dict | None],
    max_attempts: int = 10,
    rng: random.Random | None = None,
) -> dict:
    """Generate names and try ``insert`` until one is accepted.

    ``insert`` returns None when the unique constraint rejects the name.
    Checks and inserts share one attempt budget.
    """
    for _ in range(max_attempts):
        candidate = generate_anonymous_name(rng)
        if exists(candidate):
            continue
        row = insert(candidate)
        if row is not None:
            return row
    raise AnonymousNameExhausted(NAME_GENERATION_FAILED)
