import random

# Two-digit entity codes
TYPE_POSTFIX = {
    "users": 1,
    "interactions": 4,
    "messages": 5,
}


def generate_random_id(entity: str) -> int:
    """Returns an id made of 15 random digits plus a 2-digit entity postfix."""
    if entity not in TYPE_POSTFIX:
        raise ValueError(f"Unknown entity for ID generation: {entity}")
    rand15 = random.randint(0, 999_999_999_999_999)
    postfix = TYPE_POSTFIX[entity]
    return rand15 * 100 + postfix
