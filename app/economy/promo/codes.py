from __future__ import annotations

import secrets

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 6
MAX_CODE_LENGTH = 32


def normalize_promo_code(raw_code: str) -> str:
    return raw_code.strip().upper()


def generate_code(*, length: int = CODE_LENGTH) -> str:
    """Return a code whose characters are pairwise distinct."""
    if length <= 0 or length > len(CODE_ALPHABET):
        raise ValueError("length must be between 1 and the alphabet size")

    pool = list(CODE_ALPHABET)
    chars: list[str] = []
    for _ in range(length):
        char = secrets.choice(pool)
        pool.remove(char)
        chars.append(char)
    return "".join(chars)


def generate_unique_codes(
    *,
    count: int,
    existing_codes: set[str] | None = None,
    length: int = CODE_LENGTH,
) -> list[str]:
    if count <= 0:
        raise ValueError("count must be positive")

    existing = existing_codes if existing_codes is not None else set()
    generated: list[str] = []
    attempts = 0
    max_attempts = max(100, count * 50)

    while len(generated) < count:
        attempts += 1
        if attempts > max_attempts:
            raise RuntimeError("unable to generate unique promo codes")

        code = generate_code(length=length)
        if code in existing:
            continue

        existing.add(code)
        generated.append(code)

    return generated
