"""
Password policy and one-time tokens.

Hashing itself is Django's job (``PASSWORD_HASHERS`` puts bcrypt
first); this module decides whether a password is acceptable and mints
the reset / verification tokens, of which only a SHA-256 hash is ever
stored.
"""
from __future__ import annotations

import hashlib
import re
import secrets
import string

MIN_LENGTH = 8
MAX_LENGTH = 128
SPECIAL_CHARS = '!@#$%^&*()_+-=[]{}|;:,.<>?'

COMMON_SEQUENCES = ('123', 'abc', 'qwe', 'asd', 'zxc')
KEYBOARD_PATTERNS = ('qwerty', 'asdf', 'zxcv')

COMMON_PASSWORDS = frozenset({
    'password', 'password1', 'password123', '123456', '12345678', '123456789',
    'qwerty', 'qwerty123', 'abc123', 'letmein', 'welcome', 'welcome1',
    'admin', 'admin123', 'iloveyou', 'monkey', 'dragon', 'football',
    'baseball', 'sunshine', 'princess', 'trustno1', 'passw0rd', 'p@ssw0rd',
    'master', 'shadow', 'superman', 'michael', '111111', '000000',
})

_REPEATED_CHAR = re.compile(r'(.)\1{2,}')
_REPEATED_CHUNK = re.compile(r'(.{2,})\1+')


def validate_strength(password: str) -> dict:
    """Check ``password`` against the policy.

    Returns ``is_valid``, the list of ``errors``, a ``score`` (character
    classes present, plus one for 12+ characters), ``suggestions`` and a
    ``strength`` label: weak, medium, strong or very-strong.
    """
    password = password or ''
    errors: list[str] = []
    suggestions: list[str] = []
    score = 0
    length = len(password)

    if length < MIN_LENGTH:
        errors.append(f'Password must be at least {MIN_LENGTH} characters long')
        suggestions.append('Use a longer password')
    if length > MAX_LENGTH:
        errors.append(f'Password must not exceed {MAX_LENGTH} characters')

    checks = (
        (any(c.isupper() for c in password), 'Password must contain at least one uppercase letter', 'Add uppercase letters'),
        (any(c.islower() for c in password), 'Password must contain at least one lowercase letter', 'Add lowercase letters'),
        (any(c.isdigit() for c in password), 'Password must contain at least one number', 'Add numbers'),
        (any(c in SPECIAL_CHARS for c in password), 'Password must contain at least one special character', 'Add special characters'),
    )
    for ok, error, hint in checks:
        if ok:
            score += 1
        else:
            errors.append(error)
            suggestions.append(hint)
    if length >= 12:
        score += 1

    lower = password.lower()
    if any(seq in lower for seq in COMMON_SEQUENCES):
        errors.append('Password must not contain common sequences')
        suggestions.append('Avoid sequences like 123 or abc')
    if any(p in lower for p in KEYBOARD_PATTERNS):
        errors.append('Password must not contain keyboard patterns')
        suggestions.append('Avoid keyboard patterns like qwerty')
    if _REPEATED_CHAR.search(password) or _REPEATED_CHUNK.search(password):
        errors.append('Password must not contain repeated characters or patterns')
        suggestions.append('Avoid repeating characters')
    if lower in COMMON_PASSWORDS:
        errors.append('Password is too common')

    if score >= 4 and length >= 12:
        strength = 'very-strong'
    elif score >= 4 and length >= 10:
        strength = 'strong'
    elif score >= 3 and length >= MIN_LENGTH:
        strength = 'medium'
    else:
        strength = 'weak'

    return {
        'is_valid': not errors,
        'errors': errors,
        'score': score,
        'suggestions': suggestions,
        'strength': strength,
    }


def is_compromised(password: str) -> bool:
    return (password or '').lower() in COMMON_PASSWORDS


def generate_secure_password(length: int = 16) -> str:
    """Random password with every required character class present."""
    length = max(length, MIN_LENGTH)
    pools = (string.ascii_uppercase, string.ascii_lowercase, string.digits, SPECIAL_CHARS)
    alphabet = ''.join(pools)
    while True:
        chars = [secrets.choice(pool) for pool in pools]
        chars += [secrets.choice(alphabet) for _ in range(length - len(pools))]
        secrets.SystemRandom().shuffle(chars)
        candidate = ''.join(chars)
        if validate_strength(candidate)['is_valid']:
            return candidate


def requirements() -> dict:
    return {
        'min_length': MIN_LENGTH,
        'max_length': MAX_LENGTH,
        'require_uppercase': True,
        'require_lowercase': True,
        'require_numbers': True,
        'require_special_chars': True,
        'special_chars': SPECIAL_CHARS,
        'forbidden': [
            'common sequences (123, abc, qwe, asd, zxc)',
            'keyboard patterns (qwerty, asdf, zxcv)',
            'repeated characters or chunks',
            'common passwords',
        ],
    }


def make_token() -> tuple[str, str]:
    """Return ``(raw_token, sha256_hex)``; only the hash is persisted."""
    raw = secrets.token_hex(32)
    return raw, hash_token(raw)


def hash_token(raw: str) -> str:
    return hashlib.sha256((raw or '').encode('utf-8')).hexdigest()
