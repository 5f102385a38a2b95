"""
Form validation
Spam and gibberish filtering shared by the contact, lead and consultation forms.

All checks are cheap, deterministic heuristics over a single string: vowel
ratios, case flipping, consonant-only words, repeated characters and
keyboard mashing. Real names such as "Christopher Schmidt" or
"Mary-Ann O'Neil" must pass; "xKqPzLmWvR" or "asdfasdf qwerty" must not.
"""
import logging
import re
from typing import Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)

VOWELS = frozenset("aeiouAEIOU")

_RANDOM_WORD = re.compile(r"^[bcdfghjklmnpqrstvwxyzBCDFGHJKLMNPQRSTVWXYZ]{5,}$")
_REPEATED_CHARS = re.compile(r"(.)\1{4,}")
_ALTERNATING = re.compile(r"(.)(.)(\1\2){2,}")
_REPEATED_UNIT = re.compile(r"^(.{1,2})\1{2,}$")
_KEYBOARD_MASH = re.compile(r"qwerty|asdf|zxcv|hjkl|fghj|dfgh", re.IGNORECASE)
_CONSONANT_CLUSTER = re.compile(r"[bcdfghjklmnpqrstvwxyz]{4,}", re.IGNORECASE)
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SUSPICIOUS_EMAIL = (
    re.compile(r"^[a-z0-9]{10,}@"),
    re.compile(r"@(test|example|fake|spam)"),
)
_NAME_SPECIAL_CHARS = re.compile(r"[^a-zA-Z0-9\s]")

MESSAGE_FIELDS = ("message", "description", "businessDescription", "projectDescription")


class FieldResult(NamedTuple):
    valid: bool
    error: Optional[str] = None


class ValidationResult(NamedTuple):
    valid: bool
    errors: Dict[str, str]

    @property
    def first_error(self) -> Optional[str]:
        return next(iter(self.errors.values()), None)


def _is_upper_letter(ch: str) -> bool:
    return "A" <= ch <= "Z"


def _is_letter(ch: str) -> bool:
    return "a" <= ch.lower() <= "z"


def _case_changes(s: str) -> int:
    """Upper/non-upper flips between neighbours; 0 unless the text mixes case"""
    if not _has_mixed_case(s):
        return 0
    return sum(
        1 for prev, cur in zip(s, s[1:])
        if _is_upper_letter(prev) != _is_upper_letter(cur)
    )


def _has_mixed_case(s: str) -> bool:
    return any("a" <= ch <= "z" for ch in s) and any(_is_upper_letter(ch) for ch in s)


def _vowel_count(s: str) -> int:
    return sum(1 for ch in s if ch in VOWELS)


def _is_gibberish_name_word(word: str) -> bool:
    """Checks applied to each long (10+ chars) word of a name"""
    length = len(word)
    mixed = _has_mixed_case(word)
    vowels = _vowel_count(word)
    letters = sum(1 for ch in word if _is_letter(ch))
    changes = _case_changes(word)

    if mixed and vowels == 0:
        return True
    if not letters:
        return False

    ratio = vowels / letters
    if mixed and changes > length * 0.20:
        return True
    if mixed and changes > length * 0.15 and ratio < 0.25:
        return True
    if ratio < 0.20:
        return True
    if _CONSONANT_CLUSTER.search(word) and ratio < 0.25:
        return True
    return False


def is_gibberish(text, min_words: int = 3, is_name: bool = False) -> bool:
    """
    Heuristic spam check.

    Args:
        text: Raw user input
        min_words: Minimum word count (ignored for names)
        is_name: Use the stricter name-oriented checks

    Returns:
        bool: True when the text looks like gibberish
    """
    if not text or not isinstance(text, str):
        return True

    cleaned = " ".join(text.split())
    if len(cleaned) < (2 if is_name else 10):
        return True

    words = cleaned.split(" ")
    if not is_name and len(words) < min_words:
        return True

    compact = cleaned.replace(" ", "")
    letters = [ch for ch in compact if _is_letter(ch)]
    total_letters = len(letters)
    vowel_ratio = _vowel_count(letters) / total_letters if total_letters else 0.0
    case_changes = _case_changes(compact)

    if total_letters >= 8:
        if vowel_ratio < (0.20 if is_name else 0.15):
            return True
        if is_name:
            mixed = _has_mixed_case(compact)
            if (mixed and 0.20 <= vowel_ratio < 0.30
                    and total_letters >= 15 and case_changes > total_letters * 0.25):
                return True
            if (mixed and vowel_ratio < 0.30
                    and total_letters >= 10 and case_changes > total_letters * 0.20):
                return True

    random_words = [w for w in words if _RANDOM_WORD.match(w)]
    if is_name:
        if random_words and any(len(w) >= 10 for w in words):
            return True
    elif random_words and len(random_words) / len(words) > 0.5:
        return True

    if _REPEATED_CHARS.search(text):
        return True

    if _ALTERNATING.search(cleaned.lower()):
        return True

    if is_name and any(len(w) >= 6 and _REPEATED_UNIT.match(w) for w in words):
        return True

    if _KEYBOARD_MASH.search(text):
        return True

    if is_name and any(_is_gibberish_name_word(w) for w in words if len(w) >= 10):
        return True

    return False


def is_valid_name(name) -> FieldResult:
    if not name or not isinstance(name, str):
        return FieldResult(False, "Name is required")

    trimmed = name.strip()
    if len(trimmed) < 2:
        return FieldResult(False, "Name must be at least 2 characters")
    if len(trimmed) > 100:
        return FieldResult(False, "Name is too long")
    if is_gibberish(trimmed, 1, True):
        return FieldResult(False, "Name appears to be invalid. Please enter your real name.")
    if re.match(r"^[^a-zA-Z\s]+$", trimmed):
        return FieldResult(False, "Name must contain letters")
    if len(_NAME_SPECIAL_CHARS.findall(trimmed)) > len(trimmed) * 0.3:
        return FieldResult(False, "Name contains too many special characters")
    return FieldResult(True)


def is_valid_subject(subject) -> FieldResult:
    if not subject or not isinstance(subject, str):
        return FieldResult(False, "Subject is required")

    trimmed = subject.strip()
    if len(trimmed) < 3:
        return FieldResult(False, "Subject must be at least 3 characters")
    if len(trimmed) > 200:
        return FieldResult(False, "Subject is too long")
    if is_gibberish(trimmed, 1, False):
        return FieldResult(False, "Subject appears to be invalid. Please enter a meaningful subject.")
    return FieldResult(True)


def is_valid_message(message, min_words: int = 5) -> FieldResult:
    if not message or not isinstance(message, str):
        return FieldResult(False, "Message is required")

    trimmed = message.strip()
    if len(trimmed) < 20:
        return FieldResult(False, "Message must be at least 20 characters")
    if len(trimmed.split()) < min_words:
        return FieldResult(False, f"Message must contain at least {min_words} words")
    if is_gibberish(trimmed, min_words, False):
        return FieldResult(False, "Message appears to be invalid. Please provide a meaningful message.")
    return FieldResult(True)


def is_valid_email(email) -> FieldResult:
    if not email or not isinstance(email, str):
        return FieldResult(False, "Email is required")

    normalized = email.strip().lower()
    if not _EMAIL.match(normalized):
        return FieldResult(False, "Invalid email format")

    # Suspicious addresses are only flagged; plenty of real ones look like this
    if any(pattern.search(normalized) for pattern in _SUSPICIOUS_EMAIL):
        logger.warning("[FORM_VALIDATION] Suspicious email pattern: %s", normalized)

    return FieldResult(True)


def validate_honeypot(value) -> FieldResult:
    """The hidden ``website`` field must stay empty"""
    if value and str(value).strip():
        return FieldResult(False, "Spam detected")
    return FieldResult(True)


def validate_form_fields(
    fields,
    require_name=True,
    require_email=True,
    require_subject=False,
    require_message=True,
    min_message_words=5,
    check_honeypot=True,
) -> ValidationResult:
    """
    Validates a form payload.

    Errors are keyed by field and inserted in the order website, name, email,
    subject, message; a message error is reported under both ``message`` and
    ``description``.
    """
    fields = fields or {}
    errors = {}

    if check_honeypot and fields.get("website") is not None:
        result = validate_honeypot(fields.get("website"))
        if not result.valid:
            errors["website"] = result.error

    if require_name:
        result = is_valid_name(fields.get("name"))
        if not result.valid:
            errors["name"] = result.error

    if require_email:
        result = is_valid_email(fields.get("email"))
        if not result.valid:
            errors["email"] = result.error

    if require_subject and fields.get("subject") is not None:
        result = is_valid_subject(fields.get("subject"))
        if not result.valid:
            errors["subject"] = result.error

    present = [fields.get(key) for key in MESSAGE_FIELDS if fields.get(key) is not None]
    if require_message and present:
        message = next((value for value in present if value), present[0])
        result = is_valid_message(message, min_message_words)
        if not result.valid:
            errors["message"] = result.error
            errors["description"] = result.error

    return ValidationResult(not errors, errors)
