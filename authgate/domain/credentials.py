"""
Credential policy - Email format and password strength rules.

Email rules:
- Normalized to trimmed lowercase before any check
- Syntax checked by email-validator (no DNS lookups): dot-atom local part of
  at most 64 characters, a resolvable-looking domain, 254 characters overall
- Special-use domains (.local, .invalid, .onion, ...) and numeric top-level
  domains are rejected
- Optionally, the domain must not be a known disposable-email provider

Password rules (strength enforcement on):
- 8 to 128 characters. bcrypt only reads the first 72 UTF-8 bytes, so
  with multi-byte characters anything past that prefix is not checked at
  login (see PasswordHasher)
- At least one lowercase letter, uppercase letter, digit and symbol
- Not a well-known common password (case-insensitive)
- No run of three consecutive ascending code points ("abc", "123")

With strength enforcement off only the length bounds apply. Every violated
rule is reported, not just the first one.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_syntax

from .results import Err, Ok

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

PASSWORD_SYMBOLS = frozenset("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?`~")

DEFAULT_DISPOSABLE_DOMAINS = frozenset(
    {
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "tempmail.com",
        "temp-mail.org",
        "throwawaymail.com",
        "trashmail.com",
        "yopmail.com",
    }
)

COMMON_PASSWORDS = frozenset(
    {
        "123456",
        "12345678",
        "123456789",
        "1234567890",
        "abc123",
        "admin123",
        "iloveyou",
        "letmein",
        "monkey",
        "password",
        "password1",
        "password123",
        "passw0rd",
        "qwerty",
        "qwerty123",
        "qwertyuiop",
        "welcome",
        "welcome1",
        "111111",
        "000000",
    }
)

INVALID_EMAIL = "Invalid email format"
DISPOSABLE_EMAIL = "Disposable email addresses are not allowed"

PASSWORD_LENGTH = (
    f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters long"
)
PASSWORD_LOWERCASE = "Password must contain at least one lowercase letter"
PASSWORD_UPPERCASE = "Password must contain at least one uppercase letter"
PASSWORD_DIGIT = "Password must contain at least one number"
PASSWORD_SYMBOL = "Password must contain at least one special character"
PASSWORD_COMMON = "Password is too common"
PASSWORD_SEQUENTIAL = "Password must not contain sequential characters (e.g. abc, 123)"


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def has_sequential_run(value: str, length: int = 3) -> bool:
    """Return True if ``value`` holds ``length`` consecutive ascending code points."""
    run = 1
    for previous, current in zip(value, value[1:]):
        if ord(current) == ord(previous) + 1:
            run += 1
            if run >= length:
                return True
        else:
            run = 1
    return False


def validate_email(
    email: str,
    disposable_domains: Iterable[str] | None = None,
) -> Ok[str] | Err:
    """
    Validate and normalize an email address.

    Args:
        email: Raw email as submitted
        disposable_domains: Domains to reject; None disables the check

    Returns:
        Ok(normalized_email) or Err(reason)
    """
    normalized = normalize_email(email)
    try:
        checked = check_email_syntax(normalized, check_deliverability=False)
    except EmailNotValidError:
        return Err(INVALID_EMAIL)

    if disposable_domains is not None and checked.domain in disposable_domains:
        return Err(DISPOSABLE_EMAIL)

    return Ok(normalized)


def validate_password(password: str, enforce_strength: bool = True) -> Ok[None] | Err:
    """
    Check a password against the policy.

    Args:
        password: Candidate password
        enforce_strength: Apply composition, denylist and sequence rules

    Returns:
        Ok(None), or Err whose ``reasons`` lists every violated rule
    """
    reasons: list[str] = []

    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        reasons.append(PASSWORD_LENGTH)

    if enforce_strength:
        if not any(ch.islower() for ch in password):
            reasons.append(PASSWORD_LOWERCASE)
        if not any(ch.isupper() for ch in password):
            reasons.append(PASSWORD_UPPERCASE)
        if not any(ch.isdigit() for ch in password):
            reasons.append(PASSWORD_DIGIT)
        if not any(ch in PASSWORD_SYMBOLS for ch in password):
            reasons.append(PASSWORD_SYMBOL)
        if password.lower() in COMMON_PASSWORDS:
            reasons.append(PASSWORD_COMMON)
        if has_sequential_run(password):
            reasons.append(PASSWORD_SEQUENTIAL)

    if reasons:
        return Err("; ".join(reasons), reasons=tuple(reasons))
    return Ok(None)


@dataclass(frozen=True)
class CredentialPolicy:
    """Credential rules bound to deployment configuration."""

    enforce_password_strength: bool = False
    reject_disposable_emails: bool = False
    disposable_domains: frozenset[str] = field(default=DEFAULT_DISPOSABLE_DOMAINS)

    def validate_email(self, email: str) -> Ok[str] | Err:
        domains = self.disposable_domains if self.reject_disposable_emails else None
        return validate_email(email, domains)

    def validate_password(self, password: str) -> Ok[None] | Err:
        return validate_password(password, self.enforce_password_strength)
