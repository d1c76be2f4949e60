"""
Short code generation strategies for URL shortener.
Uses Strategy Pattern so the service can be given a deterministic
generator in tests.
"""

import secrets
import string
from abc import ABC, abstractmethod
from sqlalchemy import or_
from sqlalchemy.orm import Session
from redirector_app.models.url import URL
from redirector_app.services.exceptions import ShortCodeGenerationError


# Same 64-symbol URL-safe alphabet nanoid uses
URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "_-"


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    max_retries: int = 5

    @abstractmethod
    def candidate(self) -> str:
        """Return one candidate code (uniqueness not yet checked)"""
        pass

    def generate(self, db_session: Session) -> str:
        """
        Generate a short code that is not in use as any record's short code
        or alias, deleted records included.

        Raises:
            ShortCodeGenerationError: if every attempt collided
        """
        for _ in range(self.max_retries):
            short_code = self.candidate()
            taken = db_session.query(URL.id).filter(
                or_(URL.short_url == short_code, URL.alias == short_code)
            ).first()
            if taken is None:
                return short_code

        raise ShortCodeGenerationError(
            f"Could not generate unique short code after {self.max_retries} attempts"
        )


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Random codes drawn with the secrets module.

    With the default 21 symbols from a 64-symbol alphabet there are 126 bits
    of entropy, so the retry loop exists only as a safety net.
    """

    def __init__(self, length: int = 21, max_retries: int = 5):
        self.length = length
        self.max_retries = max_retries
        self.characters = URL_SAFE_ALPHABET

    def candidate(self) -> str:
        return ''.join(secrets.choice(self.characters) for _ in range(self.length))
