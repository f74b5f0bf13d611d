"""Collision-checked identifier generation.

Each kind of row gets a prefixed random id. Candidates are checked against the
tables the kind must be unique in and redrawn a bounded number of times.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from core.config import ID_GENERATION_MAX_ATTEMPTS
from core.errors import IdentifierGenerationError

logger = logging.getLogger(__name__)

USER_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
USER_ID_LENGTH = 12


def _user_candidate(rng: random.Random) -> str:
    return "".join(rng.choice(USER_ID_ALPHABET) for _ in range(USER_ID_LENGTH))


def _conversation_candidate(rng: random.Random) -> str:
    return f"chat{rng.randint(100, 999999)}"


def _message_candidate(rng: random.Random) -> str:
    return f"msg{rng.randint(100000000, 999999999999)}"


def _media_candidate(rng: random.Random) -> str:
    return f"media{rng.randint(10 ** 11, 10 ** 16 - 1)}"


def _interaction_candidate(rng: random.Random) -> str:
    return f"int{rng.randint(10 ** 9, 10 ** 15 - 1)}"


def _tables_for(kind: str) -> Tuple:
    import models

    return {
        "user": (models.User,),
        "conversation": (models.Conversation,),
        "message": (models.Message,),
        "media": (models.MediaFile,),
        "interaction": (models.Reaction, models.Comment),
    }[kind]


CANDIDATES: Dict[str, Callable[[random.Random], str]] = {
    "user": _user_candidate,
    "conversation": _conversation_candidate,
    "message": _message_candidate,
    "media": _media_candidate,
    "interaction": _interaction_candidate,
}


class IdentifierGenerator:
    def __init__(
        self,
        *,
        rng: Optional[random.Random] = None,
        max_attempts: int = ID_GENERATION_MAX_ATTEMPTS,
    ):
        self._rng = rng or random.SystemRandom()
        self._max_attempts = max_attempts

    def new_id(self, db: Session, kind: str) -> str:
        """Return an id of `kind` that no stored row uses yet.

        Raises IdentifierGenerationError when every attempt collides.
        """
        if kind not in CANDIDATES:
            raise ValueError(f"Unknown identifier kind: {kind}")

        draw = CANDIDATES[kind]
        tables = _tables_for(kind)
        for attempt in range(1, self._max_attempts + 1):
            candidate = draw(self._rng)
            if not any(db.get(table, candidate) for table in tables):
                return candidate
            logger.debug(f"Identifier collision for {kind} on attempt {attempt}: {candidate}")

        logger.error(f"Failed to generate a unique {kind} id after {self._max_attempts} attempts")
        raise IdentifierGenerationError(
            f"Failed to generate unique {kind} ID after {self._max_attempts} attempts"
        )


default_generator = IdentifierGenerator()
