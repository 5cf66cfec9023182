from __future__ import annotations

import base64
import logging
from functools import lru_cache, wraps
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from flask import current_app, g, jsonify, session

from .model import LtiSession

logger = logging.getLogger(__name__)

SESSION_KEY = "lti"
SEALED_TOKEN_KEY = "sealedToken"

_TOKEN_SALT = b"lti-attendance.moodle-token"
_TOKEN_KDF_ITERATIONS = 100_000


@lru_cache(maxsize=4)
def _token_cipher(secret_key: Union[str, bytes]) -> Fernet:
    """Fernet cipher derived from the app secret.

    Flask signs its session cookie but does not encrypt it, so the Moodle
    token is only ever stored sealed with this cipher.
    """

    secret = secret_key.encode("utf-8") if isinstance(secret_key, str) else secret_key
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=_TOKEN_SALT, iterations=_TOKEN_KDF_ITERATIONS)
    return Fernet(base64.urlsafe_b64encode(kdf.derive(secret)))


def seal_token(token: str, secret_key: Union[str, bytes]) -> str:
    return _token_cipher(secret_key).encrypt(token.encode("utf-8")).decode("ascii")


def unseal_token(sealed: str, secret_key: Union[str, bytes]) -> str:
    """Raises ``cryptography.fernet.InvalidToken`` when the value was not sealed with this key."""

    return _token_cipher(secret_key).decrypt(str(sealed).encode("ascii")).decode("utf-8")


def save_lti_session(lti: LtiSession) -> None:
    data = lti.to_dict(include_token=False)
    if lti.moodle_token:
        data[SEALED_TOKEN_KEY] = seal_token(lti.moodle_token, current_app.secret_key)
    session.clear()
    session[SESSION_KEY] = data
    session.permanent = True


def load_lti_session() -> Optional[LtiSession]:
    data = session.get(SESSION_KEY)
    if not data:
        return None
    try:
        data = dict(data)
        sealed = data.pop(SEALED_TOKEN_KEY, None)
        data.pop("moodleToken", None)
        if sealed:
            data["moodleToken"] = unseal_token(sealed, current_app.secret_key)
        return LtiSession.from_dict(data)
    except (InvalidToken, KeyError, TypeError, ValueError):
        logger.warning("Dropping unreadable LTI session cookie")
        session.pop(SESSION_KEY, None)
        return None


def clear_lti_session() -> None:
    session.clear()


def current_session() -> LtiSession:
    """The session loaded by ``login_required`` for this request."""

    return g.lti_session


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        lti = load_lti_session()
        if lti is None:
            return jsonify({"error": "Not authenticated", "details": "Launch this tool from Moodle"}), 401
        g.lti_session = lti
        return view(*args, **kwargs)

    return wrapper


def instructor_required(view):
    """Managers and instructors only; students get 403."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        lti = load_lti_session()
        if lti is None:
            return jsonify({"error": "Not authenticated", "details": "Launch this tool from Moodle"}), 401
        if not lti.can_view_all:
            return jsonify({"error": "Forbidden", "details": "Instructor access required"}), 403
        g.lti_session = lti
        return view(*args, **kwargs)

    return wrapper
