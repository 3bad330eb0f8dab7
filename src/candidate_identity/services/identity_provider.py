"""Identity provider — Firebase Admin wrapper for token checks and sign-in tokens."""

from __future__ import annotations

import logging
from pathlib import Path

import firebase_admin
from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions

from candidate_identity.config import Settings, settings
from candidate_identity.errors import AuthenticationError, IdentityProviderUnavailableError
from candidate_identity.identity.assertion import IdentityAssertion
from candidate_identity.identity.validation import normalize_email, normalize_phone

logger = logging.getLogger(__name__)

APP_NAME = "candidate-identity"


class FirebaseIdentityProvider:
    """Verifies Firebase ID tokens and mints custom sign-in tokens.

    The Firebase app is initialised lazily on first use, from a service
    account file when ``FIREBASE_SERVICE_ACCOUNT_PATH`` is set, otherwise
    from ``FIREBASE_CLIENT_EMAIL`` / ``FIREBASE_PRIVATE_KEY``.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._config = config or settings
        self._app: firebase_admin.App | None = None

    @property
    def is_configured(self) -> bool:
        cfg = self._config
        return bool(
            cfg.firebase_project_id
            and (cfg.firebase_service_account_path or (cfg.firebase_client_email and cfg.firebase_private_key))
        )

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        if not self.is_configured:
            logger.warning("Firebase credentials not configured — rejecting request")
            raise IdentityProviderUnavailableError("Firebase auth not configured")

        try:
            self._app = firebase_admin.get_app(APP_NAME)
        except ValueError:
            self._app = firebase_admin.initialize_app(
                self._credentials(), {"projectId": self._config.firebase_project_id}, name=APP_NAME
            )
            logger.info("Firebase initialised for project %s", self._config.firebase_project_id)
        return self._app

    def _credentials(self) -> credentials.Certificate:
        cfg = self._config
        try:
            if cfg.firebase_service_account_path:
                path = Path(cfg.firebase_service_account_path).resolve()
                return credentials.Certificate(str(path))
            return credentials.Certificate(
                {
                    "type": "service_account",
                    "project_id": cfg.firebase_project_id,
                    "client_email": cfg.firebase_client_email,
                    "private_key": cfg.firebase_private_key.replace("\\n", "\n"),
                    "token_uri": "https://oauth2.googleapis.com/token",
                }
            )
        except (OSError, ValueError) as exc:
            logger.error("Firebase credentials unusable: %s", exc)
            raise IdentityProviderUnavailableError("Firebase auth not configured") from exc

    # ── Token verification ───────────────────────────────

    async def verify(self, id_token: str) -> IdentityAssertion:
        """Verify an ID token and return what it asserts about the caller."""
        app = self._get_app()
        try:
            decoded = await run_in_threadpool(firebase_auth.verify_id_token, id_token, app)
        except firebase_auth.ExpiredIdTokenError as exc:
            logger.warning("Token expired")
            raise AuthenticationError("Token expired. Please sign in again.") from exc
        except (firebase_auth.RevokedIdTokenError, firebase_auth.InvalidIdTokenError) as exc:
            logger.warning("Token revoked or invalid: %s", exc)
            raise AuthenticationError("Invalid token. Please sign in again.") from exc
        except firebase_auth.CertificateFetchError as exc:
            logger.error("Could not fetch Firebase certificates: %s", exc)
            raise IdentityProviderUnavailableError("Identity provider unavailable") from exc
        except ValueError as exc:
            logger.warning("Malformed token: %s", exc)
            raise AuthenticationError("Access denied. Authentication failed.") from exc
        return assertion_from_claims(decoded)

    # ── Email-code sign-in ───────────────────────────────

    async def custom_token_for_email(self, email: str) -> str:
        """Return a custom sign-in token for the provider user owning *email*.

        Called only after the caller proved the email with a code, so the
        provider user is created (or updated) with the email marked verified.
        """
        app = self._get_app()
        return await run_in_threadpool(self._custom_token_for_email, email, app)

    @staticmethod
    def _custom_token_for_email(email: str, app: firebase_admin.App) -> str:
        try:
            try:
                user = firebase_auth.get_user_by_email(email, app=app)
            except firebase_auth.UserNotFoundError:
                user = firebase_auth.create_user(email=email, email_verified=True, app=app)
                logger.info("Created provider user %s for %s", user.uid, email)
            else:
                if not user.email_verified:
                    firebase_auth.update_user(user.uid, email_verified=True, app=app)
            token = firebase_auth.create_custom_token(user.uid, app=app)
        except firebase_exceptions.FirebaseError as exc:
            logger.error("Provider sign-in failed for %s: %s", email, exc)
            raise IdentityProviderUnavailableError("Identity provider unavailable") from exc
        return token.decode() if isinstance(token, bytes) else token

def assertion_from_claims(claims: dict) -> IdentityAssertion:
    """Build an assertion from decoded ID-token claims.

    The email only counts when the provider marks it verified; a phone
    number in the token is always one the provider verified by SMS.
    """
    email = normalize_email(claims.get("email")) if claims.get("email_verified") else ""
    phone = claims.get("phone_number") or (
        claims.get("firebase", {}).get("sign_in_attributes", {}).get("phone_number")
    )
    return IdentityAssertion(
        subject_id=claims["uid"],
        email=email or None,
        phone=normalize_phone(phone) or None,
        display_name=claims.get("name"),
        role=claims.get("role"),
    )
