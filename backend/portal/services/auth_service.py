"""
Portal Backend - Authentication Service
=========================================

What:  Registration, credential login and password reset requests.
How:   Passwords are checked against the configured policy (minimum length,
       forbidden patterns, forbidden words; all case-insensitive) and stored
       as Argon2 hashes. Login returns a signed session token.
Who:   /api/auth routes.

Password reset never reveals whether an address is registered: the caller
always gets the same success message. When the account exists a one-hour
VerificationToken is stored for the mail flow to pick up.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import Settings
from portal.exceptions import ConflictError, UnauthorizedError, ValidationError
from portal.models.user import User
from portal.models.verification_token import VerificationToken
from portal.security import SessionUser, create_session_token, hash_password, verify_password
from portal.services.user_service import user_service

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)
RESET_MESSAGE = "If an account with this email exists, a password reset email has been sent."


def validate_password(password: str, settings: Settings) -> List[str]:
    """Returns every policy violation; an empty list means the password is acceptable."""
    errors = []
    if len(password) < settings.password_min_length:
        errors.append(
            f"Password must be at least {settings.password_min_length} characters long"
        )

    lowered = password.lower()
    for pattern in settings.password_forbidden_patterns:
        if pattern.lower() in lowered:
            errors.append(f'Password cannot contain common patterns like "{pattern}"')
            break
    for word in settings.password_forbidden_words:
        if word.lower() in lowered:
            errors.append(f'Password cannot contain common words like "{word}"')
            break
    return errors


def session_user_for(user: User) -> SessionUser:
    return SessionUser(
        user_id=str(user.id),
        role=user.role,
        email=user.email,
        name=user.name,
    )


class AuthService:

    async def register(
        self,
        db: AsyncSession,
        settings: Settings,
        email: str,
        password: str,
        name: Optional[str] = None,
    ) -> User:
        errors = validate_password(password, settings)
        if errors:
            raise ValidationError(
                "Password requirements not met",
                field="password",
                details={"errors": errors},
            )

        email = email.lower()
        if await user_service.get_by_email(db, email) is not None:
            raise ConflictError("User already exists")

        user = User(
            email=email,
            name=name.strip() if name else None,
            password_hash=hash_password(password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same address
            raise ConflictError("User already exists")

        logger.info("User registered: %s", user.id)
        return user

    async def authenticate(
        self,
        db: AsyncSession,
        settings: Settings,
        email: str,
        password: str,
    ) -> Tuple[str, User]:
        """Returns (session_token, user) or raises UnauthorizedError."""
        user = await user_service.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt for %s", email.lower())
            raise UnauthorizedError("Invalid email or password")

        token = create_session_token(
            session_user_for(user), settings.secret_key, settings.session_max_age
        )
        logger.info("User logged in: %s", user.id)
        return token, user

    async def request_password_reset(self, db: AsyncSession, email: str) -> Optional[VerificationToken]:
        """
        Stores a reset token when the account exists.

        Returns the token for the mail flow; the route ignores it so responses
        look identical either way.
        """
        user = await user_service.get_by_email(db, email)
        if user is None:
            logger.info("Password reset requested for unknown address")
            return None

        token = VerificationToken(
            identifier=user.email,
            token=secrets.token_hex(32),
            expires_at=datetime.now(timezone.utc) + RESET_TOKEN_TTL,
        )
        db.add(token)
        await db.flush()
        logger.info("Password reset token issued for user %s", user.id)
        return token


auth_service = AuthService()
