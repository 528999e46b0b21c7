"""Service layer for credential and SSO accounts."""
import asyncio
import hashlib
import hmac
import logging
import secrets

from models.user import User
from services.exceptions import InvalidCredentialsError, UserAlreadyExistsError
from services.notification_service import send_login_notification
from services.provisioner import CollectionProvisioner
from services.user_repository import UserRepository

logger = logging.getLogger(__name__)

PASSWORD_ALGORITHM = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 600_000

# Provisioning tasks started after SSO sign-up, held to prevent garbage collection
_background_tasks: set[asyncio.Task] = set()


def hash_password(password: str, salt: str | None = None) -> str:
    """
    Hash a password for storage.

    Returns:
        ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PASSWORD_ITERATIONS,
    ).hex()
    return f"{PASSWORD_ALGORITHM}${PASSWORD_ITERATIONS}${salt}${digest}"


def verify_password(password: str, stored: str | None) -> bool:
    """Check a password against a stored hash. Malformed or missing hashes never match."""
    if not stored:
        return False
    try:
        algorithm, iterations, salt, digest = stored.split("$")
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != PASSWORD_ALGORITHM:
        return False
    candidate = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), rounds,
    ).hex()
    return hmac.compare_digest(candidate, digest)


async def register_user(
    repository: UserRepository,
    email: str,
    password: str,
    name: str,
) -> User:
    """
    Create a credential account.

    Raises:
        UserAlreadyExistsError: If the email is already registered.
    """
    if await repository.get_by_email(email) is not None:
        raise UserAlreadyExistsError(email)
    user = await repository.create(
        email=email,
        name=name.strip(),
        password_hash=await asyncio.to_thread(hash_password, password),
        provider="credentials",
    )
    await send_login_notification(user.email, user.name, "register")
    return user


async def authenticate(repository: UserRepository, email: str, password: str) -> User:
    """
    Verify credentials and record the login.

    SSO-only accounts have no password hash and always fail here.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password.
    """
    user = await repository.get_by_email(email)
    if user is None or not await asyncio.to_thread(
        verify_password, password, user.password_hash,
    ):
        logger.info("login_failed email=%s", email.strip().lower())
        raise InvalidCredentialsError()
    user = await repository.record_login(user.id) or user
    await send_login_notification(user.email, user.name, "login")
    return user


async def sso_sign_in(
    repository: UserRepository,
    email: str,
    name: str | None,
    provider: str,
    avatar: str | None = None,
    provisioner: CollectionProvisioner | None = None,
) -> tuple[User, bool]:
    """
    Find or create the account for an SSO identity.

    When a new account is created and a provisioner is given, the user's remote
    collection is created in a background task; the sign-in does not wait for it.

    Returns:
        Tuple of (user, created).
    """
    user = await repository.get_by_email(email)
    if user is None:
        try:
            user = await repository.create(
                email=email,
                name=name or email.split("@")[0],
                provider=provider,
                avatar=avatar,
            )
        except UserAlreadyExistsError:
            # Lost a race with a concurrent first sign-in
            user = await repository.get_by_email(email)
            if user is None:
                raise
        else:
            await send_login_notification(user.email, user.name, "sso")
            if provisioner is not None:
                _schedule_provisioning(provisioner, user)
            return user, True

    user = await repository.record_login(user.id) or user
    await send_login_notification(user.email, user.name, "sso")
    return user, False


def _schedule_provisioning(provisioner: CollectionProvisioner, user: User) -> None:
    task = asyncio.create_task(provisioner.ensure_collection(user.email, user.name))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
