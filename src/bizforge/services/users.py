"""User registration and role sync on every authenticated request."""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
import structlog

from ..clients.identity import VerifiedIdentity
from ..database import SessionFactory
from ..errors import Forbidden
from ..models import User, UserRole, UserStatus
from ..models.base import utcnow

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UserPolicy:
    admin_emails: tuple[str, ...] = ()
    starting_token_balance: int = 10000

    def role_for(self, email: str) -> UserRole:
        if email.lower() in self.admin_emails:
            return UserRole.ADMIN
        return UserRole.USER


class UserDirectory:
    def __init__(self, session_factory: SessionFactory, policy: UserPolicy):
        self.session_factory = session_factory
        self.policy = policy

    async def sync(self, identity: VerifiedIdentity) -> User:
        """Create or refresh the user row for a verified identity.

        Admin is granted from the configured email list and never revoked here.
        Token balances are left untouched for existing users. When two first
        requests race, the losing insert falls back to refreshing the row the
        other one created.

        Raises:
            Forbidden: The account is disabled.
        """
        role = self.policy.role_for(identity.email)
        try:
            return await self._sync(identity, role)
        except IntegrityError:
            logger.info("user_registration_raced", user_id=identity.caller_id)
            return await self._sync(identity, role)

    async def _sync(self, identity: VerifiedIdentity, role: UserRole) -> User:
        async with self.session_factory() as session, session.begin():
            user = await session.get(User, identity.caller_id)
            if user is None:
                user = User(
                    id=identity.caller_id,
                    email=identity.email,
                    name=identity.name,
                    picture=identity.picture,
                    role=role.value,
                    plan="Free",
                    tokens_remaining=self.policy.starting_token_balance,
                    tokens_used=0,
                    status=UserStatus.ACTIVE.value,
                )
                session.add(user)
                await session.flush()
                logger.info("user_registered", user_id=user.id, role=user.role)
                return user

            if user.status == UserStatus.DISABLED.value:
                logger.warning("disabled_user_rejected", user_id=user.id)
                raise Forbidden("Account disabled")

            user.email = identity.email
            user.name = identity.name
            user.picture = identity.picture
            user.last_login = utcnow()
            if role is UserRole.ADMIN:
                user.role = UserRole.ADMIN.value
            return user
