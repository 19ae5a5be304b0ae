"""Authentication service - registers users and issues their access tokens."""
import logging

from bson import ObjectId
from bson.errors import InvalidId

from pulseboard.models.user import User
from pulseboard.utils.auth import create_access_token, hash_password, verify_password
from pulseboard.utils.clock import Clock, utcnow
from pulseboard.utils.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class AuthService:
    """Service for handling user authentication."""

    def __init__(self, db, clock: Clock = utcnow):
        """Initialize service with database connection."""
        self.db = db
        self.users = db["users"]
        self.clock = clock

    @staticmethod
    def _doc_to_user(doc: dict) -> User:
        return User(
            _id=str(doc["_id"]),
            email=doc["email"],
            name=doc["name"],
            created_at=doc["created_at"],
        )

    async def register_user(self, email: str, password: str, name: str) -> User:
        """
        Register a new user.

        Raises:
            ConflictError: If the email is already registered
        """
        email = email.lower()
        if await self.users.find_one({"email": email}):
            raise ConflictError("Email already registered")

        now = self.clock()
        user_doc = {
            "email": email,
            "hashed_password": hash_password(password),
            "name": name,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.users.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id

        logger.info("Registered user %s", result.inserted_id)
        return self._doc_to_user(user_doc)

    async def login(self, email: str, password: str) -> str:
        """
        Check credentials and return a JWT access token.

        Raises:
            ValueError: If the credentials don't match a user
        """
        user_doc = await self.users.find_one({"email": email.lower()})
        if not user_doc or not verify_password(password, user_doc["hashed_password"]):
            raise ValueError("Invalid email or password")

        return create_access_token(user_id=str(user_doc["_id"]))

    async def get_user_by_id(self, user_id: str) -> User:
        """
        Look up the user behind an access token.

        Raises:
            NotFoundError: If the id is malformed or unknown
        """
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            raise NotFoundError("User not found")

        user_doc = await self.users.find_one({"_id": object_id})
        if not user_doc:
            raise NotFoundError("User not found")

        return self._doc_to_user(user_doc)
